# *******************************************************************************
# Copyright (c) 2026 Contributors to the Eclipse Foundation
#
# See the NOTICE file(s) distributed with this work for additional
# information regarding copyright ownership.
#
# This program and the accompanying materials are made available under the
# terms of the Apache License Version 2.0 which is available at
# https://www.apache.org/licenses/LICENSE-2.0
#
# SPDX-License-Identifier: Apache-2.0
# *******************************************************************************
import logging
from dataclasses import dataclass
from typing import Optional

from jhsdb_testing.errors import MissingOutputError, NonZeroExitError
from jhsdb_testing.system_under_test import SystemUnderTest
from jhsdb_testing.tool_launcher import ToolInvocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """Output and exit code of one finished tool invocation."""

    command: str
    stdout: str
    exit_code: int
    input: Optional[str] = None

    def should_contain(self, expected: str) -> "ExecutionResult":
        if expected not in self.stdout:
            raise MissingOutputError(expected, self.stdout)
        return self

    def should_have_exit_value(self, expected: int) -> "ExecutionResult":
        if self.exit_code != expected:
            raise NonZeroExitError(self.command, self.exit_code)
        return self


def execute_process(sut: SystemUnderTest, invocation: ToolInvocation, timeout: Optional[float] = None,
                    input: Optional[str] = None) -> ExecutionResult:
    """Runs a tool to completion and captures its output.

    :raises ToolTimeoutError: if the tool is still running after ``timeout`` seconds
    """
    exit_code, stdout = sut.execute(invocation.command, input=input, timeout=timeout)
    logger.info(f"{invocation.name} exited with {exit_code}")
    return ExecutionResult(command=str(invocation), stdout=stdout, exit_code=exit_code, input=input)
