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
from typing import Optional


class HarnessError(Exception):
    """Base class of every failure a harness step can report."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self):
        return self.message


class StartupError(HarnessError):
    """The companion process could not be launched or never became ready."""


class NonZeroExitError(HarnessError):

    def __init__(self, command: str, exit_code: int) -> None:
        super().__init__(f"{command} terminated with non-zero exit code {exit_code}")
        self.command = command
        self.exit_code = exit_code


class MissingOutputError(HarnessError):

    def __init__(self, expected: str, output: str) -> None:
        super().__init__(f"'{expected}' missing from stdout/stderr")
        self.expected = expected
        self.output = output


class ArtifactError(HarnessError):
    """An expected output file is missing or is not a regular file."""


class ToolTimeoutError(HarnessError):

    def __init__(self, command: str, timeout: float) -> None:
        super().__init__(f"{command} did not finish within {timeout} seconds and was killed")
        self.command = command
        self.timeout = timeout


class PermissionSkip:
    """Reason of a run that was skipped because attaching is not permitted."""

    message = "Error! Insufficient permissions to attach."

    def __str__(self):
        return self.message
