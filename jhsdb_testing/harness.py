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

"""
Basic test of the jhsdb launcher.

Every step starts its own LingeredApp, runs one jhsdb mode against it and
checks exit code and output. The app is stopped again whatever the step
outcome is, so no state leaks from one step into the next.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Callable, List, Optional, Sequence

from jhsdb_testing.apps.lingered_app import LingeredApp
from jhsdb_testing.config import HarnessConfig
from jhsdb_testing.errors import ArtifactError, HarnessError, PermissionSkip
from jhsdb_testing.platform_checks import is_osx, should_sa_attach
from jhsdb_testing.process_tools import ExecutionResult, execute_process
from jhsdb_testing.system_under_test import SystemUnderTest
from jhsdb_testing.tool_launcher import create_sa_launcher

logger = logging.getLogger(__name__)


class StepStatus(Enum):
    PASSED = "passed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    step: str
    status: StepStatus
    reason: Optional[str] = None

    @classmethod
    def passed(cls, step: str) -> "StepOutcome":
        return cls(step, StepStatus.PASSED)

    @classmethod
    def skipped(cls, step: str, reason: str) -> "StepOutcome":
        return cls(step, StepStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, step: str, reason: str) -> "StepOutcome":
        return cls(step, StepStatus.FAILED, reason)


@dataclass
class RunReport:
    outcomes: List[StepOutcome] = field(default_factory=list)
    skipped_reason: Optional[PermissionSkip] = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    @property
    def failures(self) -> List[StepOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is StepStatus.FAILED]

    @property
    def passed(self) -> bool:
        return not self.failures


class Harness:

    def __init__(self, sut: SystemUnderTest, config: Optional[HarnessConfig] = None) -> None:
        self.sut = sut
        self.config = config or HarnessConfig()

    def _step(self, name: str, action: Callable[[], None]) -> StepOutcome:
        logger.info(f"Starting step {name}")
        try:
            action()
        except Exception as exception:
            logger.error(f"Step {name} failed: {exception}")
            return StepOutcome.failed(name, f"Test ERROR in {name}: {exception}")
        logger.info(f"Step {name} passed")
        return StepOutcome.passed(name)

    def _launch(self, tool_args: Sequence[str], vm_args: Sequence[str] = (),
                input: Optional[str] = None) -> ExecutionResult:
        if not tool_args:
            raise HarnessError("No jhsdb tool given")
        logger.info("Starting LingeredApp")
        with LingeredApp.start_app(self.sut, self.config, vm_args) as app:
            logger.info(f"Starting {tool_args[0]} against {app.pid}")
            launcher = create_sa_launcher(self.config)
            for arg in tool_args:
                launcher.add_tool_arg(arg)
            launcher.add_tool_arg(f"--pid={app.pid}")
            return execute_process(self.sut, launcher.build(), self.config.tool_timeout, input=input)

    def _launch_and_check(self, expected: str, tool_args: Sequence[str]) -> None:
        result = self._launch(tool_args, vm_args=[self.config.heap_limit])
        result.should_contain(expected)
        result.should_have_exit_value(0)

    def run_interactive_step(self) -> StepOutcome:
        """Runs clhsdb and quits it right away.

        The output is a free-form shell transcript, only the exit code counts.
        """
        def action():
            self._launch(["clhsdb"], input="quit\n").should_have_exit_value(0)

        return self._step("clhsdb", action)

    def run_asserted_step(self, expected: str, tool_args: Sequence[str]) -> StepOutcome:
        tool_args = list(tool_args)
        return self._step(" ".join(tool_args), partial(self._launch_and_check, expected, tool_args))

    def run_skippable_step(self, expected: str, tool_args: Sequence[str]) -> StepOutcome:
        """Same as run_asserted_step, except on OS X where nothing is launched."""
        if is_osx(self.sut):
            # Coredump stackwalking is not implemented for Darwin
            logger.info("This test is not expected to work on OS X. Skipping")
            return StepOutcome.skipped(" ".join(tool_args), "not expected to work on OS X")
        return self.run_asserted_step(expected, tool_args)

    def run_heap_dump_step(self) -> StepOutcome:
        def action():
            dump = self.sut.work_path(f"jhsdb.jmap.dump.{int(time.time() * 1000)}.hprof")
            if self.sut.exists(dump):
                self.sut.remove(dump)
            self.sut.delete_on_exit(dump)

            self._launch_and_check("heap written to", ["jmap", "--binaryheap", f"--dumpfile={dump}"])

            if not (self.sut.exists(dump) and self.sut.is_file(dump)):
                raise ArtifactError(f"Could not create dump file {dump}")

        return self._step("jmap heap dump", action)

    def steps(self) -> List[Callable[[], StepOutcome]]:
        return [
            self.run_interactive_step,
            partial(self.run_skippable_step, "No deadlocks found", ["jstack"]),
            partial(self.run_asserted_step, "compiler detected", ["jmap"]),
            partial(self.run_asserted_step, "Java System Properties", ["jinfo"]),
            partial(self.run_asserted_step, "java.threads", ["jsnap"]),
            self.run_heap_dump_step,
        ]

    def run(self) -> RunReport:
        """Runs all steps in order.

        Without the permission to attach nothing is started and the report is
        marked as skipped. With ``fail_fast`` the first failing step ends the run.
        """
        if not should_sa_attach(self.sut):
            # Silently skip the test if we don't have enough permissions to attach
            reason = PermissionSkip()
            logger.error(str(reason))
            return RunReport(skipped_reason=reason)

        report = RunReport()
        for step in self.steps():
            outcome = step()
            report.outcomes.append(outcome)
            if outcome.status is StepStatus.FAILED and self.config.fail_fast:
                logger.error("Aborting the remaining steps")
                break

        if report.passed:
            logger.info("Test PASSED")
        else:
            logger.error(f"Test FAILED: {'; '.join(outcome.reason for outcome in report.failures)}")
        return report
