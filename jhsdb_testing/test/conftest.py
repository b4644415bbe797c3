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
import os
import posixpath
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from jhsdb_testing.config import HarnessConfig
from jhsdb_testing.errors import ToolTimeoutError
from jhsdb_testing.system_under_test import ManagedProcess, SystemUnderTest

JHSDB_OUTPUT = {
    "clhsdb": "Attaching to process, please wait...\nhsdb> ",
    "jstack": "Deadlock Detection:\n\nNo deadlocks found.\n",
    "jmap": "Attaching to process ID 4242, please wait...\nusing thread-local object allocation.\nGarbage-First (G1) GC compiler detected\n",
    "jinfo": "Java System Properties:\njava.vm.name = OpenJDK 64-Bit Server VM\n",
    "jsnap": "java.threads.started=7 event(s)\njava.threads.live=6\n",
}


class FakeProcess(ManagedProcess):

    def __init__(self, sut: "FakeUnderTest", pid: int, args: List[str]) -> None:
        self._sut = sut
        self._pid = pid
        self.args = args
        self.lock_file = args[-1]
        self.running = True
        self.stop_calls = 0

    @property
    def pid(self) -> int:
        return self._pid

    def is_running(self) -> bool:
        return self.running

    def wait_for_exit(self, timeout: Optional[float] = None) -> Optional[int]:
        if self.running and self._sut.exists(self.lock_file):
            raise ToolTimeoutError("fake", timeout)
        self.running = False
        return 0

    def stop(self, timeout: float = 5.0) -> None:
        self.stop_calls += 1
        self.running = False


class FakeUnderTest(SystemUnderTest):
    """An environment that only pretends to run a JDK.

    Background processes behave like a LingeredApp that becomes ready at once
    and tool invocations answer with canned jhsdb output.
    """

    def __init__(self, system: str = "Linux", user: str = "root") -> None:
        self.work_dir = "/work"
        self.system_name = system
        self.machine_name = "x86_64"
        self.user = user
        self.files: Dict[str, float] = {}
        self.contents: Dict[str, str] = {}
        self.directories = set()
        self.executed: List[Tuple[List[str], Optional[str], Optional[float]]] = []
        self.processes: List[FakeProcess] = []
        self.scheduled_deletions: List[str] = []
        self.app_dies_on_start = False
        self.exit_codes: Dict[str, int] = {}
        self.outputs: Dict[str, str] = dict(JHSDB_OUTPUT)
        self.write_dump = True
        self.app_never_ready = False
        self.tool_missing = False
        self.hanging = set()

    def work_path(self, name: str) -> str:
        return posixpath.join(self.work_dir, name)

    def _mode(self, args: Sequence[str]) -> str:
        return next(arg for arg in args if arg in JHSDB_OUTPUT)

    def execute(self, args: Sequence[str], input: Optional[str] = None, timeout: Optional[float] = None,
                cwd: Optional[str] = None) -> Tuple[int, str]:
        args = list(args)
        self.executed.append((args, input, timeout))
        if self.tool_missing:
            raise FileNotFoundError(2, "No such file or directory", args[0])
        mode = self._mode(args)
        if mode in self.hanging:
            raise ToolTimeoutError(os.path.basename(args[0]), timeout)
        output = self.outputs[mode]
        for arg in args:
            if arg.startswith("--dumpfile=") and self.write_dump:
                dump = arg[len("--dumpfile="):]
                self.touch(dump)
                output += f"heap written to {dump}\n"
        return self.exit_codes.get(mode, 0), output

    def start_process(self, args: Sequence[str], cwd: Optional[str] = None,
                      name: Optional[str] = None) -> FakeProcess:
        process = FakeProcess(self, 4242 + len(self.processes), list(args))
        self.processes.append(process)
        if self.app_dies_on_start:
            process.running = False
        elif not self.app_never_ready:
            self.files[process.lock_file] += 1.0
        return process

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.directories

    def is_file(self, path: str) -> bool:
        return path in self.files

    def remove(self, path: str) -> None:
        self.files.pop(path, None)

    def touch(self, path: str) -> None:
        self.files[path] = self.files.get(path, 1000.0)

    def mtime(self, path: str) -> Optional[float]:
        return self.files.get(path)

    def read_file(self, path: str) -> Optional[str]:
        return self.contents.get(path)

    def delete_on_exit(self, path: str) -> None:
        self.scheduled_deletions.append(path)

    def install(self, local_path: str) -> str:
        return self.work_path(os.path.basename(local_path))

    def system(self) -> str:
        return self.system_name

    def machine(self) -> str:
        return self.machine_name

    def user_name(self) -> str:
        return self.user


@pytest.fixture()
def fake_sut():
    return FakeUnderTest()


@pytest.fixture()
def fake_config():
    return HarnessConfig(test_jdk="/jdk", app_start_timeout=1.0, app_stop_timeout=0.1, tool_timeout=5.0)
