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
from dataclasses import dataclass
from typing import List, Optional, Tuple

from jhsdb_testing.config import HarnessConfig

SA_MODULE = "jdk.hotspot.agent"
SA_LAUNCHER_CLASS = "sun.jvm.hotspot.SALauncher"
JAVA_LAUNCHERS = ("java", "java.exe")


def jdk_tool_path(test_jdk: Optional[str], tool: str) -> str:
    """Path of a JDK tool, or the bare tool name if it has to come from the PATH"""
    if not test_jdk:
        return tool
    return os.path.join(test_jdk, "bin", tool)


@dataclass(frozen=True)
class ToolInvocation:
    """One complete command line of a JDK tool."""

    executable: str
    args: Tuple[str, ...] = ()

    @property
    def command(self) -> List[str]:
        return [self.executable, *self.args]

    @property
    def name(self) -> str:
        return os.path.basename(self.executable)

    def __str__(self):
        return " ".join(self.command)


class ToolLauncher:
    """Collects the arguments of a JDK tool invocation.

    VM arguments given to a tool other than the ``java`` launcher itself are
    passed through with the ``-J`` prefix the JDK tools understand.
    """

    def __init__(self, executable: str) -> None:
        self.executable = executable
        self._vm_args: List[str] = []
        self._tool_args: List[str] = []

    @classmethod
    def create_using_test_jdk(cls, tool: str, test_jdk: Optional[str] = None) -> "ToolLauncher":
        return cls(jdk_tool_path(test_jdk, tool))

    def add_vm_arg(self, arg: str) -> "ToolLauncher":
        self._vm_args.append(arg)
        return self

    def add_tool_arg(self, arg: str) -> "ToolLauncher":
        self._tool_args.append(arg)
        return self

    def build(self) -> ToolInvocation:
        if os.path.basename(self.executable) in JAVA_LAUNCHERS:
            vm_args = list(self._vm_args)
        else:
            vm_args = [f"-J{arg}" for arg in self._vm_args]
        return ToolInvocation(self.executable, tuple(vm_args + self._tool_args))


def create_sa_launcher(config: HarnessConfig) -> ToolLauncher:
    """Launcher of the serviceability agent, either ``jhsdb`` or ``java`` with the agent's entry class."""
    if config.use_java_launcher:
        # The java launcher takes additional VM options, e.g. for logging, when debugging the agent.
        launcher = ToolLauncher.create_using_test_jdk("java", config.test_jdk)
        launcher.add_tool_arg("-m")
        launcher.add_tool_arg(f"{SA_MODULE}/{SA_LAUNCHER_CLASS}")
    else:
        launcher = ToolLauncher.create_using_test_jdk("jhsdb", config.test_jdk)

    for option in config.vm_options:
        launcher.add_vm_arg(option)
    return launcher
