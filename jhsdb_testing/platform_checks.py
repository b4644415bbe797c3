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
Platform predicates deciding whether the serviceability agent can be used
in a given environment.
"""

import logging

from jhsdb_testing.system_under_test import SystemUnderTest

logger = logging.getLogger(__name__)

DENY_PTRACE_PATH = "/sys/fs/selinux/booleans/deny_ptrace"
PTRACE_SCOPE_PATH = "/proc/sys/kernel/yama/ptrace_scope"


def is_osx(sut: SystemUnderTest) -> bool:
    return sut.system() == "Darwin"


def is_linux(sut: SystemUnderTest) -> bool:
    return sut.system() == "Linux"


def is_aix(sut: SystemUnderTest) -> bool:
    return sut.system() == "AIX"


def can_ptrace_attach_linux(sut: SystemUnderTest) -> bool:
    """Checks the SELinux and YAMA settings that restrict ptrace.

    With YAMA's ptrace_scope 1 a process may only trace its descendants.
    The tool is a sibling of the companion app, so only 0 lets a regular
    user attach, and 3 forbids it for everybody.
    """
    deny_ptrace = sut.read_file(DENY_PTRACE_PATH)
    if deny_ptrace is not None and "1" in deny_ptrace:
        logger.info("SELinux deny_ptrace is enabled")
        return False

    ptrace_scope = sut.read_file(PTRACE_SCOPE_PATH)
    if ptrace_scope is not None:
        ptrace_scope = ptrace_scope.strip()
        if ptrace_scope.startswith("3"):
            logger.info("YAMA ptrace_scope 3 disables ptrace attach")
            return False
        if sut.user_name() != "root" and not ptrace_scope.startswith("0"):
            logger.info(f"YAMA ptrace_scope {ptrace_scope} needs root to attach")
            return False
    return True


def can_attach_osx(sut: SystemUnderTest) -> bool:
    return sut.user_name() == "root"


def should_sa_attach(sut: SystemUnderTest) -> bool:
    """Tells whether this environment lets one process inspect another for diagnostics."""
    if is_aix(sut):
        return False
    if is_linux(sut):
        if sut.machine() == "s390x":
            return False
        return can_ptrace_attach_linux(sut)
    if is_osx(sut):
        return can_attach_osx(sut)
    return True
