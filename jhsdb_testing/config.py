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
import os
import shutil
from dataclasses import dataclass, field, replace
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)

TEST_JDK_ENV_VARIABLES = ("TEST_JDK", "JAVA_HOME")
VM_OPTIONS_ENV_VARIABLES = ("TESTVMOPTS", "TESTJAVAOPTS")


@dataclass
class HarnessConfig:
    """Settings shared by every step of a launcher test run.

    Attributes:
        test_jdk: Home directory of the JDK under test. ``None`` means the
            tools are taken from the ``PATH`` of the environment.
        use_java_launcher: Start the serviceability agent through ``java``
            and its entry class instead of the ``jhsdb`` binary. Handy when
            extra VM options have to be passed to the tool for debugging.
        vm_options: Additional JVM options, given to the companion app and
            (prefixed with ``-J``) to the tool.
        heap_limit: Heap bound of the companion app for the asserted steps.
        tool_timeout: Seconds a tool may run before it is killed.
        app_start_timeout: Seconds to wait for the companion app to be ready.
        app_stop_timeout: Seconds to wait for the companion app to leave
            after its lock file was removed.
        fail_fast: Stop a run at the first failing step.
        tool_log: Optional file mirroring every line of tool output.
    """

    test_jdk: Optional[str] = None
    use_java_launcher: bool = False
    vm_options: List[str] = field(default_factory=list)
    heap_limit: str = "-Xmx256m"
    tool_timeout: float = 120.0
    app_start_timeout: float = 100.0
    app_stop_timeout: float = 10.0
    fail_fast: bool = True
    tool_log: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HarnessConfig":
        """Builds a configuration from the jtreg style environment variables."""
        environ = os.environ if environ is None else environ
        return cls(test_jdk=find_test_jdk(environ), vm_options=vm_options_from_env(environ))

    def with_overrides(self, **overrides) -> "HarnessConfig":
        """Returns a copy with every override applied that is not None."""
        return replace(self, **{name: value for name, value in overrides.items() if value is not None})


def vm_options_from_env(environ: Mapping[str, str]) -> List[str]:
    options = []
    for variable in VM_OPTIONS_ENV_VARIABLES:
        options += environ.get(variable, "").split()
    return options


def find_test_jdk(environ: Mapping[str, str]) -> Optional[str]:
    """Locates the JDK under test.

    The explicit environment variables win; otherwise the JDK home is derived
    from a ``jhsdb`` found on the ``PATH``.

    :returns: the JDK home directory or None if no JDK could be found
    """
    for variable in TEST_JDK_ENV_VARIABLES:
        test_jdk = environ.get(variable)
        if test_jdk:
            logger.debug(f"Using test JDK from {variable}: {test_jdk}")
            return test_jdk

    jhsdb = shutil.which("jhsdb", path=environ.get("PATH"))
    if jhsdb:
        test_jdk = os.path.dirname(os.path.dirname(os.path.realpath(jhsdb)))
        logger.debug(f"Using test JDK found on PATH: {test_jdk}")
        return test_jdk

    logger.warning(f"No test JDK found. Set one of {', '.join(TEST_JDK_ENV_VARIABLES)} or use --test-jdk.")
    return None
