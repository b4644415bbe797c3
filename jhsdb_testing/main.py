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
import sys
from typing import List, Optional

import pytest
from runfiles import Runfiles

logger = logging.getLogger(__name__)

PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_RLOCATION = "_main/jhsdb_testing/pytest.toml"


def get_output_dir() -> Optional[str]:
    """Prepare the path for the results file, based on environmental
    variables defined by Bazel.

    As per docs, tests should not rely on any other environmental
    variables, so the framework will omit writing to file
    if necessary variables are undefined.
    See: https://docs.bazel.build/versions/master/test-encyclopedia.html#initial-conditions

    :returns: string representing path to the output directory, or None
    :rtype: str
    """
    output_dir_env_variable = "TEST_UNDECLARED_OUTPUTS_DIR"
    output_dir = os.environ.get(output_dir_env_variable)

    if not output_dir:
        if os.environ.get("BUILD_WORKSPACE_DIRECTORY"):
            output_dir = os.getcwd()
            logger.warning(f"Not a test runner. Test outputs will be saved to: {output_dir}")
        else:
            logger.warning(
                f"Environment variable '{output_dir_env_variable}' used as the output directory is not set. "
                "Saving custom test results to a custom file will not be enabled."
            )

    return output_dir


def get_config_path() -> str:
    """Locates pytest.toml in the Bazel runfiles, or next to this file when installed as a package."""
    r = Runfiles.Create()
    if r is not None:
        ini_path = r.Rlocation(CONFIG_RLOCATION)
        if ini_path and os.path.exists(ini_path):
            return ini_path
    return os.path.join(PACKAGE_DIR, "pytest.toml")


def main(argv: Optional[List[str]] = None) -> int:
    # This is the common main function, that is used by _all_ launcher test runs.
    args = list(sys.argv[1:] if argv is None else argv)

    output_dir = get_output_dir()
    if output_dir:
        args += [f"--junitxml={os.path.join(output_dir, 'jhsdb-launcher-test-results.xml')}"]

    args += ["-c", get_config_path(), "--rootdir", PACKAGE_DIR, os.path.join(PACKAGE_DIR, "test")]
    return pytest.main(args)


if __name__ == "__main__":
    sys.exit(main())
