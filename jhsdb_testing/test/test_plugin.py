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
import pytest

from jhsdb_testing.harness import StepOutcome
from jhsdb_testing.plugin import assert_step_passed


def test_passed_step_is_silent():
    assert_step_passed(StepOutcome.passed("jinfo"))


def test_skipped_step_skips_test():
    with pytest.raises(pytest.skip.Exception, match="not expected to work on OS X"):
        assert_step_passed(StepOutcome.skipped("jstack", "not expected to work on OS X"))


def test_failed_step_fails_test():
    with pytest.raises(pytest.fail.Exception, match="non-zero exit code 1"):
        assert_step_passed(StepOutcome.failed("jmap", "Test ERROR in jmap: jhsdb terminated with non-zero exit code 1"))


def test_harness_config_reflects_command_line(harness_config, request):
    assert harness_config.fail_fast is not request.config.getoption("collect_all")
    assert harness_config.use_java_launcher is request.config.getoption("use_java_launcher")
    assert "-Xmx256m" == harness_config.heap_limit
