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

from jhsdb_testing.config import HarnessConfig
from jhsdb_testing.environments.jdk_docker.docker import docker_under_test
from jhsdb_testing.environments.jdk_host.host import HostUnderTest
from jhsdb_testing.harness import StepOutcome, StepStatus
from jhsdb_testing.tool_launcher import jdk_tool_path


def pytest_addoption(parser):
    group = parser.getgroup("jhsdb", "jhsdb launcher testing")
    group.addoption(
        "--test-jdk",
        action="store",
        default=None,
        help="Home of the JDK under test. Defaults to $TEST_JDK, $JAVA_HOME or the JDK of jhsdb on the PATH.",
    )
    group.addoption(
        "--use-java-launcher",
        action="store_true",
        default=False,
        help="Start the serviceability agent through java instead of jhsdb.",
    )
    group.addoption(
        "--tool-timeout",
        action="store",
        type=float,
        default=None,
        help="Seconds a tool may run before it is killed.",
    )
    group.addoption(
        "--app-start-timeout",
        action="store",
        type=float,
        default=None,
        help="Seconds to wait for the LingeredApp to come up.",
    )
    group.addoption(
        "--collect-all",
        action="store_true",
        default=False,
        help="Run every step of a full launcher run instead of stopping at the first failure.",
    )
    group.addoption(
        "--tool-log",
        action="store",
        default=None,
        help="File that receives a copy of all tool output.",
    )
    group.addoption(
        "--docker-image",
        action="store",
        default=None,
        help="Docker image with a JDK to run tests against. The tests run on this host if omitted.",
    )
    group.addoption(
        "--docker-image-bootstrap",
        action="store",
        required=False,
        help="Docker image bootstrap command, that will be executed before referencing the container.",
    )


def assert_step_passed(outcome: StepOutcome) -> None:
    """Reports a step outcome to pytest."""
    if outcome.status is StepStatus.SKIPPED:
        pytest.skip(outcome.reason)
    if outcome.status is StepStatus.FAILED:
        pytest.fail(outcome.reason, pytrace=False)


@pytest.fixture(scope="session")
def harness_config(request):
    options = request.config.option
    # The JDK of a container is only known from --test-jdk or its PATH.
    base = HarnessConfig() if options.docker_image else HarnessConfig.from_env()
    return base.with_overrides(
        test_jdk=options.test_jdk,
        tool_timeout=options.tool_timeout,
        app_start_timeout=options.app_start_timeout,
        tool_log=options.tool_log,
        use_java_launcher=options.use_java_launcher,
        fail_fast=not options.collect_all,
    )


@pytest.fixture()
def sut(request, harness_config, tmp_path):
    docker_image = request.config.getoption("docker_image")
    if docker_image:
        with docker_under_test(docker_image, request.config.getoption("docker_image_bootstrap")) as docker_sut:
            _skip_without_jhsdb(docker_sut, harness_config)
            yield docker_sut
        return

    host_under_test = HostUnderTest(work_dir=str(tmp_path), logfile=harness_config.tool_log)
    _skip_without_jhsdb(host_under_test, harness_config)
    yield host_under_test


def _skip_without_jhsdb(sut, harness_config):
    if harness_config.test_jdk is not None:
        jhsdb = jdk_tool_path(harness_config.test_jdk, "jhsdb")
        if not sut.is_file(jhsdb):
            pytest.skip(f"No JDK under test: {jhsdb} does not exist")
    elif sut.execute(["sh", "-c", "command -v jhsdb"])[0] != 0:
        pytest.skip("No JDK under test: set --test-jdk or put jhsdb on the PATH")
