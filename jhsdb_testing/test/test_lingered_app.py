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
import re
import sys
from dataclasses import replace

import pytest

from jhsdb_testing.apps.lingered_app import AppState, LingeredApp
from jhsdb_testing.environments.jdk_host.host import HostUnderTest
from jhsdb_testing.errors import StartupError

# Follows the lock file protocol of LingeredApp.java.
LOCK_FILE_TOUCHER = """
import os, sys, time
lock = sys.argv[1]
while os.path.exists(lock):
    try:
        os.utime(lock)
    except FileNotFoundError:
        break
    time.sleep(0.05)
"""


def test_start_app_launches_bundled_source(fake_sut, fake_config):
    config = replace(fake_config, vm_options=["-Xlog:disable"])

    app = LingeredApp.start_app(fake_sut, config, ["-Xmx256m"])

    command = fake_sut.processes[0].args
    assert command[:4] == ["/jdk/bin/java", "-Xlog:disable", "-Xmx256m", "/work/LingeredApp.java"]
    assert re.fullmatch(r"/work/lingeredapp\.\d+\.lck", command[4])
    assert app.state is AppState.RUNNING
    assert app.pid == 4242
    app.stop_app()


def test_stop_app_removes_lock_and_is_idempotent(fake_sut, fake_config):
    app = LingeredApp.start_app(fake_sut, fake_config)

    app.stop_app()
    app.stop_app()

    assert app.state is AppState.STOPPED
    assert not fake_sut.exists(app.lock_file)
    assert fake_sut.processes[0].stop_calls == 1


def test_stopping_an_app_that_never_started_does_nothing(fake_sut):
    app = LingeredApp(fake_sut, ["java"], "/work/never.lck")

    app.stop_app()
    LingeredApp.stop(None)

    assert app.state is AppState.NOT_STARTED
    assert fake_sut.processes == []


def test_pid_of_unstarted_app_raises(fake_sut):
    with pytest.raises(StartupError):
        LingeredApp(fake_sut, ["java"], "/work/never.lck").pid


def test_app_cannot_be_started_twice(fake_sut, fake_config):
    with LingeredApp.start_app(fake_sut, fake_config) as app:
        with pytest.raises(StartupError, match="it is running"):
            app.start()


def test_context_manager_stops_app_on_error(fake_sut, fake_config):
    with pytest.raises(RuntimeError):
        with LingeredApp.start_app(fake_sut, fake_config):
            raise RuntimeError("step blew up")

    assert not fake_sut.processes[0].running
    assert fake_sut.files == {}


def test_start_app_fails_when_app_dies(fake_sut, fake_config):
    fake_sut.app_dies_on_start = True

    with pytest.raises(StartupError, match="exited before it was ready"):
        LingeredApp.start_app(fake_sut, fake_config)

    assert fake_sut.files == {}


def test_start_app_times_out(fake_sut, fake_config):
    fake_sut.app_never_ready = True

    with pytest.raises(StartupError, match="not ready after 0.2 seconds"):
        LingeredApp.start_app(fake_sut, replace(fake_config, app_start_timeout=0.2))

    assert fake_sut.processes[0].stop_calls == 1


def test_missing_java_is_a_startup_error(tmp_path):
    sut = HostUnderTest(work_dir=str(tmp_path))
    app = LingeredApp(sut, [str(tmp_path / "no-such-java")], str(tmp_path / "app.lck"))

    with pytest.raises(StartupError, match="Could not launch LingeredApp"):
        app.start(timeout=1)

    assert not (tmp_path / "app.lck").exists()


def test_lock_file_protocol_with_real_process(tmp_path):
    sut = HostUnderTest(work_dir=str(tmp_path))
    app = LingeredApp(sut, [sys.executable, "-c", LOCK_FILE_TOUCHER], str(tmp_path / "app.lck"), stop_timeout=10)

    with app.start(timeout=30):
        assert app.pid > 0
        assert (tmp_path / "app.lck").exists()

    assert app.state is AppState.STOPPED
    assert not (tmp_path / "app.lck").exists()
    assert not app._process.is_running()


def test_start_app_stops_app_when_ready_poll_raises(fake_sut, fake_config, monkeypatch):
    lock_mtime = fake_sut.mtime

    def mtime(path):
        if fake_sut.processes:
            raise PermissionError(13, "Permission denied", path)
        return lock_mtime(path)

    monkeypatch.setattr(fake_sut, "mtime", mtime)

    with pytest.raises(PermissionError):
        LingeredApp.start_app(fake_sut, fake_config)

    assert not fake_sut.processes[0].running
    assert fake_sut.processes[0].stop_calls == 1
    assert fake_sut.files == {}


def test_stop_app_stops_process_when_lock_removal_fails(fake_sut, fake_config, monkeypatch):
    app = LingeredApp.start_app(fake_sut, fake_config)

    def remove(path):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(fake_sut, "remove", remove)

    with pytest.raises(PermissionError):
        app.stop_app()

    assert fake_sut.processes[0].stop_calls == 1
    assert app.state is AppState.STOPPED
