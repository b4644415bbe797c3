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
import time
from enum import Enum
from typing import Optional, Sequence

from jhsdb_testing.config import HarnessConfig
from jhsdb_testing.errors import StartupError, ToolTimeoutError
from jhsdb_testing.system_under_test import ManagedProcess, SystemUnderTest
from jhsdb_testing.tool_launcher import jdk_tool_path

logger = logging.getLogger(__name__)

APP_SOURCE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "LingeredApp.java")


class AppState(Enum):
    NOT_STARTED = "not-started"
    RUNNING = "running"
    STOPPED = "stopped"


class LingeredApp:
    """
    A long running companion process that only exists to be inspected.

    The app lives as long as its lock file exists and keeps touching it,
    a changed modification time tells that the app is up. Removing the
    lock file asks the app to leave.
    """

    def __init__(self, sut: SystemUnderTest, command: Sequence[str], lock_file: str,
                 stop_timeout: float = 10.0) -> None:
        self._sut = sut
        self.command = list(command) + [lock_file]
        self.lock_file = lock_file
        self.stop_timeout = stop_timeout
        self.state = AppState.NOT_STARTED
        self._process: Optional[ManagedProcess] = None

    @classmethod
    def start_app(cls, sut: SystemUnderTest, config: HarnessConfig, vm_args: Sequence[str] = ()) -> "LingeredApp":
        """Launches the bundled app with the JDK under test and waits until it is ready.

        :raises StartupError: if the app cannot be launched or is not ready in time
        """
        try:
            source = sut.install(APP_SOURCE)
        except OSError as exception:
            raise StartupError(f"Could not install {APP_SOURCE}: {exception}", exception) from exception

        command = [jdk_tool_path(config.test_jdk, "java"), *config.vm_options, *vm_args, source]
        lock_file = sut.work_path(f"lingeredapp.{int(time.time() * 1000)}.lck")
        app = cls(sut, command, lock_file, stop_timeout=config.app_stop_timeout)
        return app.start(config.app_start_timeout)

    @staticmethod
    def stop(app: Optional["LingeredApp"]) -> None:
        if app is not None:
            app.stop_app()

    @property
    def pid(self) -> int:
        if self._process is None:
            raise StartupError("LingeredApp has not been started")
        return self._process.pid

    def start(self, timeout: float = 100.0) -> "LingeredApp":
        if self.state is not AppState.NOT_STARTED:
            raise StartupError(f"LingeredApp cannot be started, it is {self.state.value}")

        try:
            self._sut.remove(self.lock_file)
            self._sut.touch(self.lock_file)
            lock_creation_time = self._sut.mtime(self.lock_file)
            self._process = self._sut.start_process(self.command, name="LingeredApp")
        except OSError as exception:
            self._sut.remove(self.lock_file)
            raise StartupError(f"Could not launch LingeredApp: {exception}", exception) from exception
        except StartupError:
            self._sut.remove(self.lock_file)
            raise
        self.state = AppState.RUNNING

        try:
            self._wait_app_ready(lock_creation_time, timeout)
        except BaseException:
            self.stop_app()
            raise
        logger.info(f"LingeredApp is running with pid {self.pid}")
        return self

    def _wait_app_ready(self, lock_creation_time: Optional[float], timeout: float) -> None:
        start_time = time.time()
        while True:
            modification_time = self._sut.mtime(self.lock_file)
            if modification_time is not None and modification_time != lock_creation_time:
                return
            if not self._process.is_running():
                exit_code = self._process.wait_for_exit(timeout=1)
                raise StartupError(f"LingeredApp exited before it was ready, exit code {exit_code}")
            if time.time() - start_time > timeout:
                raise StartupError(f"LingeredApp was not ready after {timeout} seconds")
            time.sleep(0.1)

    def stop_app(self) -> None:
        if self.state is not AppState.RUNNING:
            return
        self.state = AppState.STOPPED
        try:
            self._sut.remove(self.lock_file)
            self._process.wait_for_exit(self.stop_timeout)
        except ToolTimeoutError:
            logger.warning(f"LingeredApp {self.pid} ignored the removal of its lock file")
        finally:
            self._process.stop()
        logger.info(f"LingeredApp {self.pid} stopped")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop_app()
