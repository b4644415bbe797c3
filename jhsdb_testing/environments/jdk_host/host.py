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
import atexit
import getpass
import logging
import os
import platform
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Tuple

from jhsdb_testing.environments.jdk_host.line_reader import LineReader
from jhsdb_testing.errors import ToolTimeoutError
from jhsdb_testing.system_under_test import ManagedProcess, SystemUnderTest

logger = logging.getLogger(__name__)


def try_to_encode(data, encoding='utf-8'):
    if isinstance(data, str):
        return data.encode(encoding)
    if isinstance(data, bytes):
        return data
    raise TypeError("could not encode data. must be a str or bytes")


def try_to_decode(data, encoding='utf-8'):
    if isinstance(data, bytes):
        return data.decode(encoding, 'replace').rstrip("\n").rstrip("\r")
    if isinstance(data, str):
        return data.rstrip("\n").rstrip("\r")
    raise TypeError("could not decode data. must be a str or bytes")


def _remove_quietly(path):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exception:
        logger.warning(f"Could not delete {path} on exit: {exception}")


class HostProcess(ManagedProcess):
    """A child process of the test runner whose output goes through a LineReader."""

    def __init__(self, process: subprocess.Popen, name: str, logfile: Optional[str] = None) -> None:
        self._process = process
        self.name = name

        def reader() -> Optional[str]:
            line = self._process.stdout.readline()
            if not line:  # EOF detected
                self._process.stdout.close()
                return None
            return try_to_decode(line)

        self._line_reader = LineReader(readline_func=reader, name=name, logfile=logfile)
        self._line_reader.start()

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def stdin(self):
        return self._process.stdin

    def is_running(self) -> bool:
        return self._process.poll() is None

    def wait_for_exit(self, timeout: Optional[float] = None) -> Optional[int]:
        try:
            exit_code = self._process.wait(timeout)
        except subprocess.TimeoutExpired as expired:
            raise ToolTimeoutError(self.name, timeout) from expired
        # The pipe may stay open if the process left children behind.
        self._line_reader.join(timeout=5)
        return exit_code

    def stop(self, timeout: float = 5.0) -> None:
        if self._process.poll() is None:
            logger.debug(f"Terminating {self.name} ({self.pid})")
            self._process.terminate()
            try:
                self._process.wait(timeout)
            except subprocess.TimeoutExpired:
                logger.warning(f"{self.name} ({self.pid}) ignored SIGTERM, killing it")
                self._process.kill()
                self._process.wait()
        self._line_reader.join(timeout=5)

    def output(self) -> str:
        return "\n".join(self._line_reader.drain())


class HostUnderTest(SystemUnderTest):
    """Runs the JDK tools and the companion app directly on this machine."""

    def __init__(self, work_dir: Optional[str] = None, logfile: Optional[str] = None) -> None:
        self.work_dir = os.path.abspath(work_dir or os.getcwd())
        self._logfile = logfile

    def _spawn(self, args: Sequence[str], stdin, cwd: Optional[str], name: Optional[str]) -> HostProcess:
        args = [str(arg) for arg in args]
        logger.info(f"Running: {' '.join(args)}")
        process = subprocess.Popen(args, stdin=stdin, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                   cwd=cwd or self.work_dir, close_fds=True)
        return HostProcess(process, name or os.path.basename(args[0]), self._logfile)

    def execute(self, args: Sequence[str], input: Optional[str] = None, timeout: Optional[float] = None,
                cwd: Optional[str] = None) -> Tuple[int, str]:
        process = self._spawn(args, subprocess.PIPE if input is not None else subprocess.DEVNULL, cwd, None)
        if input is not None:
            try:
                process.stdin.write(try_to_encode(input))
                process.stdin.flush()
            except BrokenPipeError:
                logger.warning(f"{process.name} closed its input before reading it")
            finally:
                try:
                    process.stdin.close()
                except BrokenPipeError:
                    pass
        try:
            exit_code = process.wait_for_exit(timeout)
        except ToolTimeoutError:
            process.stop()
            raise
        return exit_code, process.output()

    def start_process(self, args: Sequence[str], cwd: Optional[str] = None,
                      name: Optional[str] = None) -> HostProcess:
        return self._spawn(args, subprocess.DEVNULL, cwd, name)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def remove(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass

    def touch(self, path: str) -> None:
        Path(path).touch()

    def mtime(self, path: str) -> Optional[float]:
        try:
            return os.path.getmtime(path)
        except FileNotFoundError:
            return None

    def read_file(self, path: str) -> Optional[str]:
        try:
            with open(path, encoding="utf-8") as file:
                return file.read()
        except OSError:
            return None

    def delete_on_exit(self, path: str) -> None:
        atexit.register(_remove_quietly, path)

    def install(self, local_path: str) -> str:
        return os.path.abspath(local_path)

    def system(self) -> str:
        return platform.system()

    def machine(self) -> str:
        return platform.machine()

    def user_name(self) -> str:
        return getpass.getuser()
