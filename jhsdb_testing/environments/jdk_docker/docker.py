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
import io
import logging
import math
import os
import posixpath
import re
import shlex
import subprocess
import tarfile
import time
from contextlib import contextmanager
from typing import List, Optional, Sequence, Tuple

import docker as pypi_docker

from jhsdb_testing.errors import StartupError, ToolTimeoutError
from jhsdb_testing.system_under_test import ManagedProcess, SystemUnderTest

logger = logging.getLogger(__name__)

# Exit status of coreutils timeout(1), and of a command it had to kill.
TIMEOUT_EXIT_CODES = (124, 137)


class DockerProcess(ManagedProcess):
    """A background process of the container, known only by its pid."""

    def __init__(self, sut: "DockerUnderTest", pid: int, name: str) -> None:
        self._sut = sut
        self._pid = pid
        self.name = name

    @property
    def pid(self) -> int:
        return self._pid

    def is_running(self) -> bool:
        exit_code, _ = self._sut.run_internal(["kill", "-0", str(self._pid)])
        return exit_code == 0

    def wait_for_exit(self, timeout: Optional[float] = None) -> Optional[int]:
        start_time = time.time()
        while self.is_running():
            if timeout is not None and time.time() - start_time > timeout:
                raise ToolTimeoutError(self.name, timeout)
            time.sleep(0.1)
        # The exit code of a process detached with '&' is not retrievable.
        return None

    def stop(self, timeout: float = 5.0) -> None:
        if not self.is_running():
            return
        logger.debug(f"Terminating {self.name} ({self._pid}) in container")
        self._sut.run_internal(["kill", str(self._pid)])
        try:
            self.wait_for_exit(timeout)
        except ToolTimeoutError:
            logger.warning(f"{self.name} ({self._pid}) ignored SIGTERM, killing it")
            self._sut.run_internal(["kill", "-9", str(self._pid)])


class DockerUnderTest(SystemUnderTest):
    """Runs the JDK tools and the companion app inside a running container."""

    def __init__(self, container, work_dir: str = "/tmp") -> None:
        self.__container = container
        self.work_dir = work_dir
        self._delete_on_exit: List[str] = []

    def work_path(self, name: str) -> str:
        return posixpath.join(self.work_dir, name)

    def run_internal(self, command: Sequence[str], workdir: Optional[str] = None) -> Tuple[int, str]:
        exit_code, output = self.__container.exec_run(list(command), workdir=workdir or self.work_dir)
        return exit_code, (output or b"").decode("utf-8", "replace")

    def execute(self, args: Sequence[str], input: Optional[str] = None, timeout: Optional[float] = None,
                cwd: Optional[str] = None) -> Tuple[int, str]:
        command = [str(arg) for arg in args]
        name = posixpath.basename(command[0])
        if timeout is not None:
            command = ["timeout", "--kill-after=5", str(math.ceil(timeout))] + command
        if input is not None:
            command = ["sh", "-c", f"printf '%s' {shlex.quote(input)} | {shlex.join(command)}"]
        logger.info(f"Running in container: {shlex.join(command)}")

        exit_code, output = self.run_internal(command, workdir=cwd)
        if timeout is not None and exit_code in TIMEOUT_EXIT_CODES:
            raise ToolTimeoutError(name, timeout)

        tool_logger = logging.getLogger(name)
        for line in output.splitlines():
            tool_logger.info(line.strip())
        return exit_code, output

    def start_process(self, args: Sequence[str], cwd: Optional[str] = None,
                      name: Optional[str] = None) -> DockerProcess:
        command = shlex.join(str(arg) for arg in args)
        name = name or posixpath.basename(str(args[0]))
        logger.info(f"Starting in container: {command}")
        exit_code, output = self.run_internal(
            ["sh", "-c", f"{command} > /dev/null 2>&1 & echo CREATED_PID=$!"], workdir=cwd)
        match = re.search(r'CREATED_PID=(\d+)', output)
        if exit_code != 0 or match is None:
            raise StartupError(f"Could not start {name} in container: {output.strip()}")
        return DockerProcess(self, int(match.group(1)), name)

    def exists(self, path: str) -> bool:
        return self.run_internal(["test", "-e", path])[0] == 0

    def is_file(self, path: str) -> bool:
        return self.run_internal(["test", "-f", path])[0] == 0

    def remove(self, path: str) -> None:
        self.run_internal(["rm", "-f", path])

    def touch(self, path: str) -> None:
        exit_code, output = self.run_internal(["touch", path])
        if exit_code != 0:
            raise OSError(f"Could not touch {path} in container: {output.strip()}")

    def mtime(self, path: str) -> Optional[float]:
        exit_code, output = self.run_internal(["stat", "-c", "%Y", path])
        if exit_code != 0:
            return None
        return float(output.strip())

    def read_file(self, path: str) -> Optional[str]:
        exit_code, output = self.run_internal(["cat", path])
        return output if exit_code == 0 else None

    def delete_on_exit(self, path: str) -> None:
        self._delete_on_exit.append(path)

    def install(self, local_path: str) -> str:
        name = posixpath.basename(local_path)
        data = io.BytesIO()
        with tarfile.open(fileobj=data, mode="w") as archive:
            archive.add(local_path, arcname=name)
        if not self.__container.put_archive(self.work_dir, data.getvalue()):
            raise OSError(f"Could not copy {local_path} into the container")
        return self.work_path(name)

    def system(self) -> str:
        return self.run_internal(["uname", "-s"])[1].strip()

    def machine(self) -> str:
        return self.run_internal(["uname", "-m"])[1].strip()

    def user_name(self) -> str:
        return self.run_internal(["id", "-un"])[1].strip()

    def close(self) -> None:
        for path in self._delete_on_exit:
            self.remove(path)
        self._delete_on_exit.clear()


@contextmanager
def docker_under_test(docker_image: str, docker_image_bootstrap: Optional[str] = None):
    """Starts a container of the given JDK image and stops it again when leaving the context."""
    if docker_image_bootstrap:
        logger.info(f"Executing custom image bootstrap command: {docker_image_bootstrap}")
        subprocess.run([docker_image_bootstrap], check=True)

    client = pypi_docker.from_env()
    container = client.containers.run(docker_image, "sleep infinity", detach=True, auto_remove=True, init=True)
    docker_under_test = DockerUnderTest(container)
    try:
        yield docker_under_test
    finally:
        docker_under_test.close()
        container.stop(timeout=1)
