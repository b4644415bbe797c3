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
import threading
import time
from collections import deque
from contextlib import nullcontext
from datetime import datetime
from queue import Empty


class LineReader(threading.Thread):
    """
    This class launches a separate thread to read line-by-line
    the output of a child process from a pipe that blocks, unblocking
    when a new line is ready, or when the pipe is closing,
    returning None. The lines are logged and stored in a queue,
    and can be later retrieved.
    """
    log_locks = {}

    def __init__(self, readline_func, name, print_logger=True, logfile=None, max_size=0):
        super().__init__(name=name, daemon=True)
        self.readline_func = readline_func
        self.name = name
        self.logger = logging.getLogger(name)
        self.print_logger = print_logger
        self._logfile = logfile
        self._log_queue = LineReaderQueue(max_size=max_size)
        if logfile and logfile not in LineReader.log_locks:
            LineReader.log_locks[logfile] = threading.Lock()

    def run(self):
        with open(self._logfile, encoding="utf-8", mode="a") if self._logfile else nullcontext() as logfile:
            while True:
                try:
                    line = self.readline_func()
                except (OSError, ValueError) as exception:
                    self.logger.debug(f"Stopped reading: {exception}")
                    line = None
                if line is None:
                    break
                line = line.replace('\x00', '').strip()
                if self.print_logger:
                    self.logger.info(line)
                if self._logfile:
                    with LineReader.log_locks[self._logfile]:
                        try:
                            logfile.write(f"[{datetime.now()}] [{self.name}] - {line} \n")
                            logfile.flush()
                        except OSError as exception:
                            self.logger.error(f"Exception on write: {exception}")
                self._log_queue.put(line)

    def get_line(self, block=False, timeout=None):
        return self._log_queue.get(block=block, timeout=timeout)

    def drain(self):
        """Returns every line read so far and empties the queue."""
        lines = []
        while True:
            try:
                lines.append(self.get_line())
            except Empty:
                return lines


class LineReaderQueue:
    """
    Thread-safe implementation of a queue.
    When the queue is full, older items
    are removed.
    """

    def __init__(self, max_size=0):
        self.queue = deque()
        self.max_size = max_size
        self.mutex = threading.Lock()
        self.not_empty = threading.Condition(self.mutex)

    def put(self, item):
        with self.mutex:
            if self.max_size > 0 and len(self.queue) >= self.max_size:
                self.queue.popleft()
            self.queue.append(item)
            self.not_empty.notify()

    def get(self, block=True, timeout=None):
        with self.not_empty:
            if not block:
                if len(self.queue) == 0:
                    raise Empty
            elif timeout is None:
                while len(self.queue) == 0:
                    self.not_empty.wait()
            elif timeout < 0:
                raise ValueError("'timeout' must be a non-negative number")
            else:
                endtime = time.time() + timeout
                while len(self.queue) == 0:
                    remaining = endtime - time.time()
                    if remaining <= 0.0:
                        raise Empty
                    self.not_empty.wait(remaining)
            return self.queue.popleft()
