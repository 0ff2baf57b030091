# SPDX-FileCopyrightText: Copyright (c) 2025 The Workcell Developers
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
WORKCELL: Utilities: Message Logging

All package messages go through the ``workcell`` logger, which owns a
single colored stream handler and does not propagate to the root logger.
Coloring is skipped when the stream is not a terminal or ``NO_COLOR`` is set.
"""

import logging
import os
from enum import IntEnum
from typing import ClassVar


class LogLevel(IntEnum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    NOTIF = logging.INFO + 5
    """Milestones of assembly and simulation, shown by default."""
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class Logger(logging.Formatter):
    """Formatter of the package logger, prefixing each line with a header and coloring it by level."""

    HEADER = "[WORKCELL]"

    LINE_FORMAT = "[%(asctime)s][%(module)s:%(lineno)d][%(levelname)s]: %(message)s"

    LOGGER_NAME = "workcell"

    RESET = "\x1b[0m"
    HEADER_COLOR = "\x1b[38;5;45m"
    LEVEL_COLORS: ClassVar[dict[int, str]] = {
        LogLevel.DEBUG: "\x1b[34;20m",
        LogLevel.INFO: "\x1b[37m",
        LogLevel.NOTIF: "\x1b[32;20m",
        LogLevel.WARNING: "\x1b[33;20m",
        LogLevel.ERROR: "\x1b[31;20m",
        LogLevel.CRITICAL: "\x1b[31;1m",
    }

    def __init__(self):
        super().__init__()
        logging.addLevelName(LogLevel.NOTIF, "NOTIF")
        self._streamhandler = logging.StreamHandler()
        self._streamhandler.setFormatter(self)
        logger = self.get()
        logger.addHandler(self._streamhandler)
        logger.setLevel(LogLevel.NOTIF)
        logger.propagate = False

    def _use_color(self) -> bool:
        if os.environ.get("NO_COLOR"):
            return False
        isatty = getattr(self._streamhandler.stream, "isatty", None)
        return bool(isatty and isatty())

    def format(self, record):
        if self._use_color():
            color = self.LEVEL_COLORS.get(record.levelno, "")
            fmt = f"{self.HEADER_COLOR}{Logger.HEADER}{self.RESET}{color}{self.LINE_FORMAT}{self.RESET}"
        else:
            fmt = f"{Logger.HEADER}{self.LINE_FORMAT}"
        return logging.Formatter(fmt).format(record)

    def get(self) -> logging.Logger:
        return logging.getLogger(self.LOGGER_NAME)


###
# Globals
###


LOGGER: Logger | None = None
"""The formatter of the package logger, created on first use."""


###
# Configurations
###


def get_default_logger() -> logging.Logger:
    """Returns the package logger, attaching its handler on first use."""
    global LOGGER  # noqa: PLW0603
    if LOGGER is None:
        LOGGER = Logger()
    return LOGGER.get()


def set_log_level(level: LogLevel):
    logger = get_default_logger()
    logger.setLevel(level)
    logger.debug(f"Log level set to: {logging.getLevelName(level)}")


def reset_log_level():
    """Restores the default NOTIF level."""
    set_log_level(LogLevel.NOTIF)


def set_log_header(header: str):
    """Replaces the header printed before every message, e.g. to tag test output."""
    Logger.HEADER = header


###
# Logging
###


def _log(level: LogLevel, message: str, *args, **kwargs):
    # Report the caller of the public function, two frames up
    get_default_logger().log(level, message, *args, **kwargs, stacklevel=3)


def debug(message: str, *args, **kwargs):
    _log(LogLevel.DEBUG, message, *args, **kwargs)


def info(message: str, *args, **kwargs):
    _log(LogLevel.INFO, message, *args, **kwargs)


def notif(message: str, *args, **kwargs):
    _log(LogLevel.NOTIF, message, *args, **kwargs)


def warning(message: str, *args, **kwargs):
    _log(LogLevel.WARNING, message, *args, **kwargs)


def error(message: str, *args, **kwargs):
    _log(LogLevel.ERROR, message, *args, **kwargs)


def critical(message: str, *args, **kwargs):
    _log(LogLevel.CRITICAL, message, *args, **kwargs)
