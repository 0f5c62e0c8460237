"""
Logging helpers for ssh-signing.

Outside a CI runner we provide simple configuration based on a
verbosity level. Inside GitHub Actions records are rendered as workflow
commands so warnings and errors show up as annotations.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO


def escape_data(text: str) -> str:
    """
    Escape a message for use in a workflow command.
    """

    return text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class ActionsLogHandler(logging.StreamHandler):
    """
    Render log records as GitHub Actions workflow commands.

    DEBUG -> ::debug::, WARNING -> ::warning::, ERROR and above ->
    ::error::. INFO records are written as plain lines.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        super().__init__(stream if stream is not None else sys.stdout)
        self.setFormatter(logging.Formatter("%(message)s"))

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            return f"::error::{escape_data(message)}"
        if record.levelno >= logging.WARNING:
            return f"::warning::{escape_data(message)}"
        if record.levelno >= logging.INFO:
            return message
        return f"::debug::{escape_data(message)}"


def configure_logging(verbosity: int, actions: bool = False) -> None:
    """
    Configure the root logger based on a verbosity count.

    verbosity == 0 -> WARNING
    verbosity == 1 -> INFO
    verbosity >= 2 -> DEBUG

    Under Actions everything down to DEBUG is emitted; the runner only
    shows debug lines when step debugging is enabled.
    """

    if actions:
        logging.basicConfig(level=logging.DEBUG, handlers=[ActionsLogHandler()], force=True)
        return

    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )
