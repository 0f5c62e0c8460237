"""
GitHub Actions runner protocol for ssh-signing.

The runner hands inputs to a step through INPUT_* environment
variables, collects outputs and saved state through files named by
GITHUB_OUTPUT and GITHUB_STATE, and exports saved state to the post
step as STATE_* environment variables. When those variables are not
present the helpers degrade to plain stdout/logging so the CLI can be
used from a shell.
"""

from __future__ import annotations

import logging
import os
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO

LOG = logging.getLogger(__name__)


def in_actions() -> bool:
    return os.environ.get("GITHUB_ACTIONS") == "true"


def issue_file_command(env_name: str, name: str, value: str) -> bool:
    """
    Append a name/value pair to the runner file named by env_name.

    Returns False when the runner did not provide that file.
    """

    file_path = os.environ.get(env_name)
    if not file_path:
        return False

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    if delimiter in name or delimiter in value:
        raise ValueError(f"unexpected input: value contains the delimiter {delimiter}")

    with open(file_path, "a", encoding="utf-8") as handle:
        handle.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
    return True


def set_output(name: str, value: str) -> None:
    if issue_file_command("GITHUB_OUTPUT", name, value):
        return
    print(f"{name}={value}")


def save_state(name: str, value: str) -> bool:
    return issue_file_command("GITHUB_STATE", name, value)


def get_state(name: str) -> str:
    return os.environ.get(f"STATE_{name}", "")


def set_failed(message: str) -> int:
    """
    Report a step failure and return the exit code to use.
    """

    LOG.error("%s", message)
    return 1


@contextmanager
def group(title: str, stream: Optional[TextIO] = None) -> Iterator[None]:
    """
    Fold the enclosed log lines into a collapsible group on the runner.
    """

    if not in_actions():
        LOG.info("%s", title)
        yield
        return

    print(f"::group::{title}", file=stream, flush=True)
    try:
        yield
    finally:
        print("::endgroup::", file=stream, flush=True)
