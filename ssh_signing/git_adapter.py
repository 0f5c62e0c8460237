"""
Git configuration access for ssh-signing.

Every read and write goes through git's own command-line interface and
takes the configuration scope explicitly. A missing key is reported as
None rather than as an error; only a failure to run git at all raises.
"""

from __future__ import annotations

import logging
import re
import subprocess
from typing import Iterable, Optional

from . import actions
from .config import ConfigScope
from .errors import ConfigWriteError, GitError

LOG = logging.getLogger(__name__)

MASK = "***"
_LAST_SEGMENT = re.compile(r"([/\\])[^/\\]+$")


def _run_git(args: list[str], cwd: Optional[str] = None) -> subprocess.CompletedProcess[str]:
    """
    Run a git command and return the completed process.

    All git invocations go through this helper so that logging is
    centralized. A nonzero exit code is left for the caller to interpret;
    only a failure to start git raises.
    """

    cmd = ["git", *args]
    LOG.debug("Running git command: %s", " ".join(cmd))
    try:
        completed = subprocess.run(cmd, cwd=cwd, check=False, text=True, capture_output=True)
    except OSError as exc:
        raise GitError(f"failed to execute git: {exc}") from exc

    if completed.returncode != 0:
        LOG.debug("git stderr: %s", completed.stderr)
    return completed


def is_inside_repository(cwd: Optional[str] = None) -> bool:
    completed = _run_git(["rev-parse", "--git-dir"], cwd=cwd)
    return completed.returncode == 0


def get_config(key: str, scope: ConfigScope, cwd: Optional[str] = None) -> Optional[str]:
    """
    Return the value of key at scope, or None when it is not set.
    """

    completed = _run_git(["config", scope.flag, "--get", key], cwd=cwd)
    if completed.returncode != 0:
        return None
    return completed.stdout.strip()


def set_config(key: str, value: str, scope: ConfigScope, cwd: Optional[str] = None) -> None:
    """
    Write key=value at scope.

    Raises ConfigWriteError when git rejects the write; whether that is
    fatal is up to the caller.
    """

    completed = _run_git(["config", scope.flag, key, value], cwd=cwd)
    if completed.returncode != 0:
        raise ConfigWriteError(
            f"Failed to set git config {key}: {completed.stderr.strip()}"
        )


def unset_config(key: str, scope: ConfigScope, cwd: Optional[str] = None) -> bool:
    """
    Remove every value of key at scope.

    Returns True when something was removed and False when the key did
    not exist.
    """

    completed = _run_git(["config", scope.flag, "--unset-all", key], cwd=cwd)
    return completed.returncode == 0


def config_exists(key: str, scope: ConfigScope, cwd: Optional[str] = None) -> bool:
    return get_config(key, scope, cwd=cwd) is not None


def mask_value(value: str) -> str:
    """
    Replace the final segment of a path-like value with a placeholder.
    """

    return _LAST_SEGMENT.sub(lambda match: f"{match.group(1)}{MASK}", value)


def display_config(keys: Iterable[str], scope: ConfigScope, cwd: Optional[str] = None) -> None:
    """
    Log the current values of keys at scope with paths masked.
    """

    with actions.group("Git signing configuration"):
        for key in keys:
            value = get_config(key, scope, cwd=cwd)
            if value is None:
                continue
            LOG.info("%s = %s", key, mask_value(value))
