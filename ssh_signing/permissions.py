"""
Owner-only file permissions for ssh-signing.

On POSIX systems the restriction is applied when a file or directory
is created (see creation_mode), so the strategy here only records a
debug trace. On Windows there are no mode bits; instead inherited ACL
entries are stripped with icacls and the current user is granted
access explicitly.

The strategy is chosen once, from a single platform probe.
"""

from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Optional

from .errors import PermissionHardeningError

LOG = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


class PermissionStrategy(ABC):
    """
    Restricts a path so only the current user can use it.
    """

    @abstractmethod
    def apply(self, path: str, is_directory: bool) -> None:
        """
        Restrict path to its owner.

        Raises PermissionHardeningError when the restriction could not
        be applied.
        """

    def restrict_to_owner(self, path: str, is_directory: bool = False) -> bool:
        """
        Apply the restriction, downgrading any failure to a warning.
        """

        try:
            self.apply(path, is_directory)
        except PermissionHardeningError as exc:
            LOG.warning("%s", exc)
            return False
        return True


class PosixPermissions(PermissionStrategy):
    def apply(self, path: str, is_directory: bool) -> None:
        kind = "directory" if is_directory else "file"
        LOG.debug("Unix permissions handled via creation mode for %s: %s", kind, path)


class WindowsPermissions(PermissionStrategy):
    """
    icacls based equivalent of chmod 600 (files) and 700 (directories).
    """

    def apply(self, path: str, is_directory: bool) -> None:
        kind = "directory" if is_directory else "file"
        LOG.debug("Setting Windows permissions for %s: %s", kind, path)

        self._icacls([path, "/inheritance:r"], f"Failed to remove inheritance for {path}")

        permission = "(F)" if is_directory else "(R,W)"
        user = current_user()
        self._icacls(
            [path, "/grant:r", f"{user}:{permission}"],
            f"Failed to set permissions for {path}",
        )
        LOG.debug("Windows permissions set for %s %s", path, permission)

    @staticmethod
    def _icacls(args: list[str], failure: str) -> None:
        try:
            completed = subprocess.run(
                ["icacls", *args],
                check=False,
                text=True,
                capture_output=True,
            )
        except OSError as exc:
            raise PermissionHardeningError(f"{failure}: {exc}") from exc
        if completed.returncode != 0:
            LOG.debug("icacls stderr: %s", completed.stderr)
            raise PermissionHardeningError(failure)


def current_user() -> str:
    return os.environ.get("USERNAME") or os.environ.get("USER") or "Unknown"


def select_strategy(windows: Optional[bool] = None) -> PermissionStrategy:
    if windows is None:
        windows = IS_WINDOWS
    return WindowsPermissions() if windows else PosixPermissions()


_STRATEGY = select_strategy()


def restrict_to_owner(path: str, is_directory: bool = False) -> bool:
    return _STRATEGY.restrict_to_owner(path, is_directory)


def creation_mode(mode: int) -> Optional[int]:
    """
    Return mode for use at creation time, or None where mode bits do not apply.
    """

    return None if IS_WINDOWS else mode
