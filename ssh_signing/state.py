"""
Persistence of setup state for the cleanup phase.

Setup and cleanup run as separate processes, so everything cleanup
needs is written to a StateStore: the installed key path, the scope,
and the value every managed git key had before setup touched it.

Captured values are JSON-encoded. A string means the key was set, null
means it was captured as not set, and an empty stored value (what a
store returns for a name it never saw) means it was never captured.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from . import actions
from .config import ConfigScope
from .errors import SshSigningError
from .git_adapter import get_config

LOG = logging.getLogger(__name__)

KEY_PATH_STATE = "ssh_key_path"
SCOPE_STATE = "git_config_scope"

# (state name, git key) in restore order.
MANAGED_KEYS: List[Tuple[str, str]] = [
    ("git_user_name", "user.name"),
    ("git_user_email", "user.email"),
    ("git_signing_key", "user.signingkey"),
    ("git_gpg_format", "gpg.format"),
    ("git_commit_gpgsign", "commit.gpgsign"),
    ("git_tag_gpgsign", "tag.gpgsign"),
    ("git_push_gpgsign", "push.gpgsign"),
    ("git_allowed_signers_file", "gpg.ssh.allowedSignersFile"),
]

GIT_KEYS: List[str] = [git_key for _, git_key in MANAGED_KEYS]


class StateStore(ABC):
    """
    Key/value storage that outlives the setup process.
    """

    @abstractmethod
    def save(self, name: str, value: str) -> None:
        """Persist value under name."""

    @abstractmethod
    def load(self, name: str) -> str:
        """Return the value saved under name, or "" when there is none."""

    def reset(self) -> None:
        """Forget everything saved so far."""


class ActionsStateStore(StateStore):
    """
    The runner's state channel: GITHUB_STATE in the main step, STATE_*
    variables in the post step.
    """

    def save(self, name: str, value: str) -> None:
        if not actions.save_state(name, value):
            raise SshSigningError("GITHUB_STATE is not set; cannot persist setup state")

    def load(self, name: str) -> str:
        return actions.get_state(name)


class FileStateStore(StateStore):
    """
    A JSON document on disk, for running both phases from a shell.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"state file {self.path} must contain a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def save(self, name: str, value: str) -> None:
        data = self._read()
        data[name] = value
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=directory, prefix=os.path.basename(self.path) + ".", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
                handle.write("\n")
            os.replace(temp_path, self.path)
        finally:
            if os.path.exists(temp_path):
                os.unlink(temp_path)

    def load(self, name: str) -> str:
        return self._read().get(name, "")

    def reset(self) -> None:
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass


@dataclass
class ConfigEntry:
    """
    A git key, its value (None when not set), and the scope it lives at.
    """

    key: str
    value: Optional[str]
    scope: ConfigScope


@dataclass
class ConfigSnapshot:
    """
    Values of the managed git keys before setup ran.

    entries maps git key -> value, with None meaning "was not set".
    Keys missing from entries were never captured.
    """

    scope: Optional[ConfigScope]
    entries: Dict[str, Optional[str]] = field(default_factory=dict)

    def is_captured(self, key: str) -> bool:
        return key in self.entries

    def captured_entries(self, scope: ConfigScope) -> List[ConfigEntry]:
        """
        Return the captured keys, in restore order, as entries at scope.
        """

        return [
            ConfigEntry(key=key, value=self.entries[key], scope=scope)
            for key in GIT_KEYS
            if key in self.entries
        ]


def capture_snapshot(scope: ConfigScope, cwd: Optional[str] = None) -> ConfigSnapshot:
    LOG.debug("Saving original git configuration")
    entries = {key: get_config(key, scope, cwd=cwd) for key in GIT_KEYS}
    return ConfigSnapshot(scope=scope, entries=entries)


def encode_value(value: Optional[str]) -> str:
    return json.dumps(value)


def decode_value(raw: str) -> Tuple[bool, Optional[str]]:
    """
    Return (captured, value) for a stored entry.
    """

    if raw == "":
        return False, None
    try:
        value = json.loads(raw)
    except ValueError:
        LOG.warning("Ignoring unreadable saved state value: %r", raw)
        return False, None
    if value is not None and not isinstance(value, str):
        LOG.warning("Ignoring unexpected saved state value: %r", raw)
        return False, None
    return True, value


def save_snapshot(store: StateStore, snapshot: ConfigSnapshot) -> None:
    for name, git_key in MANAGED_KEYS:
        if snapshot.is_captured(git_key):
            store.save(name, encode_value(snapshot.entries[git_key]))
    if snapshot.scope is not None:
        store.save(SCOPE_STATE, snapshot.scope.value)


def load_snapshot(store: StateStore) -> ConfigSnapshot:
    """
    Rebuild the snapshot saved by setup.

    An unknown saved scope is reported as None; the caller decides on a
    fallback.
    """

    entries: Dict[str, Optional[str]] = {}
    for name, git_key in MANAGED_KEYS:
        captured, value = decode_value(store.load(name))
        if captured:
            entries[git_key] = value

    scope: Optional[ConfigScope] = None
    raw_scope = store.load(SCOPE_STATE)
    if raw_scope:
        try:
            scope = ConfigScope(raw_scope)
        except ValueError:
            LOG.warning("Ignoring unknown saved git config scope: %s", raw_scope)

    return ConfigSnapshot(scope=scope, entries=entries)


def save_key_path(store: StateStore, key_path: str) -> None:
    store.save(KEY_PATH_STATE, key_path)


def load_key_path(store: StateStore) -> Optional[str]:
    return store.load(KEY_PATH_STATE) or None
