"""
Cleanup phase for ssh-signing.

Runs in a later process than setup and only knows what setup saved in
the state store. Every step is best-effort and the phase as a whole
never raises: a failed cleanup must not fail the surrounding job.
"""

from __future__ import annotations

import logging
from typing import Optional

from . import actions, npm_config
from .config import ConfigScope
from .errors import GitError
from .git_adapter import set_config, unset_config
from .ssh_keys import remove_from_agent, remove_key_files
from .state import ConfigSnapshot, StateStore, load_key_path, load_snapshot

LOG = logging.getLogger(__name__)


def resolve_scope(snapshot: ConfigSnapshot) -> ConfigScope:
    if snapshot.scope is not None:
        return snapshot.scope
    LOG.warning(
        "Git config scope not found in state, falling back to 'local'. "
        "This may indicate the action was not properly initialized."
    )
    return ConfigScope.LOCAL


def restore_git_configuration(snapshot: ConfigSnapshot, cwd: Optional[str] = None) -> None:
    """
    Put every captured key back the way it was before setup.

    Keys that were set are written back, keys captured as unset are
    removed, and keys that were never captured are left alone.
    """

    LOG.info("Restoring git configuration...")
    scope = resolve_scope(snapshot)

    for entry in snapshot.captured_entries(scope):
        if entry.value is not None:
            try:
                set_config(entry.key, entry.value, entry.scope, cwd=cwd)
            except GitError as exc:
                LOG.debug("Failed to restore %s: %s", entry.key, exc)
            else:
                LOG.debug("Restored %s to original value", entry.key)
            continue

        try:
            removed = unset_config(entry.key, entry.scope, cwd=cwd)
        except GitError as exc:
            LOG.debug("Failed to unset %s: %s", entry.key, exc)
            continue
        if removed:
            LOG.debug("Unset %s (was not previously set)", entry.key)


def cleanup_signing(store: StateStore, cwd: Optional[str] = None) -> None:
    with actions.group("Cleaning up SSH signing configuration"):
        key_path = load_key_path(store)
        if key_path:
            remove_from_agent(key_path)
            remove_key_files(key_path)

        restore_git_configuration(load_snapshot(store), cwd=cwd)
        if key_path:
            npm_config.clear_tag_signing()
        store.reset()

    LOG.info("SSH signing cleanup complete")


def run_cleanup(store: StateStore, cwd: Optional[str] = None) -> int:
    """
    Entry point for the cleanup phase; always returns 0.
    """

    try:
        cleanup_signing(store, cwd=cwd)
    except Exception as exc:  # noqa: BLE001
        LOG.warning("Cleanup encountered errors: %s", exc)
    return 0
