"""
Setup phase for ssh-signing.

The setup phase is responsible for:
  - validating inputs and the repository context,
  - saving the current git configuration for the cleanup phase,
  - installing and verifying the signing key,
  - configuring git (and npm) to sign with it, and
  - publishing the key path, public key and fingerprint as outputs.

Steps run strictly in order and the first failure stops the run. No
rollback is attempted here; the cleanup phase restores whatever was
saved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from . import actions, npm_config
from .config import ConfigScope, Context, PushSignMode
from .errors import RepositoryContextError
from .git_adapter import display_config, is_inside_repository, set_config
from .inputs import InputSource, get_context
from .ssh_keys import KeyInfo, add_to_agent, create_allowed_signers, get_key_info, install_key
from .state import GIT_KEYS, StateStore, capture_snapshot, save_key_path, save_snapshot

LOG = logging.getLogger(__name__)

ALLOWED_SIGNERS_KEY = "gpg.ssh.allowedSignersFile"


@dataclass
class SetupResult:
    key_path: str
    public_key: str
    key_info: KeyInfo


def ensure_repository_context(scope: ConfigScope, cwd: Optional[str] = None) -> None:
    """
    Refuse local scope outside a repository instead of falling back to global.
    """

    if scope is not ConfigScope.LOCAL:
        return
    if not is_inside_repository(cwd):
        raise RepositoryContextError(
            "Not in a git repository. When using local git config (default), "
            "this action must be placed after actions/checkout. Use "
            "git-config-scope: global if you need to run this action before checkout."
        )


def configure_git(context: Context, cwd: Optional[str] = None) -> None:
    LOG.info("Configuring Git for SSH signing...")
    scope = context.git_config_scope

    set_config("user.name", context.git_user_name, scope, cwd=cwd)
    set_config("user.email", context.git_user_email, scope, cwd=cwd)

    set_config("gpg.format", "ssh", scope, cwd=cwd)
    set_config("user.signingkey", context.public_key_path, scope, cwd=cwd)

    if context.git_commit_gpgsign:
        set_config("commit.gpgsign", "true", scope, cwd=cwd)
    if context.git_tag_gpgsign:
        set_config("tag.gpgsign", "true", scope, cwd=cwd)
    if context.git_push_gpgsign is not PushSignMode.IF_ASKED:
        set_config("push.gpgsign", context.git_push_gpgsign.value, scope, cwd=cwd)

    npm_config.enable_tag_signing()
    LOG.info("Git configured for SSH signing")


def setup_signing(context: Context, store: StateStore, cwd: Optional[str] = None) -> SetupResult:
    """
    Run every setup step for an already validated context.
    """

    scope = context.git_config_scope
    ensure_repository_context(scope, cwd)

    with actions.group("Setting up SSH signing"):
        store.reset()
        save_snapshot(store, capture_snapshot(scope, cwd=cwd))

        key_path = context.resolved_key_path
        public_key = install_key(context.ssh_signing_key, key_path)
        key_info = get_key_info(key_path)
        LOG.info(
            "SSH key installed (%s %d-bit, %s)",
            key_info.key_type,
            key_info.bits,
            key_info.fingerprint,
        )

        save_key_path(store, key_path)
        add_to_agent(key_path)

        configure_git(context, cwd)

        if context.create_allowed_signers:
            signers_path = create_allowed_signers(context.git_user_email, public_key, key_path)
            set_config(ALLOWED_SIGNERS_KEY, signers_path, scope, cwd=cwd)
            LOG.info("Allowed signers file created")

        display_config(GIT_KEYS, scope, cwd=cwd)

        actions.set_output("ssh-key-path", key_path)
        actions.set_output("public-key", public_key)
        actions.set_output("key-fingerprint", key_info.fingerprint)

    LOG.info("SSH signing configuration complete")
    return SetupResult(key_path=key_path, public_key=public_key, key_info=key_info)


def run_setup(source: InputSource, store: StateStore, cwd: Optional[str] = None) -> int:
    """
    Entry point for the setup phase; returns the process exit code.
    """

    try:
        context = get_context(source)
        setup_signing(context, store, cwd=cwd)
    except Exception as exc:  # noqa: BLE001
        return actions.set_failed(f"Setup failed: {exc}")
    return 0
