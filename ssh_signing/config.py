"""
Configuration model for ssh-signing.

The input layer constructs a Context instance and passes it down into
the setup orchestration so behavior can be adjusted without relying on
global state. The scope in particular is always threaded through
explicitly; nothing below this module has a default scope.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from .errors import InputValidationError

DEFAULT_KEY_PATH = "~/.ssh/signing_key"
ALLOWED_SIGNERS_NAME = "allowed_signers"


class ConfigScope(str, Enum):
    """
    Which git configuration file reads and writes target.
    """

    LOCAL = "local"
    GLOBAL = "global"

    @property
    def flag(self) -> str:
        return f"--{self.value}"

    @classmethod
    def parse(cls, raw: str) -> "ConfigScope":
        value = raw.strip()
        if not value:
            return cls.LOCAL
        for member in cls:
            if member.value == value:
                return member
        raise InputValidationError(
            f'Invalid git-config-scope value: {raw}. Must be "local" or "global"'
        )


class PushSignMode(str, Enum):
    """
    Requested value for push.gpgsign.

    IF_ASKED means the key is left alone so git decides interactively.
    """

    IF_ASKED = "if-asked"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def parse(cls, raw: str) -> "PushSignMode":
        value = raw.strip()
        if not value or value == "ask":
            return cls.IF_ASKED
        for member in cls:
            if member.value == value:
                return member
        raise InputValidationError(
            f'Invalid git-push-gpgsign value: {raw}. Must be "if-asked", "true", or "false"'
        )


def resolve_path(raw: str) -> str:
    """
    Expand a leading ~ to the home directory; make other paths absolute.
    """

    if raw.startswith("~"):
        return os.path.abspath(os.path.expanduser(raw))
    return os.path.abspath(raw)


def allowed_signers_for(key_path: str) -> str:
    """
    The allowed signers file lives next to the key it trusts.
    """

    return os.path.join(os.path.dirname(key_path), ALLOWED_SIGNERS_NAME)


@dataclass
class Context:
    """
    Validated inputs for a setup run.
    """

    ssh_signing_key: str
    git_user_name: str
    git_user_email: str
    ssh_key_path: str = DEFAULT_KEY_PATH
    git_commit_gpgsign: bool = True
    git_tag_gpgsign: bool = True
    git_push_gpgsign: PushSignMode = PushSignMode.IF_ASKED
    create_allowed_signers: bool = True
    git_config_scope: ConfigScope = ConfigScope.LOCAL

    @property
    def resolved_key_path(self) -> str:
        return resolve_path(self.ssh_key_path)

    @property
    def public_key_path(self) -> str:
        return f"{self.resolved_key_path}.pub"

    @property
    def allowed_signers_path(self) -> str:
        return allowed_signers_for(self.resolved_key_path)
