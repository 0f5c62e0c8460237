"""
Input handling and validation for ssh-signing.

Inputs arrive as strings, either from the Actions runner (INPUT_*
environment variables) or from the command line. They are validated
here, before anything is written, so invalid input fails fast and
leaves no files or configuration behind.
"""

from __future__ import annotations

import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Mapping, Optional

from .config import DEFAULT_KEY_PATH, ConfigScope, Context, PushSignMode
from .errors import InputValidationError

LOG = logging.getLogger(__name__)

_EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TRUE_VALUES = {"true", "True", "TRUE"}
_FALSE_VALUES = {"false", "False", "FALSE"}


class InputSource(ABC):
    """
    Supplies named string inputs; unset inputs are "".
    """

    @abstractmethod
    def get_input(self, name: str) -> str:
        """Return the trimmed value of input name."""


class EnvironmentInputs(InputSource):
    """
    Inputs passed by the Actions runner as INPUT_<NAME> variables.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self.environ = os.environ if environ is None else environ

    def get_input(self, name: str) -> str:
        variable = f"INPUT_{name.replace(' ', '_').upper()}"
        return self.environ.get(variable, "").strip()


class MappingInputs(InputSource):
    """
    Inputs from a dictionary, deferring to fallback for missing names.
    """

    def __init__(
        self,
        values: Mapping[str, Optional[str]],
        fallback: Optional[InputSource] = None,
    ) -> None:
        self.values = values
        self.fallback = fallback

    def get_input(self, name: str) -> str:
        value = self.values.get(name)
        if value is not None:
            return value.strip()
        if self.fallback is not None:
            return self.fallback.get_input(name)
        return ""


def get_required_input(source: InputSource, name: str) -> str:
    value = source.get_input(name)
    if not value:
        raise InputValidationError(f"{name} cannot be empty")
    return value


def get_boolean_input(source: InputSource, name: str, default: bool) -> bool:
    """
    Read a YAML 1.2 core schema boolean; empty input means default.
    """

    value = source.get_input(name)
    if not value:
        return default
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise InputValidationError(
        f"Input does not meet YAML 1.2 \"Core Schema\" specification: {name}\n"
        "Support boolean input list: `true | True | TRUE | false | False | FALSE`"
    )


def get_context(source: InputSource) -> Context:
    """
    Build and validate the setup context from source.
    """

    signing_key = get_required_input(source, "ssh-signing-key")
    user_name = get_required_input(source, "git-user-name")
    user_email = get_required_input(source, "git-user-email")

    push_mode = PushSignMode.parse(source.get_input("git-push-gpgsign"))
    scope = ConfigScope.parse(source.get_input("git-config-scope"))

    if not _EMAIL_SHAPE.match(user_email):
        LOG.warning("git-user-email appears to be invalid: %s", user_email)

    return Context(
        ssh_signing_key=signing_key,
        git_user_name=user_name,
        git_user_email=user_email,
        ssh_key_path=source.get_input("ssh-key-path") or DEFAULT_KEY_PATH,
        git_commit_gpgsign=get_boolean_input(source, "git-commit-gpgsign", True),
        git_tag_gpgsign=get_boolean_input(source, "git-tag-gpgsign", True),
        git_push_gpgsign=push_mode,
        create_allowed_signers=get_boolean_input(source, "create-allowed-signers", True),
        git_config_scope=scope,
    )
