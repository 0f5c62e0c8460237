"""
Command-line interface for ssh-signing.

This module is responsible for argument parsing and delegating to the
setup and cleanup phases. Inputs given as flags take precedence over
the INPUT_* variables set by the Actions runner.
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Dict, List, Optional

from . import actions
from .cleanup_phase import run_cleanup
from .errors import InputValidationError
from .inputs import EnvironmentInputs, MappingInputs
from .logging_utils import configure_logging
from .setup_phase import run_setup
from .state import ActionsStateStore, FileStateStore, StateStore


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ssh-signing",
        description=(
            "Install an SSH signing key and configure git to sign commits "
            "and tags with it, then undo every change afterwards."
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be specified multiple times).",
    )
    parser.add_argument(
        "--state-file",
        help=(
            "JSON file carrying state from setup to cleanup "
            "(default: the Actions state channel)."
        ),
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    setup = subparsers.add_parser("setup", help="Install the key and configure git.")
    setup.add_argument(
        "--key-file",
        help="File containing the private key, or - to read it from stdin.",
    )
    setup.add_argument("--user-name", help="Value for user.name.")
    setup.add_argument("--user-email", help="Value for user.email.")
    setup.add_argument(
        "--key-path",
        help="Where to install the private key (default: ~/.ssh/signing_key).",
    )
    setup.add_argument(
        "--scope",
        choices=["local", "global"],
        help="Git configuration scope to modify (default: local).",
    )
    setup.add_argument(
        "--push-gpgsign",
        choices=["if-asked", "ask", "true", "false"],
        help="Value for push.gpgsign; if-asked leaves it untouched.",
    )
    setup.add_argument(
        "--no-commit-gpgsign",
        dest="commit_gpgsign",
        action="store_const",
        const="false",
        help="Do not enable commit.gpgsign.",
    )
    setup.add_argument(
        "--no-tag-gpgsign",
        dest="tag_gpgsign",
        action="store_const",
        const="false",
        help="Do not enable tag.gpgsign.",
    )
    setup.add_argument(
        "--no-allowed-signers",
        dest="allowed_signers",
        action="store_const",
        const="false",
        help="Do not create an allowed signers file.",
    )

    subparsers.add_parser("cleanup", help="Restore git configuration and remove the key.")

    return parser


def _read_key_file(path: Optional[str]) -> Optional[str]:
    if path is None:
        return None
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def _setup_inputs(args: argparse.Namespace) -> MappingInputs:
    values: Dict[str, Optional[str]] = {
        "ssh-signing-key": _read_key_file(args.key_file),
        "git-user-name": args.user_name,
        "git-user-email": args.user_email,
        "ssh-key-path": args.key_path,
        "git-config-scope": args.scope,
        "git-push-gpgsign": args.push_gpgsign,
        "git-commit-gpgsign": args.commit_gpgsign,
        "git-tag-gpgsign": args.tag_gpgsign,
        "create-allowed-signers": args.allowed_signers,
    }
    return MappingInputs(values, fallback=EnvironmentInputs())


def select_state_store(state_file: Optional[str]) -> StateStore:
    if state_file:
        return FileStateStore(state_file)
    if os.environ.get("GITHUB_STATE") or actions.in_actions():
        return ActionsStateStore()
    raise InputValidationError(
        "no state store available; pass --state-file when running outside GitHub Actions"
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    configure_logging(verbosity=args.verbose, actions=actions.in_actions())

    try:
        store = select_state_store(args.state_file)
        if args.command == "cleanup":
            return run_cleanup(store)
        return run_setup(_setup_inputs(args), store)
    except KeyboardInterrupt:
        # Graceful shutdown on Ctrl+C
        return 130
    except (InputValidationError, OSError) as exc:
        if args.command == "cleanup":
            print(f"ssh-signing: warning: {exc}", file=sys.stderr)
            return 0
        print(f"ssh-signing: error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
