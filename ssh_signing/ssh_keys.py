"""
SSH signing key lifecycle for ssh-signing.

A key moves through Absent -> Written -> Verified -> (registered with
the agent) -> Removed. The private key is written with owner-only
permissions and is immediately verified with ssh-keygen; a key that
cannot be verified is deleted before the error is raised, so a
malformed key never stays on disk. The public key is always derived
from the installed private key.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import time
from dataclasses import dataclass
from typing import List, Optional

from .config import allowed_signers_for
from .errors import InvalidKeyError, KeyParseError
from .permissions import IS_WINDOWS, creation_mode, restrict_to_owner

LOG = logging.getLogger(__name__)

PRIVATE_KEY_MODE = 0o600
PUBLIC_FILE_MODE = 0o644
KEY_DIRECTORY_MODE = 0o700

# Windows may not expose freshly written files to ssh-keygen right away.
WINDOWS_SETTLE_SECONDS = 0.1

# "<bits> <fingerprint> <comment> (<TYPE>)"; the comment may be empty,
# which leaves two spaces before the type.
_KEY_INFO_LINE = re.compile(r"^(\d+)\s+(SHA256:\S+)\s+(.*?)\s+\(([^)]+)\)$")


@dataclass
class KeyInfo:
    """
    Metadata reported by ssh-keygen -l for a key file.
    """

    fingerprint: str
    key_type: str
    bits: int
    comment: Optional[str] = None


def parse_key_info(output: str) -> KeyInfo:
    """
    Parse a single ssh-keygen -l output line.
    """

    match = _KEY_INFO_LINE.match(output.strip())
    if not match:
        raise KeyParseError("Failed to parse SSH key info")
    bits, fingerprint, comment, key_type = match.groups()
    return KeyInfo(
        fingerprint=fingerprint,
        key_type=key_type,
        bits=int(bits),
        comment=comment or None,
    )


def _run_ssh_tool(args: List[str]) -> subprocess.CompletedProcess[str]:
    LOG.debug("Running ssh command: %s", " ".join(args))
    return subprocess.run(
        args,
        check=False,
        text=True,
        capture_output=True,
        stdin=subprocess.DEVNULL,
    )


def _platform_hint(windows_text: str) -> str:
    return windows_text if IS_WINDOWS else ""


def get_key_info(key_path: str) -> KeyInfo:
    """
    Return fingerprint, type, size and comment for the key at key_path.
    """

    try:
        completed = _run_ssh_tool(["ssh-keygen", "-l", "-f", key_path])
    except OSError as exc:
        raise KeyParseError(f"Failed to run ssh-keygen: {exc}") from exc

    if completed.returncode != 0:
        context = _platform_hint(
            " (Windows: ensure Git for Windows is available and key file is accessible)"
        )
        details = completed.stderr.strip()
        message = f"Failed to get SSH key fingerprint{context}."
        if details:
            message = f"{message} Error: {details}"
        raise KeyParseError(message)

    return parse_key_info(completed.stdout)


def derive_public_key(private_key_path: str) -> str:
    try:
        completed = _run_ssh_tool(["ssh-keygen", "-y", "-f", private_key_path])
    except OSError as exc:
        raise InvalidKeyError(f"Failed to run ssh-keygen: {exc}") from exc

    if completed.returncode != 0:
        LOG.debug("ssh-keygen stderr: %s", completed.stderr)
        raise InvalidKeyError("Failed to generate public key from private key")
    return completed.stdout.strip()


def normalize_key_text(raw_key: str) -> str:
    """
    Trim surrounding whitespace and end with exactly one newline.

    ssh-keygen refuses OpenSSH private keys without a trailing newline.
    """

    return f"{raw_key.strip()}\n"


def _write_text(path: str, text: str, mode: int) -> None:
    create_mode = creation_mode(mode)
    fd = os.open(
        path,
        os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
        0o666 if create_mode is None else create_mode,
    )
    with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
        if create_mode is not None:
            # os.open only applies the mode to new files.
            os.fchmod(handle.fileno(), create_mode)
        handle.write(text)


def _discard(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        LOG.debug("Failed to remove %s: %s", path, exc)


def install_key(raw_key: str, key_path: str) -> str:
    """
    Install the private key at key_path and return its public key.

    The public key is written next to it as <key_path>.pub. Raises
    InvalidKeyError, after deleting the private key, when ssh-keygen
    cannot read the key back.
    """

    key_dir = os.path.dirname(key_path)
    LOG.debug("Creating SSH directory: %s", key_dir)
    dir_mode = creation_mode(KEY_DIRECTORY_MODE)
    if dir_mode is None:
        os.makedirs(key_dir, exist_ok=True)
    else:
        os.makedirs(key_dir, mode=dir_mode, exist_ok=True)
    restrict_to_owner(key_dir, is_directory=True)

    LOG.debug("Installing SSH signing key at: %s", key_path)
    # ssh-keygen -l falls back to <key>.pub, so a stale one would mask a bad key.
    _discard(f"{key_path}.pub")
    try:
        _write_text(key_path, normalize_key_text(raw_key), PRIVATE_KEY_MODE)
    except OSError:
        _discard(key_path)
        raise
    restrict_to_owner(key_path)

    try:
        if IS_WINDOWS:
            time.sleep(WINDOWS_SETTLE_SECONDS)
        get_key_info(key_path)
    except KeyParseError as exc:
        _discard(key_path)
        hint = _platform_hint(" (Windows file system or SSH tool compatibility issue)")
        raise InvalidKeyError(f"Invalid SSH key: {exc}{hint}") from exc

    LOG.debug("Generating public key from private key")
    try:
        public_key = derive_public_key(key_path)
    except InvalidKeyError:
        _discard(key_path)
        raise

    _write_text(f"{key_path}.pub", f"{public_key}\n", PUBLIC_FILE_MODE)
    return public_key


def create_allowed_signers(identity: str, public_key: str, key_path: str) -> str:
    """
    Write an allowed signers file next to key_path and return its path.
    """

    signers_path = allowed_signers_for(key_path)
    _write_text(signers_path, f"{identity} {public_key}\n", PUBLIC_FILE_MODE)
    return signers_path


def add_to_agent(key_path: str) -> bool:
    """
    Register the key with a running ssh-agent.

    Returns False without raising when no agent is reachable or ssh-add
    fails; the signing setup does not depend on the agent.
    """

    if not os.environ.get("SSH_AUTH_SOCK"):
        note = _platform_hint(" (Windows SSH agent compatibility varies)")
        LOG.debug("SSH agent not available%s", note)
        return False

    try:
        completed = _run_ssh_tool(["ssh-add", key_path])
    except OSError as exc:
        note = _platform_hint(
            " This is common on Windows due to SSH implementation incompatibilities."
        )
        LOG.debug("SSH agent operation failed: %s.%s", exc, note)
        return False

    if completed.returncode != 0:
        hint = _platform_hint(
            " (Note: Windows has known SSH agent compatibility issues between"
            " OpenSSH and Git for Windows)"
        )
        LOG.debug("Failed to add key to SSH agent%s", hint)
        return False

    LOG.info("SSH key added to agent")
    return True


def remove_from_agent(key_path: str) -> None:
    if not os.environ.get("SSH_AUTH_SOCK"):
        return

    try:
        _run_ssh_tool(["ssh-add", "-d", key_path])
    except OSError as exc:
        note = _platform_hint(" (Windows SSH agent cleanup - this is not critical)")
        LOG.debug("Failed to remove key from SSH agent: %s%s", exc, note)


def key_files(key_path: str) -> List[str]:
    return [
        key_path,
        f"{key_path}.pub",
        allowed_signers_for(key_path),
    ]


def remove_key_files(key_path: str) -> None:
    """
    Delete the private key, public key and allowed signers file.

    Each deletion is independent; missing files are skipped.
    """

    LOG.info("Removing SSH keys and related files...")
    for path in key_files(key_path):
        try:
            os.unlink(path)
        except FileNotFoundError:
            LOG.debug("File removal skipped (%s): not present", path)
        except OSError as exc:
            LOG.debug("File removal skipped (%s): %s", path, exc)
        else:
            LOG.debug("Removed file: %s", path)
