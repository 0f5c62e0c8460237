"""
npm tag signing side configuration.

Setup asks npm to sign the tags it creates (npm version) and cleanup
removes that setting again. Both are best-effort: a missing or failing
npm never affects the git signing setup.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import List

LOG = logging.getLogger(__name__)


def _run_npm(args: List[str]) -> bool:
    npm = shutil.which("npm")
    if npm is None:
        LOG.debug("npm not available, skipping npm configuration")
        return False
    try:
        completed = subprocess.run(
            [npm, *args],
            check=False,
            text=True,
            capture_output=True,
        )
    except OSError as exc:
        LOG.debug("npm configuration skipped: %s", exc)
        return False
    if completed.returncode != 0:
        LOG.debug("npm %s failed: %s", " ".join(args), completed.stderr.strip())
        return False
    return True


def enable_tag_signing() -> bool:
    if _run_npm(["config", "set", "sign-git-tag", "true"]):
        LOG.debug("npm configured for git tag signing")
        return True
    return False


def clear_tag_signing() -> bool:
    if _run_npm(["config", "delete", "sign-git-tag"]):
        LOG.debug("Cleared npm signing configuration")
        return True
    return False
