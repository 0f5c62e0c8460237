"""
Custom exception types used across ssh-signing.

The setup phase propagates the fatal errors below and reports them as a
single failure. Best-effort failures are raised only between helpers
that are expected to catch them; they never reach the CLI.
"""

from __future__ import annotations


class SshSigningError(Exception):
    """Base class for all ssh-signing specific errors."""


class InputValidationError(SshSigningError):
    """Raised when a required input is missing or has an invalid value."""


class RepositoryContextError(SshSigningError):
    """Raised when local scope is requested outside a git repository."""


class GitError(SshSigningError):
    """Raised when the git executable cannot be run."""


class ConfigWriteError(GitError):
    """Raised when git refuses to write a configuration value."""


class KeyParseError(SshSigningError):
    """Raised when ssh-keygen output does not match the expected format."""


class InvalidKeyError(SshSigningError):
    """Raised when key text fails verification; the key file is removed first."""


class BestEffortFailure(SshSigningError):
    """Raised for non-fatal failures (agent, permissions, side configuration)."""


class PermissionHardeningError(BestEffortFailure):
    """Raised when owner-only permissions could not be applied."""
