"""
ssh-signing: install an SSH signing key for git and undo it afterwards.

The setup phase (setup_phase) and the cleanup phase (cleanup_phase) run
as separate processes and communicate only through a state store
(state) and the key files on disk (ssh_keys).
"""

__version__ = "0.1.0"
