import logging
import subprocess

from conftest import requires_git, run_git

from ssh_signing.config import ConfigScope
from ssh_signing.errors import ConfigWriteError, GitError
from ssh_signing.git_adapter import (
    config_exists,
    display_config,
    get_config,
    is_inside_repository,
    mask_value,
    set_config,
    unset_config,
)


def test_nonzero_git_exit_is_reported_by_the_config_operation(monkeypatch, caplog):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(
            args=cmd, returncode=5, stdout="", stderr="error: key does not contain a section"
        )

    monkeypatch.setattr("ssh_signing.git_adapter.subprocess.run", fake_run)

    with caplog.at_level(logging.DEBUG, logger="ssh_signing.git_adapter"):
        assert unset_config("gpg.format", ConfigScope.LOCAL) is False
        assert get_config("gpg.format", ConfigScope.LOCAL) is None
        assert is_inside_repository() is False

    assert "git stderr: error: key does not contain a section" in caplog.text


def test_run_git_reports_missing_executable(monkeypatch):
    def fake_run(*args, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr("ssh_signing.git_adapter.subprocess.run", fake_run)

    try:
        get_config("user.name", ConfigScope.LOCAL)
    except GitError as exc:
        assert "failed to execute git" in str(exc)
    else:
        raise AssertionError("expected GitError to be raised")


def test_every_config_command_carries_the_scope_flag(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(args=cmd, returncode=0, stdout="value\n", stderr="")

    monkeypatch.setattr("ssh_signing.git_adapter.subprocess.run", fake_run)

    assert get_config("user.name", ConfigScope.GLOBAL) == "value"
    set_config("user.name", "A", ConfigScope.LOCAL)
    assert unset_config("user.name", ConfigScope.GLOBAL) is True

    assert calls == [
        ["git", "config", "--global", "--get", "user.name"],
        ["git", "config", "--local", "user.name", "A"],
        ["git", "config", "--global", "--unset-all", "user.name"],
    ]


def test_set_config_raises_config_write_error(monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(
            args=cmd, returncode=3, stdout="", stderr="error: could not lock config file"
        )

    monkeypatch.setattr("ssh_signing.git_adapter.subprocess.run", fake_run)

    try:
        set_config("user.name", "A", ConfigScope.LOCAL)
    except ConfigWriteError as exc:
        assert "Failed to set git config user.name" in str(exc)
        assert "could not lock config file" in str(exc)
    else:
        raise AssertionError("expected ConfigWriteError to be raised")


def test_mask_value_hides_final_path_segment():
    assert mask_value("/home/runner/.ssh/signing_key.pub") == "/home/runner/.ssh/***"
    assert mask_value("C:\\Users\\me\\.ssh\\signing_key") == "C:\\Users\\me\\.ssh\\***"
    assert mask_value("ssh") == "ssh"
    assert mask_value("someone@example.com") == "someone@example.com"


@requires_git
def test_local_scope_round_trip_is_independent_of_global(git_repo):
    run_git(["config", "--global", "user.name", "Global User"], cwd=git_repo)

    set_config("user.name", "A", ConfigScope.LOCAL)

    assert get_config("user.name", ConfigScope.LOCAL) == "A"
    assert get_config("user.name", ConfigScope.GLOBAL) == "Global User"


@requires_git
def test_local_scope_only_affects_current_repository(tmp_path, git_repo, monkeypatch):
    other = tmp_path / "other"
    other.mkdir()
    run_git(["init"], cwd=other)

    set_config("commit.gpgsign", "true", ConfigScope.LOCAL)

    monkeypatch.chdir(other)
    assert get_config("commit.gpgsign", ConfigScope.LOCAL) is None
    assert get_config("commit.gpgsign", ConfigScope.LOCAL, cwd=str(git_repo)) == "true"


@requires_git
def test_missing_key_reads_as_none(git_repo):
    assert get_config("tag.gpgsign", ConfigScope.LOCAL) is None
    assert config_exists("tag.gpgsign", ConfigScope.LOCAL) is False


@requires_git
def test_unset_twice_reports_true_then_false(git_repo):
    set_config("tag.gpgsign", "true", ConfigScope.LOCAL)

    assert unset_config("tag.gpgsign", ConfigScope.LOCAL) is True
    assert unset_config("tag.gpgsign", ConfigScope.LOCAL) is False
    assert config_exists("tag.gpgsign", ConfigScope.LOCAL) is False


@requires_git
def test_is_inside_repository(tmp_path, git_repo, monkeypatch):
    assert is_inside_repository() is True

    outside = tmp_path / "outside"
    outside.mkdir()
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    assert is_inside_repository(cwd=str(outside)) is False


@requires_git
def test_display_config_masks_paths(git_repo, caplog):
    set_config("user.signingkey", "/secret/dir/signing_key.pub", ConfigScope.LOCAL)
    set_config("gpg.format", "ssh", ConfigScope.LOCAL)

    with caplog.at_level(logging.INFO, logger="ssh_signing.git_adapter"):
        display_config(["user.signingkey", "gpg.format", "push.gpgsign"], ConfigScope.LOCAL)

    assert "user.signingkey = /secret/dir/***" in caplog.text
    assert "signing_key.pub" not in caplog.text
    assert "gpg.format = ssh" in caplog.text
    assert "push.gpgsign" not in caplog.text
