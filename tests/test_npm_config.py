import subprocess

from ssh_signing.npm_config import clear_tag_signing, enable_tag_signing


def _npm_on_path(monkeypatch):
    monkeypatch.setattr("ssh_signing.npm_config.shutil.which", lambda name: "/usr/bin/npm")


def test_enable_and_clear_run_npm_config(monkeypatch):
    _npm_on_path(monkeypatch)
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(args=cmd, returncode=0, stdout="", stderr="")

    monkeypatch.setattr("ssh_signing.npm_config.subprocess.run", fake_run)

    assert enable_tag_signing() is True
    assert clear_tag_signing() is True
    assert calls == [
        ["/usr/bin/npm", "config", "set", "sign-git-tag", "true"],
        ["/usr/bin/npm", "config", "delete", "sign-git-tag"],
    ]


def test_missing_npm_is_skipped(monkeypatch):
    monkeypatch.setattr("ssh_signing.npm_config.shutil.which", lambda name: None)

    def fail_run(*args, **kwargs):
        raise AssertionError("npm must not be invoked")

    monkeypatch.setattr("ssh_signing.npm_config.subprocess.run", fail_run)

    assert enable_tag_signing() is False
    assert clear_tag_signing() is False


def test_npm_failure_is_not_fatal(monkeypatch):
    _npm_on_path(monkeypatch)

    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(
            args=cmd, returncode=1, stdout="", stderr="npm ERR! config is read-only"
        )

    monkeypatch.setattr("ssh_signing.npm_config.subprocess.run", fake_run)

    assert enable_tag_signing() is False
    assert clear_tag_signing() is False


def test_npm_spawn_error_is_not_fatal(monkeypatch):
    _npm_on_path(monkeypatch)

    def fake_run(*args, **kwargs):
        raise PermissionError("npm")

    monkeypatch.setattr("ssh_signing.npm_config.subprocess.run", fake_run)

    assert enable_tag_signing() is False
    assert clear_tag_signing() is False
