"""
Tests for the privileged file helpers when the target is not writable.
"""

import subprocess
from pathlib import Path

import pytest

from proxy_setup import system
from proxy_setup.errors import CommandError

from conftest import FakeRunner, fail


@pytest.fixture
def sudo_run(monkeypatch) -> FakeRunner:
    """Force the sudo branch and record the commands it would run."""
    runner = FakeRunner()
    monkeypatch.setattr(system, "_can_write", lambda path: False)
    monkeypatch.setattr(system, "run_cmd", runner)
    return runner


@pytest.fixture
def tee_exit(monkeypatch):
    codes = {"tee": 0}

    def fake_subprocess_run(args, **kwargs):
        return subprocess.CompletedProcess(args, codes["tee"])

    monkeypatch.setattr(system.subprocess, "run", fake_subprocess_run)
    return codes


class TestInstallFile:
    def test_sudo_install(self, sudo_run, tmp_path: Path):
        system.install_file(tmp_path / "xray", Path("/usr/local/proxy/xray"))
        assert sudo_run.calls == [
            ["mkdir", "-p", "/usr/local/proxy"],
            ["install", "-m", "755", str(tmp_path / "xray"), "/usr/local/proxy/xray"],
        ]

    def test_failed_install_is_fatal(self, sudo_run, tmp_path: Path):
        sudo_run.on(["install"], lambda args: fail(args, 1))
        with pytest.raises(CommandError, match="Could not install /usr/local/proxy/xray"):
            system.install_file(tmp_path / "xray", Path("/usr/local/proxy/xray"))

    def test_failed_mkdir_stops_early(self, sudo_run, tmp_path: Path):
        sudo_run.on(["mkdir"], lambda args: fail(args, 1))
        with pytest.raises(CommandError, match="Could not create"):
            system.install_file(tmp_path / "xray", Path("/usr/local/proxy/xray"))
        assert not sudo_run.commands("install")


class TestWriteFile:
    def test_sudo_write(self, sudo_run, tee_exit):
        system.write_file(Path("/usr/local/proxy/config.json"), "{}")
        assert sudo_run.calls[-1] == ["chmod", "644", "/usr/local/proxy/config.json"]

    def test_failed_tee_is_fatal(self, sudo_run, tee_exit):
        tee_exit["tee"] = 1
        with pytest.raises(CommandError, match="Could not write /usr/local/proxy/config.json"):
            system.write_file(Path("/usr/local/proxy/config.json"), "{}")
        assert not sudo_run.commands("chmod")

    def test_failed_chmod_is_fatal(self, sudo_run, tee_exit):
        sudo_run.on(["chmod"], lambda args: fail(args, 1))
        with pytest.raises(CommandError, match="mode"):
            system.write_file(Path("/etc/init.d/proxy"), "#!/sbin/openrc-run\n", mode=0o755)


def test_setup_log_path_default(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(system.Path, "home", lambda: tmp_path)
    path = system.setup_log_path(None)
    assert path == tmp_path / ".local" / "share" / "proxy-setup" / "LAST-SETUP.md"
    assert path.parent.is_dir()
