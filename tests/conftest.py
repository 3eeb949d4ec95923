"""
Shared test fixtures: a fake command runner and canned release payloads.
"""

from __future__ import annotations

import json
import shlex
from pathlib import Path
from typing import Callable

import pytest

from proxy_setup import deps, detect, release, service
from proxy_setup.system import CmdResult

Handler = Callable[[list[str]], CmdResult]


def ok(args: list[str], stdout: str = "") -> CmdResult:
    return CmdResult(" ".join(args), 0, stdout, "")


def fail(args: list[str], code: int = 1, stderr: str = "boom") -> CmdResult:
    return CmdResult(" ".join(args), code, "", stderr)


class FakeRunner:
    """Stands in for run_cmd: records argv lists and answers by prefix."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.handlers: list[tuple[list[str], Handler]] = []

    def on(self, prefix: list[str], handler: Handler) -> None:
        self.handlers.insert(0, (prefix, handler))

    def fail_on(self, prefix: list[str], code: int = 1) -> None:
        self.on(prefix, lambda args: fail(args, code))

    def __call__(self, cmd, sudo: bool = False, capture: bool = True) -> CmdResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)
        self.calls.append(args)
        for prefix, handler in self.handlers:
            if args[: len(prefix)] == prefix:
                return handler(args)
        return ok(args)

    def commands(self, program: str) -> list[list[str]]:
        return [c for c in self.calls if c and c[0] == program]


@pytest.fixture
def fake_run(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    for module in (detect, deps, release, service):
        monkeypatch.setattr(module, "run_cmd", runner)
    return runner


def release_payload(tag: str, names: list[str]) -> str:
    return json.dumps(
        {
            "tag_name": tag,
            "name": tag,
            "assets": [
                {
                    "name": name,
                    "size": 1024,
                    "browser_download_url": f"https://github.com/example/releases/download/{tag}/{name}",
                }
                for name in names
            ],
        }
    )


XRAY_ASSETS = [
    "Xray-linux-32.zip",
    "Xray-linux-64.zip",
    "Xray-linux-64.zip.dgst",
    "Xray-linux-arm32-v7a.zip",
    "Xray-linux-arm.zip",
    "Xray-linux-arm64-v8a.zip",
    "Xray-windows-64.zip",
]

SING_BOX_ASSETS = [
    "sing-box-1.9.3-android-arm64.tar.gz",
    "sing-box-1.9.3-linux-amd64.tar.gz",
    "sing-box-1.9.3-linux-amd64v3.tar.gz",
    "sing-box-1.9.3-linux-arm64.tar.gz",
    "sing-box-1.9.3-linux-armv7.tar.gz",
    "sing-box-1.9.3-windows-amd64.zip",
]


@pytest.fixture
def xray_release() -> str:
    return release_payload("v1.8.11", XRAY_ASSETS)


@pytest.fixture
def sing_box_release() -> str:
    return release_payload("v1.9.3", SING_BOX_ASSETS)


def _arg_after(args: list[str], flag: str) -> str:
    return args[args.index(flag) + 1]


def install_release_handlers(runner: FakeRunner, payload: str) -> list[Path]:
    """Answer curl and the archive tools as if GitHub and the archives were real.

    Returns the list that receives every download destination, so tests can check
    the temporary files are gone afterwards.
    """
    downloads: list[Path] = []

    def curl(args: list[str]) -> CmdResult:
        if "-o" in args:
            dest = Path(_arg_after(args, "-o"))
            dest.write_bytes(b"archive")
            downloads.append(dest)
            return ok(args)
        return ok(args, payload)

    def unzip(args: list[str]) -> CmdResult:
        dest = Path(_arg_after(args, "-d"))
        (dest / "xray").write_bytes(b"\x7fELF")
        (dest / "geoip.dat").write_bytes(b"geo")
        (dest / "README.md").write_text("readme")
        return ok(args)

    def tar(args: list[str]) -> CmdResult:
        dest = Path(_arg_after(args, "-C"))
        inner = dest / "sing-box-1.9.3-linux-amd64"
        inner.mkdir(parents=True)
        (inner / "sing-box").write_bytes(b"\x7fELF")
        (inner / "LICENSE").write_text("license")
        return ok(args)

    runner.on(["curl"], curl)
    runner.on(["unzip"], unzip)
    runner.on(["tar"], tar)
    return downloads


@pytest.fixture
def os_release(tmp_path: Path) -> Path:
    path = tmp_path / "os-release"
    path.write_text('NAME="Debian GNU/Linux"\nID=debian\nVERSION_ID="12"\n')
    return path
