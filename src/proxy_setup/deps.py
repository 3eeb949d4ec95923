from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from rich import print

from proxy_setup.backends import Backend
from proxy_setup.errors import MissingDependencyError, NetworkError, UnsupportedPlatformError
from proxy_setup.system import cmd_exists, log_line, run_cmd, run_stream


@dataclass(frozen=True)
class PackageManager:
    install: list[str]
    refresh: list[str] = field(default_factory=list)


APT = PackageManager(install=["apt-get", "install", "-y"], refresh=["apt-get", "update"])
YUM = PackageManager(install=["yum", "install", "-y"])
APK = PackageManager(install=["apk", "add"])

PACKAGE_MANAGERS: dict[str, PackageManager] = {
    "debian": APT,
    "ubuntu": APT,
    "centos": YUM,
    "alpine": APK,
}

# Accepted download tools, most preferred first.
DOWNLOADERS = ("curl", "wget")


@dataclass(frozen=True)
class Downloader:
    tool: str

    def text_cmd(self, url: str) -> list[str]:
        if self.tool == "curl":
            return ["curl", "-fsSL", url]
        return ["wget", "-qO-", url]

    def file_cmd(self, url: str, dest: Path) -> list[str]:
        if self.tool == "curl":
            return ["curl", "-fsSL", "-o", str(dest), url]
        return ["wget", "-qO", str(dest), url]

    def fetch_text(self, url: str) -> str:
        res = run_cmd(self.text_cmd(url))
        if not res.ok:
            raise NetworkError(f"Download failed: {url} ({self.tool} exited {res.returncode})")
        return res.stdout

    def fetch_file(self, url: str, dest: Path) -> Path:
        res = run_cmd(self.file_cmd(url, dest))
        if not res.ok or not dest.exists():
            raise NetworkError(f"Download failed: {url} ({self.tool} exited {res.returncode})")
        return dest


def package_manager_for(os_id: str) -> PackageManager:
    manager = PACKAGE_MANAGERS.get(os_id)
    if manager is None:
        raise UnsupportedPlatformError(f"Unsupported operating system: {os_id}")
    return manager


def install_packages(os_id: str, packages: list[str], log_fp: TextIO | None = None) -> None:
    manager = package_manager_for(os_id)
    if manager.refresh:
        run_stream(manager.refresh, log_fp, sudo=True)
    code = run_stream(manager.install + packages, log_fp, sudo=True)
    if code != 0:
        raise MissingDependencyError(
            f"Could not install {', '.join(packages)} ({manager.install[0]} exited {code})."
        )


def ensure_tool(name: str, os_id: str, package: str | None = None, log_fp: TextIO | None = None) -> None:
    if cmd_exists(name):
        return
    print(f"[yellow]{name} is not installed, installing...[/yellow]")
    log_line(log_fp, f"- installing {package or name}")
    install_packages(os_id, [package or name], log_fp)
    if not cmd_exists(name):
        raise MissingDependencyError(f"{name} is still missing after installing {package or name}.")


def ensure_archive_tool(os_id: str, backend: Backend, log_fp: TextIO | None = None) -> None:
    ensure_tool(backend.archive_tool, os_id, log_fp=log_fp)


def ensure_downloader(os_id: str, log_fp: TextIO | None = None) -> Downloader:
    for tool in DOWNLOADERS:
        if cmd_exists(tool):
            return Downloader(tool)
    ensure_tool(DOWNLOADERS[0], os_id, log_fp=log_fp)
    return Downloader(DOWNLOADERS[0])


def resolve_dependencies(os_id: str, backend: Backend, log_fp: TextIO | None = None) -> Downloader:
    ensure_archive_tool(os_id, backend, log_fp)
    return ensure_downloader(os_id, log_fp)
