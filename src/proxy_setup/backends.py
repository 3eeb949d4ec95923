from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Backend:
    name: str
    title: str
    repo: str
    asset_pattern: str
    archive_format: str
    archive_tool: str
    binary_name: str

    @property
    def release_api(self) -> str:
        return f"https://api.github.com/repos/{self.repo}/releases/latest"

    def asset_regex(self, arch_tag: str) -> re.Pattern[str]:
        return re.compile(self.asset_pattern.format(arch=re.escape(arch_tag)))


XRAY = Backend(
    name="xray",
    title="Xray",
    repo="XTLS/Xray-core",
    asset_pattern=r"^Xray-linux-{arch}\.zip$",
    archive_format="zip",
    archive_tool="unzip",
    binary_name="xray",
)

SING_BOX = Backend(
    name="sing-box",
    title="sing-box",
    repo="SagerNet/sing-box",
    asset_pattern=r"^sing-box-.+-linux-{arch}\.tar\.gz$",
    archive_format="tar.gz",
    archive_tool="tar",
    binary_name="sing-box",
)

BACKENDS: dict[str, Backend] = {b.name: b for b in (XRAY, SING_BOX)}
DEFAULT_BACKEND = XRAY.name


def get_backend(name: str) -> Backend | None:
    return BACKENDS.get(name)
