from __future__ import annotations

import platform
from pathlib import Path

from proxy_setup.errors import UnsupportedPlatformError
from proxy_setup.models import PlatformInfo
from proxy_setup.system import run_cmd

OS_RELEASE = Path("/etc/os-release")

SYSTEMD = "systemd"
OPENRC = "openrc"

# Probed in order; the first command that answers wins.
INIT_PROBES: list[tuple[str, list[str]]] = [
    (SYSTEMD, ["systemctl", "--version"]),
    (OPENRC, ["rc-service", "--version"]),
]

ARCH_TAGS: dict[str, dict[str, str]] = {
    "x86_64": {"xray": "64", "sing-box": "amd64"},
    "aarch64": {"xray": "arm64-v8a", "sing-box": "arm64"},
    "arm": {"xray": "arm", "sing-box": "armv7"},
}


def read_os_release(path: Path = OS_RELEASE) -> dict[str, str]:
    data: dict[str, str] = {}
    for line in path.read_text().splitlines():
        if "=" not in line or line.lstrip().startswith("#"):
            continue
        k, v = line.split("=", 1)
        data[k.strip()] = v.strip().strip('"').strip("'")
    return data


def detect_os_id(path: Path = OS_RELEASE) -> str:
    if not path.exists():
        raise UnsupportedPlatformError("Unable to detect the operating system (no /etc/os-release).")
    os_id = read_os_release(path).get("ID", "").lower()
    if not os_id:
        raise UnsupportedPlatformError(f"Unable to detect the operating system (no ID in {path}).")
    return os_id


def probe_init_system() -> str | None:
    for name, probe in INIT_PROBES:
        if run_cmd(probe).ok:
            return name
    return None


def detect_init_system() -> str:
    init_system = probe_init_system()
    if init_system is None:
        raise UnsupportedPlatformError("Unsupported init system (need systemd or OpenRC).")
    return init_system


def arch_tags(machine: str) -> dict[str, str]:
    if machine in ARCH_TAGS:
        return dict(ARCH_TAGS[machine])
    if machine.startswith("arm"):
        return dict(ARCH_TAGS["arm"])
    raise UnsupportedPlatformError(f"Unsupported architecture: {machine}")


def detect_platform(os_release: Path = OS_RELEASE, machine: str | None = None) -> PlatformInfo:
    os_id = detect_os_id(os_release)
    init_system = detect_init_system()
    machine = machine or platform.machine()
    return PlatformInfo(
        os_id=os_id,
        init_system=init_system,
        machine=machine,
        arch_tags=arch_tags(machine),
    )
