from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from proxy_setup.backends import Backend

INSTALL_DIR = Path("/usr/local/proxy")
CONFIG_NAME = "config.json"
RECORD_NAME = "install.json"
LISTEN_HOST = "127.0.0.1"
DEFAULT_SOCKS_PORT = 1080
DEFAULT_HTTP_PORT = 8080


@dataclass(frozen=True)
class InstallTarget:
    backend: Backend
    socks_port: int = DEFAULT_SOCKS_PORT
    http_port: int = DEFAULT_HTTP_PORT
    install_dir: Path = INSTALL_DIR

    @property
    def binary_path(self) -> Path:
        return self.install_dir / self.backend.binary_name

    @property
    def config_path(self) -> Path:
        return self.install_dir / CONFIG_NAME

    @property
    def record_path(self) -> Path:
        return self.install_dir / RECORD_NAME


@dataclass(frozen=True)
class PlatformInfo:
    os_id: str
    init_system: str
    machine: str
    arch_tags: dict[str, str] = field(default_factory=dict)

    def arch_tag(self, backend: Backend) -> str:
        return self.arch_tags[backend.name]


@dataclass
class InstallRecord:
    backend: str
    version: str
    asset: str
    installed_at: str = ""

    def __post_init__(self) -> None:
        if not self.installed_at:
            self.installed_at = datetime.now(timezone.utc).isoformat(timespec="seconds")

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2) + "\n"

    @classmethod
    def load(cls, path: Path) -> InstallRecord | None:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
            return cls(
                backend=data["backend"],
                version=data.get("version", ""),
                asset=data.get("asset", ""),
                installed_at=data.get("installed_at", ""),
            )
        except (json.JSONDecodeError, KeyError, TypeError, OSError):
            return None
