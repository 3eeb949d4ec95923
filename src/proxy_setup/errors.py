from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from proxy_setup.system import CmdResult


class ProxySetupError(Exception):
    """Base class for failures that abort an install."""


class UnsupportedPlatformError(ProxySetupError):
    """OS, architecture or init system outside the supported set."""


class MissingDependencyError(ProxySetupError):
    """A required tool is absent and could not be installed."""


class ReleaseLookupError(ProxySetupError):
    """No release asset matched the backend and architecture."""


class NetworkError(ReleaseLookupError):
    """The release metadata or the asset could not be downloaded."""


class CommandError(ProxySetupError):
    def __init__(self, message: str, result: CmdResult) -> None:
        super().__init__(message)
        self.result = result

    def __str__(self) -> str:
        base = super().__str__()
        detail = (self.result.stderr or self.result.stdout).strip()
        if detail:
            return f"{base} ({self.result.cmd}: {detail.splitlines()[-1]})"
        return f"{base} ({self.result.cmd} exited {self.result.returncode})"
