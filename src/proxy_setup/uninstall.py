from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from proxy_setup.backends import BACKENDS
from proxy_setup.models import RECORD_NAME, InstallRecord
from proxy_setup.service import ServiceManager
from proxy_setup.system import log_line, remove_path

NOT_FOUND_MESSAGE = "No proxy installation found. Cleanup complete."


@dataclass
class UninstallReport:
    backends: list[str] = field(default_factory=list)
    removed_dir: bool = False
    removed_service: bool = False

    @property
    def found(self) -> bool:
        return bool(self.backends)

    @property
    def message(self) -> str:
        if not self.backends:
            return NOT_FOUND_MESSAGE
        return f"{', '.join(self.backends)} uninstalled."


def detect_installed(install_dir: Path) -> list[str]:
    """Name the installed backend(s): the install record if readable, else binaries on disk."""
    record = InstallRecord.load(install_dir / RECORD_NAME)
    if record is not None and record.backend in BACKENDS:
        return [record.backend]
    return [
        backend.name
        for backend in BACKENDS.values()
        if (install_dir / backend.binary_name).is_file()
    ]


def uninstall(
    install_dir: Path,
    service: ServiceManager | None,
    log_fp: TextIO | None = None,
) -> UninstallReport:
    report = UninstallReport(backends=detect_installed(install_dir))

    if service is not None:
        report.removed_service = service.is_installed()
        service.uninstall()
    else:
        log_line(log_fp, "- init system unknown, service step skipped")

    try:
        report.removed_dir = remove_path(install_dir)
    except OSError as exc:
        log_line(log_fp, f"- could not remove {install_dir}: {exc}")
    else:
        state = "removed" if report.removed_dir else "already absent"
        log_line(log_fp, f"- {install_dir} {state}")
    return report
