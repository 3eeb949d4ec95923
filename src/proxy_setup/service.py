from __future__ import annotations

import textwrap
from pathlib import Path
from typing import TextIO

from proxy_setup.detect import OPENRC, SYSTEMD
from proxy_setup.errors import CommandError, UnsupportedPlatformError
from proxy_setup.models import InstallTarget
from proxy_setup.system import log_line, remove_path, run_cmd, write_file

SERVICE_NAME = "proxy"
RUN_USER = "nobody"
RUN_GROUP = "nogroup"
SYSTEMD_UNIT_DIR = Path("/etc/systemd/system")
OPENRC_INIT_DIR = Path("/etc/init.d")


class ServiceManager:
    """Install and remove the proxy service for one init system."""

    init_system = ""
    unit_mode = 0o644

    def __init__(self, unit_dir: Path, log_fp: TextIO | None = None) -> None:
        self.unit_dir = unit_dir
        self.log_fp = log_fp

    @property
    def unit_path(self) -> Path:
        raise NotImplementedError

    def render_unit(self, target: InstallTarget) -> str:
        raise NotImplementedError

    def install_steps(self, restart: bool) -> list[list[str]]:
        raise NotImplementedError

    def uninstall_steps(self) -> list[list[str]]:
        raise NotImplementedError

    def after_remove_steps(self) -> list[list[str]]:
        return []

    def is_installed(self) -> bool:
        return self.unit_path.exists()

    def _run(self, cmd: list[str], check: bool) -> None:
        log_line(self.log_fp, f"$ {' '.join(cmd)}")
        res = run_cmd(cmd, sudo=True, capture=False)
        if check and not res.ok:
            raise CommandError("Service command failed", res)

    def install(self, target: InstallTarget) -> None:
        restart = self.is_installed()
        write_file(self.unit_path, self.render_unit(target), mode=self.unit_mode)
        log_line(self.log_fp, f"- wrote {self.unit_path}")
        for cmd in self.install_steps(restart):
            self._run(cmd, check=True)

    def uninstall(self) -> None:
        # Exit codes ignored: the service may already be stopped or gone.
        for cmd in self.uninstall_steps():
            self._run(cmd, check=False)
        try:
            if remove_path(self.unit_path):
                log_line(self.log_fp, f"- removed {self.unit_path}")
        except OSError as exc:
            log_line(self.log_fp, f"- could not remove {self.unit_path}: {exc}")
        for cmd in self.after_remove_steps():
            self._run(cmd, check=False)


class SystemdService(ServiceManager):
    init_system = SYSTEMD

    def __init__(self, unit_dir: Path = SYSTEMD_UNIT_DIR, log_fp: TextIO | None = None) -> None:
        super().__init__(unit_dir, log_fp)

    @property
    def unit_path(self) -> Path:
        return self.unit_dir / f"{SERVICE_NAME}.service"

    def render_unit(self, target: InstallTarget) -> str:
        return textwrap.dedent(
            f"""
            [Unit]
            Description=Proxy service ({target.backend.name})
            After=network.target

            [Service]
            Type=simple
            ExecStart={target.binary_path} run -c {target.config_path}
            Restart=on-failure
            User={RUN_USER}
            Group={RUN_GROUP}

            [Install]
            WantedBy=multi-user.target
            """
        ).lstrip()

    def install_steps(self, restart: bool) -> list[list[str]]:
        unit = f"{SERVICE_NAME}.service"
        return [
            ["systemctl", "daemon-reload"],
            ["systemctl", "enable", unit],
            ["systemctl", "restart" if restart else "start", unit],
        ]

    def uninstall_steps(self) -> list[list[str]]:
        unit = f"{SERVICE_NAME}.service"
        return [
            ["systemctl", "stop", unit],
            ["systemctl", "disable", unit],
        ]

    def after_remove_steps(self) -> list[list[str]]:
        return [["systemctl", "daemon-reload"]]


class OpenRCService(ServiceManager):
    init_system = OPENRC
    unit_mode = 0o755

    def __init__(self, unit_dir: Path = OPENRC_INIT_DIR, log_fp: TextIO | None = None) -> None:
        super().__init__(unit_dir, log_fp)

    @property
    def unit_path(self) -> Path:
        return self.unit_dir / SERVICE_NAME

    def render_unit(self, target: InstallTarget) -> str:
        return textwrap.dedent(
            f"""
            #!/sbin/openrc-run

            name="{SERVICE_NAME}"
            description="Proxy service ({target.backend.name})"
            command="{target.binary_path}"
            command_args="run -c {target.config_path}"
            command_background=true
            pidfile="/run/{SERVICE_NAME}.pid"
            command_user="{RUN_USER}:{RUN_GROUP}"

            depend() {{
              need net
            }}
            """
        ).lstrip()

    def install_steps(self, restart: bool) -> list[list[str]]:
        return [
            ["rc-update", "add", SERVICE_NAME, "default"],
            ["rc-service", SERVICE_NAME, "restart" if restart else "start"],
        ]

    def uninstall_steps(self) -> list[list[str]]:
        return [
            ["rc-service", SERVICE_NAME, "stop"],
            ["rc-update", "del", SERVICE_NAME, "default"],
        ]


SERVICE_MANAGERS: dict[str, type[ServiceManager]] = {
    SYSTEMD: SystemdService,
    OPENRC: OpenRCService,
}


def service_manager_for(
    init_system: str,
    log_fp: TextIO | None = None,
    unit_dir: Path | None = None,
) -> ServiceManager:
    cls = SERVICE_MANAGERS.get(init_system)
    if cls is None:
        raise UnsupportedPlatformError(f"Unsupported init system: {init_system}")
    if unit_dir is None:
        return cls(log_fp=log_fp)
    return cls(unit_dir, log_fp)
