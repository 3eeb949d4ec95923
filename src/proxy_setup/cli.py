from __future__ import annotations

import textwrap
from pathlib import Path
from typing import TextIO

import click
import typer
from rich import print
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from typer.core import TyperCommand

from proxy_setup.backends import BACKENDS, DEFAULT_BACKEND, get_backend
from proxy_setup.deps import resolve_dependencies
from proxy_setup.detect import detect_platform, probe_init_system
from proxy_setup.errors import ProxySetupError
from proxy_setup.models import (
    DEFAULT_HTTP_PORT,
    DEFAULT_SOCKS_PORT,
    INSTALL_DIR,
    LISTEN_HOST,
    InstallTarget,
    PlatformInfo,
)
from proxy_setup.release import install_binary
from proxy_setup.renderer import write_config
from proxy_setup.service import service_manager_for
from proxy_setup.system import APP_ID, log_block, log_line, setup_log_path
from proxy_setup.uninstall import uninstall as uninstall_proxy

console = Console()
APP_TITLE = "Proxy-Setup"

USAGE = textwrap.dedent(
    f"""
    Usage: {APP_ID} [-n] [-u] [-s socks_port] [-h http_port] [-t proxy_type]
      -n: show node info (always printed after install)
      -u: uninstall the proxy
      -s: SOCKS5 port (default: {DEFAULT_SOCKS_PORT})
      -h: HTTP port (default: {DEFAULT_HTTP_PORT})
      -t: proxy type ({' or '.join(BACKENDS)}, default: {DEFAULT_BACKEND})
    """
).strip()


class GetoptsCommand(TyperCommand):
    """Unknown flags print the usage and exit 0; bad values exit 1; operands are ignored."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except (click.NoSuchOption, click.BadOptionUsage):
            console.print(USAGE, markup=False, highlight=False)
            ctx.exit(0)
        except click.BadParameter as exc:
            console.print(f"[red]{escape(exc.format_message())}[/red]")
            ctx.exit(1)
        except click.UsageError:
            console.print(USAGE, markup=False, highlight=False)
            ctx.exit(0)


app = typer.Typer(add_completion=False, help="Install a local SOCKS5 + HTTP proxy (xray or sing-box)")


def print_section(title: str, log_fp: TextIO | None) -> None:
    header = f"\n=== {title} ==="
    print(header)
    log_line(log_fp, header)


def kv_table(rows: list[tuple[str, str]], key_width: int = 14) -> Table:
    table = Table.grid(padding=(0, 1))
    table.add_column(style="bold cyan", no_wrap=True, width=key_width)
    table.add_column()
    for key, value in rows:
        table.add_row(key, value)
    return table


def node_info_lines(target: InstallTarget) -> list[str]:
    return [
        f"SOCKS5 node: socks5://{LISTEN_HOST}:{target.socks_port}",
        f"HTTP node: http://{LISTEN_HOST}:{target.http_port}",
    ]


def show_node_info(target: InstallTarget, log_fp: TextIO | None = None) -> None:
    for line in node_info_lines(target):
        console.print(line, highlight=False)
        log_line(log_fp, line)


def platform_rows(info: PlatformInfo, target: InstallTarget) -> list[tuple[str, str]]:
    return [
        ("OS", info.os_id),
        ("Init system", info.init_system),
        ("Architecture", f"{info.machine} -> {info.arch_tag(target.backend)}"),
        ("Install dir", str(target.install_dir)),
    ]


def run_install(target: InstallTarget, log_fp: TextIO | None) -> None:
    backend = target.backend
    print(Panel(f"Install {backend.title}", subtitle=f"SOCKS5 :{target.socks_port}  HTTP :{target.http_port}"))
    log_line(log_fp, f"# {APP_TITLE} install ({backend.name})")

    print_section("Step 1: Detect platform", log_fp)
    info = detect_platform()
    rows = platform_rows(info, target)
    print(kv_table(rows))
    log_block(log_fp, "\n".join(f"- {k}: {v}" for k, v in rows))

    print_section("Step 2: Dependencies", log_fp)
    downloader = resolve_dependencies(info.os_id, backend, log_fp)
    print(f"Archive tool: [green]{backend.archive_tool}[/green]  Downloader: [green]{downloader.tool}[/green]")

    print_section(f"Step 3: Download {backend.title}", log_fp)
    record = install_binary(target, info, downloader, log_fp)
    print(f"[green]Installed[/green] {target.binary_path} ({record.version or 'unknown version'})")

    print_section("Step 4: Write config", log_fp)
    write_config(target)
    log_line(log_fp, f"- wrote {target.config_path}")
    print(f"[green]Wrote[/green] {target.config_path}")

    print_section("Step 5: Service", log_fp)
    service = service_manager_for(info.init_system, log_fp)
    service.install(target)
    print(f"[green]Service enabled and started[/green] ({service.unit_path})")

    print()
    show_node_info(target, log_fp)


def run_uninstall(install_dir: Path, log_fp: TextIO | None) -> None:
    print(Panel("Uninstall proxy"))
    log_line(log_fp, f"# {APP_TITLE} uninstall")
    init_system = probe_init_system()
    service = service_manager_for(init_system, log_fp) if init_system else None
    report = uninstall_proxy(install_dir, service, log_fp)
    log_line(log_fp, report.message)
    if report.found:
        print(f"[green]{report.message}[/green]")
    else:
        print(f"[yellow]{report.message}[/yellow]")


@app.command(cls=GetoptsCommand, context_settings={"allow_extra_args": True})
def main(
    node_info: bool = typer.Option(False, "--node-info", "-n", help="Show node info after install."),
    uninstall: bool = typer.Option(False, "--uninstall", "-u", help="Uninstall the proxy."),
    socks_port: int = typer.Option(DEFAULT_SOCKS_PORT, "--socks-port", "-s", min=1, max=65535, help="SOCKS5 port."),
    http_port: int = typer.Option(DEFAULT_HTTP_PORT, "--http-port", "-h", min=1, max=65535, help="HTTP port."),
    proxy_type: str = typer.Option(DEFAULT_BACKEND, "--type", "-t", help="Proxy type: xray or sing-box."),
    install_dir: Path = typer.Option(INSTALL_DIR, "--install-dir", hidden=True),
    log_file: Path | None = typer.Option(None, "--log-file", help="Where to write the setup log."),
) -> None:
    """Install or remove the local proxy."""
    backend = get_backend(proxy_type)
    if backend is None:
        choices = " or ".join(f"'{name}'" for name in BACKENDS)
        console.print(f"[red]Invalid proxy type: {escape(proxy_type)}. Must be {choices}.[/red]")
        raise typer.Exit(1)

    target = InstallTarget(
        backend=backend,
        socks_port=socks_port,
        http_port=http_port,
        install_dir=install_dir,
    )
    log_path = setup_log_path(log_file)
    with log_path.open("w") as log_fp:
        if uninstall:
            run_uninstall(target.install_dir, log_fp)
            return
        try:
            run_install(target, log_fp)
        except ProxySetupError as exc:
            log_line(log_fp, f"FAILED: {exc}")
            console.print(f"[red]{escape(str(exc))}[/red]")
            raise typer.Exit(1)
    print(f"[dim]Setup log: {log_path}[/dim]")


if __name__ == "__main__":
    app()
