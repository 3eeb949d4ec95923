from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from proxy_setup.errors import CommandError

APP_ID = "proxy-setup"


@dataclass
class CmdResult:
    cmd: str
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def is_root() -> bool:
    return os.geteuid() == 0


def maybe_sudo(cmd: list[str], use_sudo: bool) -> list[str]:
    if use_sudo and not is_root():
        return ["sudo"] + cmd
    return cmd


def run_cmd(cmd: str | list[str], sudo: bool = False, capture: bool = True) -> CmdResult:
    if isinstance(cmd, str):
        args = shlex.split(cmd)
    else:
        args = cmd

    if sudo and not is_root():
        args = ["sudo"] + args
        capture = False

    try:
        if capture:
            proc = subprocess.run(args, text=True, capture_output=True)
            return CmdResult(" ".join(args), proc.returncode, proc.stdout, proc.stderr)
        proc = subprocess.run(args)
    except FileNotFoundError:
        return CmdResult(" ".join(args), 127, "", f"command not found: {args[0]}")
    return CmdResult(" ".join(args), proc.returncode, "", "")


def log_line(log_fp: TextIO | None, text: str) -> None:
    if not log_fp:
        return
    log_fp.write(text + "\n")
    log_fp.flush()


def log_block(log_fp: TextIO | None, text: str) -> None:
    if not log_fp:
        return
    log_fp.write(text)
    if not text.endswith("\n"):
        log_fp.write("\n")
    log_fp.flush()


def run_stream(cmd: list[str], log_fp: TextIO | None, sudo: bool = False) -> int:
    cmd = maybe_sudo(cmd, sudo)
    log_line(log_fp, f"$ {' '.join(shlex.quote(part) for part in cmd)}")
    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=False,
            bufsize=0,
        )
    except FileNotFoundError:
        msg = f"(command not found: {cmd[0]})"
        print(msg)
        log_line(log_fp, msg)
        return 127

    if not proc.stdout:
        return proc.wait()

    last_text = ""
    while True:
        chunk = proc.stdout.read(4096)
        if not chunk:
            break
        text = chunk.decode(errors="replace")
        last_text = text
        sys.stdout.write(text)
        sys.stdout.flush()
        if log_fp:
            log_fp.write(text)
            log_fp.flush()
    if log_fp and last_text and not last_text.endswith("\n"):
        log_fp.write("\n")
        log_fp.flush()
    return proc.wait()


def cmd_exists(name: str) -> bool:
    return shutil.which(name) is not None


def _can_write(path: Path) -> bool:
    if is_root():
        return True
    probe = path
    while not probe.exists():
        if probe.parent == probe:
            return False
        probe = probe.parent
    return os.access(probe, os.W_OK)


def _sudo_step(cmd: list[str], message: str) -> None:
    res = run_cmd(cmd, sudo=True, capture=False)
    if not res.ok:
        raise CommandError(message, res)


def write_file(path: Path, content: str, mode: int = 0o644) -> None:
    if _can_write(path):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        os.chmod(path, mode)
        return

    _sudo_step(["mkdir", "-p", str(path.parent)], f"Could not create {path.parent}")
    proc = subprocess.run(
        ["sudo", "tee", str(path)],
        input=content,
        text=True,
        stdout=subprocess.DEVNULL,
    )
    if proc.returncode != 0:
        res = CmdResult(f"sudo tee {path}", proc.returncode, "", "")
        raise CommandError(f"Could not write {path}", res)
    _sudo_step(["chmod", f"{mode:o}", str(path)], f"Could not set the mode of {path}")


def install_file(src: Path, dest: Path, mode: int = 0o755) -> None:
    if _can_write(dest):
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(src), dest)
        os.chmod(dest, mode)
        return

    _sudo_step(["mkdir", "-p", str(dest.parent)], f"Could not create {dest.parent}")
    _sudo_step(["install", "-m", f"{mode:o}", str(src), str(dest)], f"Could not install {dest}")


def remove_path(path: Path) -> bool:
    """Delete a file or directory tree if it exists. Returns True if something was removed."""
    if not path.exists() and not path.is_symlink():
        return False
    if _can_write(path.parent):
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
        return True
    res = run_cmd(["rm", "-rf", str(path)], sudo=True, capture=False)
    return res.ok


def setup_log_path(output_path: Path | None) -> Path:
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        return output_path
    base_dir = Path.home() / ".local" / "share" / APP_ID
    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir / "LAST-SETUP.md"
