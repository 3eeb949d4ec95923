"""Latest-release lookup, download and unpacking for the proxy backends."""

from __future__ import annotations

import json
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from rich import print

from proxy_setup.backends import BACKENDS, Backend
from proxy_setup.deps import Downloader
from proxy_setup.errors import CommandError, ReleaseLookupError
from proxy_setup.models import InstallRecord, InstallTarget, PlatformInfo
from proxy_setup.system import install_file, log_line, remove_path, run_cmd, write_file


@dataclass
class Asset:
    name: str
    url: str


@dataclass
class Release:
    tag: str
    assets: list[Asset] = field(default_factory=list)


def parse_release(text: str) -> Release:
    """Parse a GitHub "latest release" payload into a Release."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ReleaseLookupError(f"Release metadata is not valid JSON: {exc}") from exc
    if not isinstance(data, dict) or not isinstance(data.get("assets"), list):
        raise ReleaseLookupError("Release metadata has no asset list.")
    assets = [
        Asset(name=a["name"], url=a["browser_download_url"])
        for a in data["assets"]
        if isinstance(a, dict) and a.get("name") and a.get("browser_download_url")
    ]
    return Release(tag=str(data.get("tag_name", "")), assets=assets)


def select_asset(release: Release, backend: Backend, arch_tag: str) -> Asset:
    """Return the first asset whose file name matches the backend naming for arch_tag."""
    pattern = backend.asset_regex(arch_tag)
    for asset in release.assets:
        if pattern.match(asset.name):
            return asset
    raise ReleaseLookupError(
        f"Could not find the latest {backend.name} release for architecture {arch_tag}."
    )


def fetch_release(backend: Backend, downloader: Downloader) -> Release:
    return parse_release(downloader.fetch_text(backend.release_api))


def extract_cmd(backend: Backend, archive: Path, dest: Path) -> list[str]:
    if backend.archive_format == "zip":
        return ["unzip", "-o", "-q", str(archive), "-d", str(dest)]
    return ["tar", "-xzf", str(archive), "-C", str(dest)]


def locate_binary(root: Path, binary_name: str) -> Path:
    """Find the single executable named binary_name anywhere below root."""
    matches = [p for p in root.rglob(binary_name) if p.is_file()]
    if len(matches) != 1:
        raise ReleaseLookupError(
            f"Expected one '{binary_name}' in the release archive, found {len(matches)}."
        )
    return matches[0]


def unpack_binary(backend: Backend, archive: Path, workdir: Path) -> Path:
    staging = workdir / "unpacked"
    staging.mkdir(parents=True, exist_ok=True)
    res = run_cmd(extract_cmd(backend, archive, staging))
    if not res.ok:
        raise CommandError(f"Could not unpack {archive.name}", res)
    return locate_binary(staging, backend.binary_name)


def install_binary(
    target: InstallTarget,
    platform: PlatformInfo,
    downloader: Downloader,
    log_fp: TextIO | None = None,
) -> InstallRecord:
    backend = target.backend
    release = fetch_release(backend, downloader)
    asset = select_asset(release, backend, platform.arch_tag(backend))
    print(f"Latest {backend.title}: [bold]{release.tag or 'unknown'}[/bold] ({asset.name})")
    log_line(log_fp, f"- release {release.tag} asset {asset.url}")

    # Removed whether or not extraction succeeds.
    with tempfile.TemporaryDirectory(prefix="proxy-setup-") as tmp:
        workdir = Path(tmp)
        archive = downloader.fetch_file(asset.url, workdir / asset.name)
        binary = unpack_binary(backend, archive, workdir)
        # One backend binary per install dir.
        for other in BACKENDS.values():
            if other.name != backend.name and remove_path(target.install_dir / other.binary_name):
                log_line(log_fp, f"- removed previous {other.name} binary")
        install_file(binary, target.binary_path, mode=0o755)

    record = InstallRecord(backend=backend.name, version=release.tag, asset=asset.name)
    write_file(target.record_path, record.to_json())
    log_line(log_fp, f"- installed {target.binary_path}")
    return record
