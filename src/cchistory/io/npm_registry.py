"""npm registry access: version listing, release dates, tarball download.

All lookups go through one packument (the registry's full package
document), fetched once per RegistryClient and cached.

Import as: import cchistory.io.npm_registry
"""

from __future__ import annotations

import logging
import re
import tarfile
from pathlib import Path
from urllib.parse import quote

import requests

from cchistory.io.settings import Settings

logger = logging.getLogger(__name__)

_RELEASE_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


class RegistryError(RuntimeError):
    """Registry lookup or package download failed."""


def parse_release(version: str) -> tuple[int, int, int] | None:
    """Return (major, minor, patch) for a plain release version, else None."""
    m = _RELEASE_RE.match(version.strip())
    if m is None:
        return None
    return int(m.group(1)), int(m.group(2)), int(m.group(3))


def tarball_filename(package_name: str, version: str) -> str:
    """Mirror `npm pack` naming: @scope/name -> scope-name-<version>.tgz."""
    return f"{package_name.lstrip('@').replace('/', '-')}-{version}.tgz"


class RegistryClient:
    """Thin requests-based client for one npm package."""

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._packument: dict | None = None

    @property
    def package_url(self) -> str:
        return f"{self._settings.registry_url}/{quote(self._settings.package_name, safe='@')}"

    def _get(self, url: str, **kwargs) -> requests.Response:
        try:
            response = self._session.get(url, timeout=self._settings.http_timeout_seconds, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RegistryError(f"GET {url} failed: {e}") from e
        return response

    def packument(self) -> dict:
        if self._packument is None:
            logger.debug("fetching packument %s", self.package_url)
            try:
                data = self._get(self.package_url).json()
            except ValueError as e:
                raise RegistryError(f"Registry returned invalid JSON for {self.package_url}") from e
            if not isinstance(data, dict):
                raise RegistryError(f"Unexpected registry document for {self.package_url}")
            self._packument = data
        return self._packument

    def get_latest_version(self) -> str:
        latest = self.packument().get("dist-tags", {}).get("latest")
        if not latest:
            raise RegistryError(f"No 'latest' dist-tag for {self._settings.package_name}")
        return str(latest)

    def get_all_versions_between(self, start: str, end: str) -> list[str]:
        """Released versions in [start, end], ascending. Prereleases are skipped."""
        lo, hi = parse_release(start), parse_release(end)
        if lo is None:
            raise RegistryError(f"Not a release version: {start!r}")
        if hi is None:
            raise RegistryError(f"Not a release version: {end!r}")

        releases = []
        for version in self.packument().get("versions", {}):
            key = parse_release(version)
            if key is not None and lo <= key <= hi:
                releases.append((key, version))
        return [version for _, version in sorted(releases)]

    def get_version_release_date(self, version: str) -> str:
        """Publish date as YYYY-MM-DD, or "Unknown" if the registry has none."""
        published = self.packument().get("time", {}).get(version)
        if not published:
            logger.warning("no publish time recorded for %s", version)
            return "Unknown"
        return str(published)[:10]

    def download_package(self, version: str, dest_dir: Path) -> Path:
        """Download the version's tarball into dest_dir and return its path."""
        meta = self.packument().get("versions", {}).get(version)
        if not isinstance(meta, dict):
            raise RegistryError(f"Unknown version {version} of {self._settings.package_name}")
        url = meta.get("dist", {}).get("tarball")
        if not url:
            raise RegistryError(f"No tarball URL for version {version}")

        target = Path(dest_dir) / tarball_filename(self._settings.package_name, version)
        logger.info("downloading %s", url)
        response = self._get(url, stream=True)
        with open(target, "wb") as f:
            for chunk in response.iter_content(chunk_size=64 * 1024):
                f.write(chunk)
        return target


def extract_package(tarball: Path, dest_dir: Path) -> Path:
    """Unpack an npm tarball into dest_dir; returns dest_dir/package."""
    try:
        with tarfile.open(tarball, "r:gz") as tar:
            tar.extractall(dest_dir, filter="data")
    except (tarfile.TarError, OSError) as e:
        raise RegistryError(f"Could not extract {tarball}: {e}") from e
    return Path(dest_dir) / "package"
