"""Package archive download for fetched specs."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

from gemfetch.core.spec import PackageSpec
from gemfetch.core.spec_cache import SpecCache, get_default_spec_cache
from gemfetch.registry.common import (
    archive_file_name,
    archive_uri,
    file_uri_path,
    is_file_uri,
    mask_credentials,
)
from gemfetch.registry.transport import HttpTransport, TransportError, get_default_transport
from gemfetch.utils.filesystem import ensure_directory, move_file, requires_sudo

logger = logging.getLogger(__name__)

# (spec, origin registry URI, download directory) -> path of the written archive
Downloader = Callable[[PackageSpec, str, Path], Path]


class GemDownloader:
    """Downloads ``{origin}gems/{full_name}.gem`` into ``<dir>/cache/``."""

    def __init__(self, transport: HttpTransport | None = None):
        self._transport = transport or get_default_transport()

    def __call__(self, spec: PackageSpec, origin: str, download_path: Path) -> Path:
        uri = archive_uri(origin, spec.full_name)
        dest = download_path / "cache" / archive_file_name(spec.full_name)
        logger.info("Downloading %s from %s", spec.full_name, mask_credentials(origin))

        if is_file_uri(uri):
            try:
                shutil.copy2(file_uri_path(uri), dest)
            except OSError as e:
                raise TransportError(f"Could not read {file_uri_path(uri)}: {e}", uri=uri) from e
        else:
            dest.write_bytes(self._transport.request(uri))

        logger.debug("Wrote %d bytes to %s", dest.stat().st_size, dest)
        return dest


class ArchiveFetcher:
    """Downloads archives for specs previously returned by ``Fetcher.specs()``.

    The spec cache tells which registry each spec came from. Archives land in
    ``<gem_dir>/cache/``. When that directory is not writable the download is
    staged in a temporary directory, which is removed once the file has been
    moved into place with sudo.
    """

    def __init__(
        self,
        gem_dir: Path,
        spec_cache: SpecCache | None = None,
        downloader: Downloader | None = None,
        tmp_dir: Path | None = None,
    ):
        """Initialize the archive fetcher.

        Args:
            gem_dir: Shared package directory holding the ``cache/`` folder
            spec_cache: Cache filled by ``Fetcher.specs()`` (default: process-wide one)
            downloader: Byte transfer for one archive (default: GemDownloader)
            tmp_dir: Parent of the per-download staging directories used when gem_dir
                needs sudo (default: the system temp dir)
        """
        self._gem_dir = gem_dir
        self._spec_cache = spec_cache if spec_cache is not None else get_default_spec_cache()
        self._downloader = downloader or GemDownloader()
        self._tmp_dir = tmp_dir

    @property
    def gem_dir(self) -> Path:
        return self._gem_dir

    def _staging_dir(self) -> Path:
        """Create a fresh staging directory, under tmp_dir when one is set."""
        if self._tmp_dir is not None:
            ensure_directory(self._tmp_dir)
        return Path(tempfile.mkdtemp(prefix="gemfetch-", dir=self._tmp_dir))

    def archive_path(self, full_name: str) -> Path:
        """Get where the archive for a full name is stored."""
        return self._gem_dir / "cache" / archive_file_name(full_name)

    def download(self, spec: PackageSpec) -> Path | None:
        """Download the archive for a spec.

        Args:
            spec: A spec returned by ``Fetcher.specs()``

        Returns:
            Path of the archive in the shared cache, or None if the spec
            never went through ``Fetcher.specs()``
        """
        entry = self._spec_cache.get(spec.full_name)
        if entry is None:
            logger.debug("No cached origin for %s, nothing to download", spec.full_name)
            return None

        cached_spec, origin = entry
        use_sudo = requires_sudo(self._gem_dir)
        download_path = self._staging_dir() if use_sudo else self._gem_dir
        gem_path = self.archive_path(spec.full_name)

        try:
            ensure_directory(download_path / "cache")
            downloaded = self._downloader(cached_spec, origin, download_path)

            if use_sudo:
                logger.info("Moving %s into %s with sudo", downloaded.name, gem_path.parent)
                move_file(downloaded, gem_path, use_sudo=True)
            elif downloaded != gem_path:
                move_file(downloaded, gem_path)
        finally:
            if use_sudo and download_path.exists():
                logger.debug("Removing staging directory %s", download_path)
                shutil.rmtree(download_path)

        return gem_path
