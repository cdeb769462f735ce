"""Fetcher factory."""

import logging
from pathlib import Path
from urllib.parse import urlparse

from gemfetch.config.schemas import FetcherConfig
from gemfetch.core.spec_cache import SpecCache
from gemfetch.registry.archive import ArchiveFetcher, GemDownloader
from gemfetch.registry.fetcher import Fetcher
from gemfetch.registry.transport import HttpTransport
from gemfetch.utils.ui import UI

logger = logging.getLogger(__name__)

SUPPORTED_PROTOCOLS = ("http", "https", "file")


class UnsupportedProtocolError(Exception):
    """Error when a registry URL uses an unsupported protocol."""

    def __init__(self, protocol: str, url: str):
        self.protocol = protocol
        self.url = url
        super().__init__(f"Unsupported registry protocol: {protocol} (in {url})")


def normalize_source(source: str) -> str:
    """Normalize a source string to a registry root URI.

    Local paths become ``file://`` URIs and a trailing slash is added, since
    registry paths are appended directly to the root.

    Args:
        source: Registry URL or local path

    Returns:
        Normalized URI string
    """
    if source.startswith(("./", "../", "/")):
        source = Path(source).resolve().as_uri()
    elif source.startswith("file:") and not source.startswith("file://"):
        # Relative path (file:../path or file:./path)
        source = Path(source[5:]).resolve().as_uri()
    return source.rstrip("/") + "/"


def create_transport(config: FetcherConfig | None = None) -> HttpTransport:
    """Create a transport using the configured timeout and redirect limit."""
    config = config or FetcherConfig()
    return HttpTransport(read_timeout=config.read_timeout, redirect_limit=config.redirect_limit)


def create_fetcher(
    url: str,
    config: FetcherConfig | None = None,
    transport: HttpTransport | None = None,
    spec_cache: SpecCache | None = None,
    ui: UI | None = None,
) -> Fetcher:
    """Create a fetcher for the given registry URL.

    Args:
        url: Registry URL (https://, http://, file:// or a local path)
        config: Fetcher settings (default: FetcherConfig())
        transport: Transport to share (default: one built from config)
        spec_cache: Spec cache to record origins in (default: process-wide one)
        ui: Progress reporter

    Returns:
        Fetcher for the registry

    Raises:
        UnsupportedProtocolError: If the protocol is not supported
    """
    config = config or FetcherConfig()
    uri = normalize_source(url)
    protocol = urlparse(uri).scheme.lower()
    logger.debug("Creating fetcher for %s (protocol=%s)", uri, protocol)

    if protocol not in SUPPORTED_PROTOCOLS:
        logger.error("Unsupported protocol: %s in URL %s", protocol, url)
        raise UnsupportedProtocolError(protocol, url)

    return Fetcher(
        uri,
        transport=transport or create_transport(config),
        spec_cache=spec_cache,
        ui=ui,
        disable_endpoint=config.disable_endpoint,
        self_name=config.self_name,
    )


def create_archive_fetcher(
    config: FetcherConfig | None = None,
    transport: HttpTransport | None = None,
    spec_cache: SpecCache | None = None,
) -> ArchiveFetcher:
    """Create an archive fetcher writing into the configured gem directory."""
    config = config or FetcherConfig()
    return ArchiveFetcher(
        config.gem_dir,
        spec_cache=spec_cache,
        downloader=GemDownloader(transport or create_transport(config)),
        tmp_dir=config.tmp_dir,
    )
