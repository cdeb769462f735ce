"""Tests for gemfetch.registry.factory module."""

from pathlib import Path

import pytest

from gemfetch.config.schemas import FetcherConfig
from gemfetch.core.spec_cache import SpecCache
from gemfetch.registry.archive import ArchiveFetcher
from gemfetch.registry.factory import (
    UnsupportedProtocolError,
    create_archive_fetcher,
    create_fetcher,
    create_transport,
    normalize_source,
)
from gemfetch.registry.fetcher import Fetcher


class TestNormalizeSource:
    """Tests for normalize_source function."""

    def test_adds_trailing_slash(self):
        assert normalize_source("https://rubygems.org") == "https://rubygems.org/"

    def test_keeps_single_trailing_slash(self):
        assert normalize_source("https://rubygems.org//") == "https://rubygems.org/"

    def test_absolute_path_becomes_file_uri(self, temp_dir: Path):
        """Plain paths are converted to file:// URIs."""
        assert normalize_source(str(temp_dir)) == temp_dir.resolve().as_uri() + "/"

    def test_relative_file_path(self):
        """file: relative paths resolve against the working directory."""
        result = normalize_source("file:./registry")
        assert result == (Path.cwd() / "registry").resolve().as_uri() + "/"

    def test_file_uri_unchanged(self):
        assert normalize_source("file:///srv/gems") == "file:///srv/gems/"


class TestCreateFetcher:
    """Tests for create_fetcher function."""

    def test_creates_fetcher_for_https_url(self):
        fetcher = create_fetcher("https://rubygems.org")
        assert isinstance(fetcher, Fetcher)
        assert fetcher.remote_uri == "https://rubygems.org/"

    def test_creates_fetcher_for_http_url(self):
        fetcher = create_fetcher("http://gems.internal/")
        assert fetcher.remote_uri == "http://gems.internal/"

    def test_creates_fetcher_for_local_path(self, temp_dir: Path):
        fetcher = create_fetcher(str(temp_dir))
        assert fetcher.remote_uri.startswith("file://")

    def test_raises_for_unsupported_protocol(self):
        """Raises UnsupportedProtocolError for s3:// URLs."""
        with pytest.raises(UnsupportedProtocolError) as exc_info:
            create_fetcher("s3://bucket/gems")
        assert exc_info.value.protocol == "s3"

    def test_applies_config(self):
        config = FetcherConfig(
            disable_endpoint=True, read_timeout=3, redirect_limit=2, self_name="gemfetch"
        )

        fetcher = create_fetcher("https://rubygems.org/", config)

        assert fetcher.disable_endpoint is True
        assert fetcher.transport.read_timeout == 3
        assert fetcher.transport.redirect_limit == 2

    def test_shares_given_transport_and_cache(self):
        transport = create_transport()
        spec_cache = SpecCache()

        fetcher = create_fetcher(
            "https://rubygems.org/", transport=transport, spec_cache=spec_cache
        )

        assert fetcher.transport is transport
        assert fetcher.spec_cache is spec_cache


class TestCreateArchiveFetcher:
    """Tests for create_archive_fetcher function."""

    def test_uses_configured_gem_dir(self, temp_dir: Path):
        config = FetcherConfig(gem_dir=temp_dir / "gems")

        fetcher = create_archive_fetcher(config)

        assert isinstance(fetcher, ArchiveFetcher)
        assert fetcher.gem_dir == temp_dir / "gems"

    def test_default_gem_dir(self):
        fetcher = create_archive_fetcher()
        assert fetcher.gem_dir == Path.home() / ".gemfetch"
