"""Pydantic schemas for gemfetch configuration.

This module defines the data model for gemfetch.yaml, the optional
configuration file read by the CLI.
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_READ_TIMEOUT = 10
DEFAULT_REDIRECT_LIMIT = 5
DEFAULT_SELF_NAME = "bundler"


def default_gem_dir() -> Path:
    """Get the default shared package directory."""
    return Path.home() / ".gemfetch"


# =============================================================================
# Fetcher Configuration
# =============================================================================


class FetcherConfig(BaseModel):
    """Settings for fetching specs and archives.

    - disable_endpoint: never use the dependency API, always the full index
    - read_timeout: seconds to wait for each registry response
    - redirect_limit: redirects followed before a request fails
    - gem_dir: shared directory whose cache/ folder receives archives
    - tmp_dir: staging directory used when gem_dir is not writable
    - self_name: package name excluded from every index
    """

    disable_endpoint: bool = False
    read_timeout: float = Field(default=DEFAULT_READ_TIMEOUT, gt=0)
    redirect_limit: int = Field(default=DEFAULT_REDIRECT_LIMIT, ge=0)
    gem_dir: Path = Field(default_factory=default_gem_dir)
    tmp_dir: Path | None = None
    self_name: str = DEFAULT_SELF_NAME

    @field_validator("gem_dir", "tmp_dir")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        """Expand ~ in directory settings."""
        if v is None:
            return v
        return v.expanduser()

    @field_validator("self_name")
    @classmethod
    def validate_self_name(cls, v: str) -> str:
        """Self name must not be blank."""
        if not v.strip():
            raise ValueError("self_name must not be empty")
        return v
