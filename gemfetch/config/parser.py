"""Configuration file parsing utilities."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from gemfetch.config.schemas import FetcherConfig

CONFIG_FILE_NAME = "gemfetch.yaml"


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ConfigError(f"YAML file must contain a mapping: {path}", path)
            return result
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def load_config(path: Path | None = None) -> FetcherConfig:
    """Load fetcher configuration.

    Args:
        path: Config file to read. When None, gemfetch.yaml in the current
            directory is used if present, otherwise defaults apply.

    Returns:
        Parsed FetcherConfig

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid
    """
    if path is None:
        path = Path.cwd() / CONFIG_FILE_NAME
        if not path.exists():
            return FetcherConfig()

    data = load_yaml(path)

    try:
        return FetcherConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid gemfetch config: {e}", path) from e
