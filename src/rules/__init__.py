"""Configuration for go-unexport."""

from rules.config import (
    CONFIG_FILENAME,
    ConfigError,
    UnexportConfig,
    load_config,
    parse_tags,
)

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "UnexportConfig",
    "load_config",
    "parse_tags",
]
