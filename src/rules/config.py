from __future__ import annotations

from pathlib import Path
from typing import Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILENAME = "unexport.toml"

# Methods that commonly satisfy standard library interfaces. Renaming them
# compiles but silently drops the interface implementation.
DEFAULT_INTERFACE_METHODS: tuple[str, ...] = (
    "Close",
    "Error",
    "Format",
    "GoString",
    "Is",
    "As",
    "Unwrap",
    "Len",
    "Less",
    "Swap",
    "Push",
    "Pop",
    "Read",
    "ReadAt",
    "ReadFrom",
    "Write",
    "WriteTo",
    "WriteString",
    "Seek",
    "ServeHTTP",
    "RoundTrip",
    "String",
    "MarshalJSON",
    "UnmarshalJSON",
    "MarshalText",
    "UnmarshalText",
    "MarshalBinary",
    "UnmarshalBinary",
    "Scan",
    "Value",
)

GOOS_VALUES = frozenset(
    {
        "aix",
        "android",
        "darwin",
        "dragonfly",
        "freebsd",
        "hurd",
        "illumos",
        "ios",
        "js",
        "linux",
        "nacl",
        "netbsd",
        "openbsd",
        "plan9",
        "solaris",
        "wasip1",
        "windows",
        "zos",
    }
)

GOARCH_VALUES = frozenset(
    {
        "386",
        "amd64",
        "arm",
        "arm64",
        "loong64",
        "mips",
        "mips64",
        "mips64le",
        "mipsle",
        "ppc64",
        "ppc64le",
        "riscv64",
        "s390x",
        "wasm",
    }
)


class UnexportConfig(BaseModel):
    """Configuration for an unexport run over one Go workspace."""

    model_config = ConfigDict(extra="forbid")

    module: str | None = Field(
        default=None,
        description="Module path override (default: read from go.mod)",
    )
    goos: str = Field(default="linux", description="Target operating system")
    goarch: str = Field(default="amd64", description="Target architecture")
    tags: list[str] = Field(
        default_factory=list,
        description="Build tags satisfied during the workspace scan",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to exclude",
    )
    nested_gitignore: bool = Field(
        default=False,
        description=(
            "Enable nested .gitignore composition (default: false for root-only)"
        ),
    )
    include_test_imports: bool = Field(
        default=True,
        description=(
            "Count imports of _test.go files (in-package and external) as "
            "imports of their package when building the reverse import graph"
        ),
    )
    interface_methods: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INTERFACE_METHODS),
        description="Method names never unexported because interfaces require them",
    )
    formatter: list[str] = Field(
        default_factory=list,
        description="Command that pretty-prints Go source on stdin (e.g. ['gofmt'])",
    )

    @field_validator("goos")
    @classmethod
    def validate_goos(cls, v: str) -> str:
        if v not in GOOS_VALUES:
            msg = f"Unknown goos '{v}'. Valid values: {', '.join(sorted(GOOS_VALUES))}"
            raise ValueError(msg)
        return v

    @field_validator("goarch")
    @classmethod
    def validate_goarch(cls, v: str) -> str:
        if v not in GOARCH_VALUES:
            msg = (
                f"Unknown goarch '{v}'. "
                f"Valid values: {', '.join(sorted(GOARCH_VALUES))}"
            )
            raise ValueError(msg)
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> Any:
        """Accept a list of tags or a single comma/space separated string."""
        if v is None:
            return []
        if isinstance(v, str):
            return parse_tags(v)
        return v


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def parse_tags(value: str) -> list[str]:
    """Split a ``-tags`` style value on commas and whitespace.

    Examples:
        >>> parse_tags("integration, linux  netgo")
        ['integration', 'linux', 'netgo']
    """
    return [tag for tag in value.replace(",", " ").split() if tag]


def load_config(root: Path) -> UnexportConfig:
    """Load configuration from unexport.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return UnexportConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return UnexportConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
