from __future__ import annotations

from pathlib import Path

import pytest

from rules.config import DEFAULT_INTERFACE_METHODS, ConfigError, load_config


def _write_config(repo_root: Path, toml_content: str) -> None:
    (repo_root / "unexport.toml").write_text(toml_content, encoding="utf-8")


def test_unknown_top_level_key_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "bogus_key = true")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unknown_section_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[rename]
style = "camel"
""".strip(),
    )

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_invalid_toml_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "tags = [")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(tmp_path)


@pytest.mark.parametrize("content", ['goos = "plan10"', 'goarch = "z80"'])
def test_unknown_platform_rejected(tmp_path: Path, content: str) -> None:
    _write_config(tmp_path, content)

    with pytest.raises(ConfigError, match="Unknown"):
        load_config(tmp_path)


def test_valid_config_accepted(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
module = "example.com/override"
goos = "darwin"
goarch = "arm64"
tags = "integration, netgo"
exclude = ["gen/**"]
include_test_imports = false
interface_methods = ["Handle"]
formatter = ["gofmt"]
""".strip(),
    )

    config = load_config(tmp_path)

    assert config.module == "example.com/override"
    assert (config.goos, config.goarch) == ("darwin", "arm64")
    assert config.tags == ["integration", "netgo"]
    assert config.exclude == ["gen/**"]
    assert config.include_test_imports is False
    assert config.interface_methods == ["Handle"]
    assert config.formatter == ["gofmt"]


def test_empty_config_accepted(tmp_path: Path) -> None:
    _write_config(tmp_path, "")

    config = load_config(tmp_path)

    assert config.module is None
    assert (config.goos, config.goarch) == ("linux", "amd64")
    assert config.tags == []
    assert config.include_test_imports is True
    assert config.interface_methods == list(DEFAULT_INTERFACE_METHODS)
    assert config.formatter == []


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.exclude == []
    assert config.nested_gitignore is False
