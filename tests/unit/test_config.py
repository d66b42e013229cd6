# tests/unit/test_config.py: Unit tests for configuration loading and validation.

import os
from pathlib import Path

import pytest

from branchguard.config import Config, load_config
from branchguard.util.errors import ConfigError


@pytest.fixture
def mock_config_dir(tmp_path: Path, monkeypatch) -> Path:
    """Creates a mock XDG config directory structure and sets the environment variable."""
    # platformdirs will add 'branchguard' to this path
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    config_dir = tmp_path / "branchguard"
    config_dir.mkdir()
    return config_dir


def test_load_valid_config(mock_config_dir: Path):
    """Tests that a valid configuration file is loaded and parsed correctly."""
    config_content = """
version: 1
rules_file: "${HOME}/rules.yaml"
logging:
  level: DEBUG
  json: false
permission_cache:
  ttl_sec: 5
  maxsize: 10
"""
    (mock_config_dir / "config.yaml").write_text(config_content)

    config = load_config()

    assert config.version == 1
    assert config.rules_file == Path(os.path.expanduser("~/rules.yaml")).resolve()
    assert config.logging.level == "DEBUG"
    assert config.logging.json_format is False
    assert config.permission_cache.ttl_sec == 5
    assert config.permission_cache.maxsize == 10


def test_missing_default_config_uses_defaults(mock_config_dir: Path):
    """Tests that a missing default config file yields the built-in defaults."""
    config = load_config()
    assert config == Config()


def test_load_config_not_found(tmp_path: Path):
    """Tests that a ConfigError is raised if an explicit config file doesn't exist."""
    with pytest.raises(ConfigError, match="Configuration file not found"):
        load_config(tmp_path / "missing.yaml")


def test_config_validation_error(mock_config_dir: Path):
    """Tests that a ConfigError is raised on an invalid configuration."""
    config_content = "version: 1\npermission_cache:\n  ttl_sec: -1"
    (mock_config_dir / "config.yaml").write_text(config_content)

    with pytest.raises(ConfigError, match="Configuration validation failed"):
        load_config()


def test_config_parse_error(mock_config_dir: Path):
    """Tests that malformed YAML is reported as a ConfigError."""
    (mock_config_dir / "config.yaml").write_text("logging: [unclosed")

    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config()


def test_default_values_are_applied(mock_config_dir: Path):
    """Tests that default values are correctly applied to the config."""
    (mock_config_dir / "config.yaml").write_text("version: 1\n")

    config = load_config()

    assert config.rules_file is None
    assert config.logging.level == "INFO"
    assert config.logging.json_format is True
    assert config.permission_cache.ttl_sec == 60
    assert config.permission_cache.maxsize == 4096


def test_resolve_rules_file(mock_config_dir: Path, tmp_path: Path):
    """Tests the precedence of the rules file locations."""
    config = Config()
    assert config.resolve_rules_file() == tmp_path / "data" / "branchguard" / "rules.yaml"

    config = Config(rules_file=str(tmp_path / "configured.yaml"))
    assert config.resolve_rules_file() == (tmp_path / "configured.yaml").resolve()

    override = tmp_path / "override.yaml"
    assert config.resolve_rules_file(override) == override.resolve()
