"""
Tests for configuration loading and logging setup (src/common/).
"""

import logging
from pathlib import Path

import pytest

from src.common.config import get_section, load_config
from src.common.logging_utils import DEFAULT_FORMAT, build_logging_config, setup_logging

REPO_CONFIG = Path(__file__).resolve().parent.parent / "config.yaml"


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_repo_config_has_expected_sections():
    """Test that the shipped config.yaml parses and has every section."""
    config = load_config(str(REPO_CONFIG))

    for section in ("logging", "centrality", "clustering", "layout", "analysis"):
        assert isinstance(get_section(config, section), dict)
    assert config["centrality"]["eigenvector_method"] == "degree_proxy"
    assert config["layout"]["seed"] is None


def test_missing_config_yields_empty_dict(tmp_path):
    """Test that a missing file falls back to defaults."""
    assert load_config(str(tmp_path / "absent.yaml")) == {}


def test_non_mapping_config_raises(tmp_path):
    """Test that a YAML list at the top level is rejected."""
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(str(path))


def test_get_section():
    """Test section lookup with absent, null and malformed sections."""
    config = {"layout": {"width": 10}, "clustering": None, "analysis": [1, 2]}

    assert get_section(config, "layout") == {"width": 10}
    assert get_section(config, "clustering") == {}
    assert get_section(config, "missing") == {}
    with pytest.raises(ValueError):
        get_section(config, "analysis")


def test_build_logging_config_defaults(monkeypatch):
    """Test the console-only configuration."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    config = build_logging_config()

    assert config["root"]["level"] == "INFO"
    assert config["root"]["handlers"] == ["console"]
    assert config["formatters"]["standard"]["format"] == DEFAULT_FORMAT


def test_build_logging_config_env_override_and_file(monkeypatch, tmp_path):
    """Test that LOG_LEVEL wins over config and a file handler is added."""
    monkeypatch.setenv("LOG_LEVEL", "debug")
    config = build_logging_config({"level": "WARNING", "file": str(tmp_path / "app.log")})

    assert config["root"]["level"] == "DEBUG"
    assert config["root"]["handlers"] == ["console", "file"]
    assert config["handlers"]["file"]["filename"] == str(tmp_path / "app.log")


def test_setup_logging_writes_to_file(monkeypatch, tmp_path, restore_root_logger):
    """Test configuring logging from a config file with a nested log path."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    log_file = tmp_path / "logs" / "nested" / "analysis.log"
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"logging:\n  level: INFO\n  file: {log_file.as_posix()}\n",
        encoding="utf-8",
    )

    setup_logging(str(config_path))
    logging.getLogger("src.graph.analysis").info("analysis started")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_file.exists()
    assert "analysis started" in log_file.read_text(encoding="utf-8")
