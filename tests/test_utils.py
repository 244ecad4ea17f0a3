"""
Tests for Utility Functions

Covers:
    - Configuration loading and merging
    - Runtime settings resolution
    - Local host recognition
    - Logging setup
"""

import logging
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hwinventory.records import validate_target
from hwinventory.utils import (
    LOCAL_ALIASES,
    RuntimeSettings,
    get_default_config,
    load_config,
    merge_config,
    setup_logging,
)


class TestConfigurationLoading:
    """Tests for configuration loading."""

    def test_load_default_config(self):
        """Test default configuration sections."""
        config = get_default_config()
        assert set(config) == {"general", "collection", "remote", "export", "debug"}

    def test_load_missing_config(self):
        """Test loading missing config file returns defaults."""
        assert load_config("/nonexistent/path/config.yaml") == get_default_config()

    def test_load_partial_config(self, tmp_path):
        """Test a partial file only overrides what it names."""
        path = tmp_path / "config.yaml"
        path.write_text("collection:\n  max_workers: 2\nremote:\n  username: inventory\n")

        config = load_config(str(path))
        assert config["collection"]["max_workers"] == 2
        assert config["collection"]["timeout_seconds"] == 60
        assert config["remote"]["username"] == "inventory"
        assert config["remote"]["port"] == 22

    def test_load_invalid_yaml(self, tmp_path):
        """Test loading invalid YAML returns defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("collection: [unclosed\n")
        assert load_config(str(path)) == get_default_config()

    def test_load_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        assert load_config(str(path)) == get_default_config()

    def test_merge_does_not_mutate(self):
        base = {"a": {"b": 1, "c": 2}}
        merged = merge_config(base, {"a": {"b": 5}})
        assert merged == {"a": {"b": 5, "c": 2}}
        assert base == {"a": {"b": 1, "c": 2}}


class TestRuntimeSettings:
    """Tests for settings resolution."""

    def test_from_config_defaults(self):
        with patch("hwinventory.utils.socket.gethostname", return_value="ws1"), \
             patch("hwinventory.utils.tempfile.gettempdir", return_value="/var/tmp"):
            settings = RuntimeSettings.from_config()

        assert settings.local_host == "ws1"
        assert settings.temp_dir == Path("/var/tmp")
        assert settings.max_workers == 8
        assert settings.timeout == 60.0

    def test_from_config_overrides(self, tmp_path):
        config = get_default_config()
        config["general"]["computer_name"] = "inventory-host"
        config["general"]["temp_directory"] = str(tmp_path)
        config["collection"]["timeout_seconds"] = 0
        config["export"]["default_timestamp_format"] = "%Y"

        settings = RuntimeSettings.from_config(config)
        assert settings.local_host == "inventory-host"
        assert settings.temp_dir == tmp_path
        assert settings.timeout is None
        assert settings.default_timestamp_format == "%Y"

    @pytest.mark.parametrize("target,expected", [
        ("ws1.corp.example", True),
        ("WS1", True),
        ("localhost", True),
        ("ws2", False),
        ("ws1.other.example", False),
    ])
    def test_is_local(self, target, expected):
        settings = RuntimeSettings(local_host="ws1.corp.example", temp_dir=Path("/tmp"))
        assert settings.is_local(target) is expected

    def test_local_aliases_are_valid_targets(self):
        """Every local alias passes target validation, so none is unreachable."""
        for alias in LOCAL_ALIASES:
            assert validate_target(alias) == alias


class TestLogging:
    """Tests for logging setup."""

    def test_setup_logging(self):
        """Test logging setup returns the package logger."""
        logger = setup_logging(get_default_config())
        assert logger.name == "hwinventory"
        assert logger.level == logging.INFO

    def test_verbose_logging(self):
        config = get_default_config()
        config["debug"]["verbose"] = True
        logger = setup_logging(config)
        assert logger.level == logging.DEBUG

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging(get_default_config())
        logger = setup_logging(get_default_config())
        assert len(logger.handlers) == 1

    def test_debug_log_file(self, tmp_path):
        config = get_default_config()
        config["debug"]["save_debug_logs"] = True
        with patch("hwinventory.utils.user_log_dir", return_value=str(tmp_path)):
            logger = setup_logging(config)
        try:
            assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
            assert (tmp_path / "debug.log").exists()
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
