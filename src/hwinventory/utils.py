"""
hwinventory Utility Functions

This module provides helper functions for:
    - Configuration management
    - Runtime settings (local host identity, temp directory, timeouts)
    - Logging utilities
"""

import copy
import logging
import socket
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from platformdirs import user_config_dir, user_log_dir

# Configure module logger
logger = logging.getLogger("hwinventory")

APP_NAME = "hwinventory"

# Aliases that always refer to the machine running the collector
LOCAL_ALIASES = ("localhost", "127.0.0.1")


# =============================================================================
# Configuration Management
# =============================================================================

def get_default_config_path() -> Path:
    """Return the per-user configuration file location."""
    return Path(user_config_dir(APP_NAME)) / "config.yaml"


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Values in the file are merged over the defaults, so a partial file only
    needs to name the settings it changes.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = Path(config_path)

    if not config_path.exists():
        logger.debug(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config: {e}")
        return get_default_config()

    if not isinstance(user_config, dict):
        return get_default_config()

    return merge_config(get_default_config(), user_config)


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "general": {
            "computer_name": None,
            "temp_directory": None,
        },
        "collection": {
            "max_workers": 8,
            "timeout_seconds": 60,
        },
        "remote": {
            "port": 22,
            "username": None,
            "command": "python3 -m hwinventory.probes {kind}{raw_flag}",
        },
        "export": {
            "default_timestamp_format": "%Y-%m-%d_%H-%M-%S",
            "directory_timestamp_format": "%Y%m%d_%H%M%S",
        },
        "debug": {
            "verbose": False,
            "log_level": "INFO",
            "save_debug_logs": False,
            "debug_log_file": "debug.log",
        },
    }


# =============================================================================
# Runtime Settings
# =============================================================================

@dataclass(frozen=True)
class RuntimeSettings:
    """
    Explicit values the collector and exporter depend on.

    Everything that would otherwise be read from the process environment
    (host name, temp directory) is resolved here once and injected.
    """
    local_host: str
    temp_dir: Path
    max_workers: int = 8
    timeout: Optional[float] = 60.0
    remote_port: int = 22
    remote_username: Optional[str] = None
    remote_command: str = "python3 -m hwinventory.probes {kind}{raw_flag}"
    default_timestamp_format: str = "%Y-%m-%d_%H-%M-%S"
    directory_timestamp_format: str = "%Y%m%d_%H%M%S"

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "RuntimeSettings":
        """Resolve settings from a configuration dictionary."""
        config = config or get_default_config()
        general = config.get("general", {})
        collection = config.get("collection", {})
        remote = config.get("remote", {})
        export = config.get("export", {})

        timeout = collection.get("timeout_seconds", 60)

        return cls(
            local_host=general.get("computer_name") or socket.gethostname(),
            temp_dir=Path(general.get("temp_directory") or tempfile.gettempdir()),
            max_workers=max(1, int(collection.get("max_workers", 8))),
            timeout=float(timeout) if timeout else None,
            remote_port=int(remote.get("port", 22)),
            remote_username=remote.get("username"),
            remote_command=remote.get("command", cls.remote_command),
            default_timestamp_format=export.get(
                "default_timestamp_format", cls.default_timestamp_format
            ),
            directory_timestamp_format=export.get(
                "directory_timestamp_format", cls.directory_timestamp_format
            ),
        )

    def is_local(self, target: str) -> bool:
        """Check whether a target names the host running the collector."""
        name = target.lower()
        if name in LOCAL_ALIASES:
            return True
        local = self.local_host.lower()
        # Accept the short name when the configured identity is fully qualified
        return name == local or name == local.split(".")[0]


# =============================================================================
# Logging Utilities
# =============================================================================

def setup_logging(config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Set up logging for hwinventory.

    Args:
        config: Configuration dictionary

    Returns:
        Configured logger
    """
    config = config or get_default_config()
    debug_config = config.get("debug", {})

    log_level = getattr(logging, str(debug_config.get("log_level", "INFO")).upper(), logging.INFO)
    verbose = debug_config.get("verbose", False)

    # Configure package logger
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(logging.DEBUG if verbose else log_level)

    # Repeated calls replace the handlers installed last time
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Console handler; warnings always reach the operator
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else max(log_level, logging.WARNING))
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler (if enabled)
    if debug_config.get("save_debug_logs", False):
        log_file = Path(user_log_dir(APP_NAME)) / debug_config.get("debug_log_file", "debug.log")
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Quieten paramiko's transport chatter
    logging.getLogger("paramiko").addHandler(logging.NullHandler())

    return logger
