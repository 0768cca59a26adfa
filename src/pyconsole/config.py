"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomli_w

CONFIG_DIR = Path.home() / ".pyconsole"
CONFIG_FILE = CONFIG_DIR / "config.toml"
LOG_FILE = CONFIG_DIR / "console.log"


@dataclass
class BackendConfig:
    preload_modules: list[str] = field(default_factory=list)


@dataclass
class ConsoleConfig:
    html_dir: str = "~/.pyconsole/html"


@dataclass
class StorageConfig:
    db_path: str = "~/.pyconsole/history.db"


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = "~/.pyconsole/console.log"


@dataclass
class AppConfig:
    backend: BackendConfig = field(default_factory=BackendConfig)
    console: ConsoleConfig = field(default_factory=ConsoleConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def ensure_config_dir() -> None:
    """Create config directory with private permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    os.chmod(CONFIG_DIR, 0o700)


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config() -> AppConfig:
    """Load configuration from TOML file with env var overrides."""
    config = AppConfig()

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            data = tomllib.load(f)

        backend = data.get("backend", {})
        config.backend.preload_modules = backend.get("preload_modules", config.backend.preload_modules)

        console = data.get("console", {})
        config.console.html_dir = console.get("html_dir", config.console.html_dir)

        storage = data.get("storage", {})
        config.storage.db_path = storage.get("db_path", config.storage.db_path)

        logging_cfg = data.get("logging", {})
        config.logging.level = logging_cfg.get("level", config.logging.level)
        config.logging.file = logging_cfg.get("file", config.logging.file)

    # Environment variable overrides
    if env_preload := os.environ.get("PYCONSOLE_PRELOAD"):
        config.backend.preload_modules = _split_list(env_preload)
    if env_html := os.environ.get("PYCONSOLE_HTML_DIR"):
        config.console.html_dir = env_html
    if env_db := os.environ.get("PYCONSOLE_DB_PATH"):
        config.storage.db_path = env_db
    if env_log_level := os.environ.get("PYCONSOLE_LOG_LEVEL"):
        config.logging.level = env_log_level

    return config


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "backend": {
            "preload_modules": config.backend.preload_modules,
        },
        "console": {
            "html_dir": config.console.html_dir,
        },
        "storage": {
            "db_path": config.storage.db_path,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(CONFIG_FILE, 0o600)


# Global singleton
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or load the global config singleton."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global config (for testing)."""
    global _config
    _config = None
