"""Configuration storage for AICoder Launcher.

The store is the only writer of the configuration file. Saves replace the
file atomically; loads never fail and fall back to a default document.
"""

import json
import os
import shutil
import sys
import time
from pathlib import Path

from .errors import ConfigLoadError, PersistenceError
from .log import get_logger
from .schema import AppConfig, default_config

logger = get_logger(__name__)


def _get_config_dir() -> Path:
    """Get platform-specific config directory.

    - Windows: %APPDATA%/aicoder-launcher
    - Linux/macOS: ~/.config/aicoder-launcher
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "aicoder-launcher"
        return Path.home() / "AppData" / "Roaming" / "aicoder-launcher"
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "aicoder-launcher"
    return Path.home() / ".config" / "aicoder-launcher"


CONFIG_DIR = _get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.json"

# Migration: Old config files (full document, then the claude-only format)
LEGACY_CONFIG_FILES = (
    Path.home() / ".aicoder_config.json",
    Path.home() / ".claude_model_config.json",
)


def _read_document(path: Path) -> dict:
    """Reads a JSON object from disk."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigLoadError(f"Error reading configuration file {path}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigLoadError(f"Error parsing configuration {path} (invalid JSON): {e}") from e
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Configuration {path} is not a JSON object")
    return data


def backup_corrupt_file(path: Path) -> Path | None:
    """Copies an unreadable config file aside before it gets overwritten."""
    stamp = time.strftime("%Y%m%d-%H%M%S")
    backup = path.with_name(f"{path.name}.corrupt-{stamp}.bak")
    n = 1
    while backup.exists():
        n += 1
        backup = path.with_name(f"{path.name}.corrupt-{stamp}-{n}.bak")
    try:
        shutil.copy2(path, backup)
    except OSError as e:
        logger.error("Could not back up corrupt configuration %s: %s", path, e)
        return None
    logger.warning("Corrupt configuration backed up to %s", backup)
    return backup


def _from_legacy(data: dict, home: str | None) -> AppConfig:
    if "claude" in data or "active_tool" in data:
        return AppConfig.from_dict(data, home)
    # Claude-only format: {current_model, models, projects, current_project}
    return AppConfig.from_dict(
        {
            "claude": {
                "current_model": data.get("current_model", ""),
                "models": data.get("models", []),
            },
            "projects": data.get("projects", []),
            "current_project": data.get("current_project", ""),
        },
        home,
    )


def _migrate_old_config(legacy_paths, home: str | None) -> AppConfig | None:
    """Migrates the first readable legacy configuration, if present."""
    for old_file in legacy_paths:
        old_file = Path(old_file)
        if not old_file.exists():
            continue
        try:
            data = _read_document(old_file)
        except ConfigLoadError as e:
            # Old config not readable - skip
            logger.warning("Skipping legacy configuration: %s", e)
            continue
        logger.info("Migrating configuration from %s", old_file)
        return _from_legacy(data, home)
    return None


def save_config(config: AppConfig, path: Path | None = None) -> None:
    """Saves the configuration, replacing the file atomically.

    The document is written to a temporary file next to the target, synced to
    disk and renamed over the target, so a crash never leaves a partial file.

    Raises:
        PersistenceError: the file could not be written
    """
    path = Path(path) if path is not None else CONFIG_FILE
    text = json.dumps(config.to_dict(), indent=2, ensure_ascii=False) + "\n"
    temp_file = path.with_name(f".{path.name}.{os.getpid()}.{time.time_ns()}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # API keys live in this file
        fd = os.open(temp_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, path)
    except OSError as e:
        try:
            temp_file.unlink(missing_ok=True)
        except OSError:
            logger.debug("Could not remove temporary file %s", temp_file)
        raise PersistenceError(path, e) from e
    logger.debug("Configuration saved to %s", path)


class ConfigStore:
    """Durable storage of the configuration document."""

    def __init__(self, path: Path | None = None, home: str | None = None, legacy_paths=None):
        self.path = Path(path) if path is not None else CONFIG_FILE
        self.home = home
        self.legacy_paths = tuple(LEGACY_CONFIG_FILES if legacy_paths is None else legacy_paths)
        self.last_load_error: str | None = None

    def load(self) -> AppConfig:
        """Loads the configuration.

        A missing file is migrated from a legacy file or replaced by the
        default document. An unreadable file is backed up and replaced by the
        default document; ``last_load_error`` describes what went wrong.
        """
        self.last_load_error = None

        if not self.path.exists():
            migrated = _migrate_old_config(self.legacy_paths, self.home)
            if migrated is None:
                logger.info("No configuration at %s, using defaults", self.path)
                return default_config(self.home)
            try:
                # Save in new format
                self.save(migrated)
            except PersistenceError as e:
                logger.error("Could not save migrated configuration: %s", e)
            return migrated

        try:
            data = _read_document(self.path)
        except ConfigLoadError as e:
            logger.error("%s", e)
            self.last_load_error = str(e)
            config = default_config(self.home)
            # Only overwrite the broken file once a copy of it exists
            if backup_corrupt_file(self.path) is not None:
                try:
                    self.save(config)
                except PersistenceError as save_error:
                    logger.error("Could not replace corrupt configuration: %s", save_error)
            return config

        return AppConfig.from_dict(data, self.home)

    def read(self) -> AppConfig:
        """Reads the file without any fallback (raises ConfigLoadError)."""
        return AppConfig.from_dict(_read_document(self.path), self.home)

    def save(self, config: AppConfig) -> None:
        """Saves the configuration atomically (raises PersistenceError)."""
        save_config(config, self.path)


def load_config(path: Path | None = None, home: str | None = None) -> AppConfig:
    """Loads the configuration from ``path`` (default location if omitted)."""
    return ConfigStore(path, home).load()
