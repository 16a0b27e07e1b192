"""Error types for AICoder Launcher.

Validation and persistence errors are recovered by the sync coordinator and
turned into transient status messages; none of them is fatal.
"""

from pathlib import Path


class LauncherError(Exception):
    """Base class for launcher errors."""


class ValidationError(LauncherError, ValueError):
    """A mutation was rejected; the document is left unchanged.

    ``key`` is an i18n message key, ``params`` are its format arguments.
    ``model_index`` is set when the UI should navigate to a model's settings.
    """

    def __init__(self, key: str, model_index: int | None = None, **params):
        super().__init__(key)
        self.key = key
        self.model_index = model_index
        self.params = params


class PersistenceError(LauncherError):
    """Writing the configuration file failed."""

    def __init__(self, path: Path, cause: Exception):
        super().__init__(f"Could not write {path}: {cause}")
        self.path = path
        self.cause = cause


class ConfigLoadError(LauncherError):
    """The configuration file exists but cannot be read or parsed."""
