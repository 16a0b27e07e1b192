"""Config file watcher for AICoder Launcher.

Edits of the config file by other processes (a second launcher, a text
editor, the tray of another session) are pushed into the sync coordinator.
Our own saves come back as events too; they reload a document equal to the
current one and are ignored by ``accept_external``.
"""

from pathlib import Path

from PySide6.QtCore import QFileSystemWatcher, QObject, Slot

from .errors import ConfigLoadError
from .log import get_logger

logger = get_logger(__name__)


class ConfigWatcher(QObject):
    """Watches the config file and its directory."""

    def __init__(self, coordinator, store, parent=None):
        super().__init__(parent)
        self._coordinator = coordinator
        self._store = store
        self._watcher = QFileSystemWatcher(self)
        self._watcher.fileChanged.connect(self._on_file_changed)
        self._watcher.directoryChanged.connect(self._on_directory_changed)

    @property
    def path(self) -> Path:
        return Path(self._store.path)

    def start(self) -> bool:
        """Starts watching; returns False if no path could be watched."""
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Failed to create config directory %s: %s", directory, e)
            return False
        paths = [str(directory)]
        if self.path.exists():
            paths.append(str(self.path))
        failed = self._watcher.addPaths(paths)
        if failed:
            logger.warning("Failed to watch %s", ", ".join(failed))
        logger.info("Watching config file: %s", self.path)
        return len(failed) < len(paths)

    def stop(self) -> None:
        watched = self._watcher.files() + self._watcher.directories()
        if watched:
            self._watcher.removePaths(watched)

    def reload(self) -> bool:
        """Reads the file and hands it to the coordinator.

        Unreadable content (for example a file caught mid-write by an editor)
        is skipped; the next change event brings the complete file.
        """
        if not self.path.exists():
            return False
        try:
            config = self._store.read()
        except ConfigLoadError as e:
            logger.warning("Ignoring config change: %s", e)
            return False
        return self._coordinator.accept_external(config)

    def _ensure_file_watched(self) -> None:
        # Atomic replaces swap the inode, which drops the file from the watch list
        path = str(self.path)
        if self.path.exists() and path not in self._watcher.files():
            self._watcher.addPath(path)

    @Slot(str)
    def _on_file_changed(self, path: str) -> None:
        logger.debug("Config file modified: %s", path)
        self._ensure_file_watched()
        self.reload()

    @Slot(str)
    def _on_directory_changed(self, path: str) -> None:
        if str(self.path) in self._watcher.files():
            return
        self._ensure_file_watched()
        self.reload()
