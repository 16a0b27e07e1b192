#!/usr/bin/env python3
"""AICoder Launcher - Main entry point.

Wires the config store, sync coordinator, file watcher and tray menu into a
Qt application.
"""

import sys

from PySide6.QtCore import QObject, Signal, Slot

from .config import ConfigStore
from .coordinator import SyncCoordinator
from .i18n import set_language, tr
from .launcher import ToolLauncher, check_environment
from .log import get_logger, setup_logging
from .tray import TrayMenu
from .watcher import ConfigWatcher

logger = get_logger(__name__)

# Local socket shared by all instances of one user session
SOCKET_NAME = "aicoder-launcher-single-instance"
ACTIVATE_MESSAGE = b"activate"


class SingleInstance(QObject):
    """Keeps one launcher per session.

    The first instance listens on a local socket. Later instances send
    ``activate`` to it and report ``is_primary == False``.
    """

    activated = Signal()

    def __init__(self, name: str = SOCKET_NAME, parent=None):
        super().__init__(parent)
        from PySide6.QtNetwork import QLocalServer, QLocalSocket

        self._server = None
        socket = QLocalSocket(self)
        socket.connectToServer(name)
        self.is_primary = not socket.waitForConnected(500)

        if not self.is_primary:
            socket.write(ACTIVATE_MESSAGE)
            socket.waitForBytesWritten(1000)
            socket.disconnectFromServer()
            return

        # A crashed instance leaves its socket file behind
        QLocalServer.removeServer(name)
        self._server = QLocalServer(self)
        self._server.newConnection.connect(self._accept)
        if not self._server.listen(name):
            logger.warning("Single-instance server not started: %s", self._server.errorString())

    @Slot()
    def _accept(self) -> None:
        connection = self._server.nextPendingConnection()
        while connection is not None:
            connection.waitForReadyRead(1000)
            if connection.readAll().data().startswith(ACTIVATE_MESSAGE):
                self.activated.emit()
            connection.disconnectFromServer()
            connection = self._server.nextPendingConnection()

    def close(self) -> None:
        if self._server is not None:
            self._server.close()


def main():
    """Start the Qt application."""
    setup_logging()

    from PySide6.QtGui import QIcon
    from PySide6.QtWidgets import QApplication, QSystemTrayIcon

    app = QApplication(sys.argv)
    app.setApplicationName("AICoder Launcher")
    app.setQuitOnLastWindowClosed(False)

    instance = SingleInstance()
    if not instance.is_primary:
        logger.info("AICoder Launcher is already running")
        return 0

    store = ConfigStore()
    coordinator = SyncCoordinator(store)
    set_language(coordinator.config.language)

    for status in check_environment():
        if not status.installed:
            logger.warning("%s is not installed or not on PATH", status.name)

    watcher = ConfigWatcher(coordinator, store)
    watcher.start()

    tray = TrayMenu(coordinator, ToolLauncher())
    tray.quit_requested.connect(app.quit)

    if QSystemTrayIcon.isSystemTrayAvailable():
        tray_icon = QSystemTrayIcon(QIcon.fromTheme("utilities-terminal"))
        tray_icon.setToolTip(tr("tray_title"))
        tray_icon.setContextMenu(tray.build_menu())
        tray_icon.show()

        def notify(message: str) -> None:
            if message:
                tray_icon.showMessage(tr("tray_title"), message)

        coordinator.status_changed.connect(notify)
        coordinator.config_changed.connect(lambda _config: tray_icon.setToolTip(tr("tray_title")))
        tray.show_requested.connect(lambda: notify(tr("api_key_required")))
        instance.activated.connect(lambda: notify(tr("tray_title")))
    else:
        logger.warning("No system tray available")
        coordinator.status_changed.connect(lambda message: message and logger.info(message))

    exit_code = app.exec()

    watcher.stop()
    instance.close()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
