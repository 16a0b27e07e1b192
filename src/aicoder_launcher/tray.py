"""Tray menu for AICoder Launcher.

The tray is the out-of-process style actor: it reads the latest document from
disk, writes its own change and pushes the result to the coordinator as an
external update instead of going through ``SyncCoordinator.apply``. The whole
read-modify-save runs inside the coordinator's critical section
(``commit_external``).
"""

from dataclasses import dataclass

from PySide6.QtCore import QObject, Signal, Slot

from .errors import PersistenceError, ValidationError
from .i18n import set_on_language_change, tr
from .log import get_logger
from .mutations import activate_model
from .sync import export_to_sync, import_from_sync

logger = get_logger(__name__)

TRAY_TOOL = "claude"


@dataclass(frozen=True)
class TrayEntry:
    """One model line of the tray menu."""

    model_name: str
    checked: bool


class TrayMenu(QObject):
    """Model check-list plus show / launch / sync / quit actions."""

    show_requested = Signal()
    quit_requested = Signal()

    def __init__(self, coordinator, launcher=None, parent=None):
        super().__init__(parent)
        self._coordinator = coordinator
        self._launcher = launcher
        self._menu = None
        self._model_actions = {}
        self._text_actions = {}  # i18n key -> QAction

    def entries(self) -> list[TrayEntry]:
        """Model entries of the tray tool, the active one checked."""
        tool_cfg = self._coordinator.config.tool(TRAY_TOOL)
        return [TrayEntry(m.model_name, m.model_name == tool_cfg.current_model) for m in tool_cfg.models]

    def select_model(self, model_name: str) -> bool:
        """Activates a model from the tray.

        Models without an API key are refused and the main window is
        requested instead, so the user can enter one.
        """
        try:
            self._coordinator.commit_external(lambda config: activate_model(config, TRAY_TOOL, model_name))
        except ValidationError as e:
            logger.info("Tray cannot activate %s: %s", model_name, e.key)
            self.show_requested.emit()
            return False
        except PersistenceError as e:
            logger.error("Tray could not save configuration: %s", e)
            self._coordinator.show_status(tr("save_failed", error=e.cause), error=True)
            return False
        return True

    def launch(self) -> bool:
        """Launches the tray tool on the current project."""
        if self._launcher is None:
            return False
        return self._coordinator.launch(self._launcher, TRAY_TOOL)

    def export_projects(self) -> bool:
        """Writes the project list to the configured sync folder."""
        config = self._coordinator.config
        ok, message = export_to_sync(config, config.sync_path)
        self._coordinator.show_status(message, error=not ok)
        return ok

    def import_projects(self) -> bool:
        """Replaces the project list with the one in the sync folder."""
        ok, message = import_from_sync(self._coordinator, self._coordinator.config.sync_path)
        if not ok:
            self._coordinator.show_status(message, error=True)
        return ok

    # --- Qt menu ---

    def build_menu(self):
        """Creates the QMenu for a QSystemTrayIcon (needs a QApplication)."""
        from PySide6.QtWidgets import QMenu

        menu = QMenu()
        self._menu = menu
        self._text_actions = {}
        self._add_text_action("tray_show", self.show_requested.emit)
        self._add_text_action("tray_launch", self.launch)
        self._text_actions["tray_models"] = menu.addSection(tr("tray_models"))

        self._model_actions = {}
        for entry in self.entries():
            action = menu.addAction(entry.model_name)
            action.setCheckable(True)
            action.setChecked(entry.checked)
            action.triggered.connect(lambda _checked=False, name=entry.model_name: self._on_model_clicked(name))
            self._model_actions[entry.model_name] = action

        menu.addSeparator()
        self._add_text_action("tray_export", self.export_projects)
        self._add_text_action("tray_import", self.import_projects)
        menu.addSeparator()
        self._add_text_action("tray_quit", self.quit_requested.emit)

        self._coordinator.config_changed.connect(self.refresh_checks)
        set_on_language_change(self.retranslate)
        return menu

    def _add_text_action(self, key: str, slot) -> None:
        self._text_actions[key] = self._menu.addAction(tr(key), slot)

    def _on_model_clicked(self, model_name: str) -> None:
        if not self.select_model(model_name):
            # Undo the checkbox toggle Qt already applied
            self.refresh_checks()

    @Slot(object)
    def refresh_checks(self, _config=None) -> None:
        """Re-checks the active model after any document change."""
        for entry in self.entries():
            action = self._model_actions.get(entry.model_name)
            if action is not None:
                action.setChecked(entry.checked)

    def retranslate(self) -> None:
        """Re-titles the menu after a language change."""
        for key, action in self._text_actions.items():
            action.setText(tr(key))
