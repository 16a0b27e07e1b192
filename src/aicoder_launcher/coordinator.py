"""Sync coordinator: the single owner of the configuration document.

Local intents and documents pushed by external actors (tray menu, edits of
the config file) pass through one critical section, so a save never
interleaves with an external update. There is no merging: whichever change
enters the critical section last wins. A local commit can therefore replace
an external update that arrived while it was saving, and vice versa.

The view state (active tool, selected model tab) is derived from the
document after every change instead of being tracked separately.
"""

import threading
from dataclasses import dataclass, replace
from enum import Enum

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from .errors import ConfigLoadError, PersistenceError, ValidationError
from .i18n import get_language, set_language, tr
from .log import get_logger
from .mutations import ActivateModel, AddCustomModel, Intent, SwitchActiveTool, model_tab_index
from .schema import AppConfig
from .tools import is_tool

logger = get_logger(__name__)

STATUS_TIMEOUT_MS = 1500
ERROR_STATUS_TIMEOUT_MS = 2000


class SavePolicy(Enum):
    """What happens to the in-memory document when a save fails."""

    OPTIMISTIC = "optimistic"  # Keep the attempted document until the next save
    ROLLBACK = "rollback"  # Return to the last durably saved document


class CommitState(Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"  # Save failed, attempted document kept
    ROLLED_BACK = "rolled_back"  # Save failed, last saved document restored


@dataclass(frozen=True)
class ViewState:
    """What the UI shows for the current document."""

    active_tool: str
    selected_model: int = 0
    show_model_settings: bool = False


def derive_view(config: AppConfig, show_model_settings: bool = False) -> ViewState:
    """View for a freshly selected or externally changed document."""
    tool = config.active_tool
    selected = model_tab_index(config, tool) if is_tool(tool) else 0
    return ViewState(active_tool=tool, selected_model=selected, show_model_settings=show_model_settings)


class SyncCoordinator(QObject):
    """Owns the document; exposes ``apply`` and ``accept_external``."""

    config_changed = Signal(object)  # AppConfig
    view_changed = Signal(object)  # ViewState
    status_changed = Signal(str)

    # Restarts the status timer in the coordinator's thread
    _status_timer_requested = Signal(int)

    def __init__(self, store, config: AppConfig | None = None,
                 policy: SavePolicy = SavePolicy.OPTIMISTIC, parent=None):
        super().__init__(parent)
        self._store = store
        self._lock = threading.RLock()
        self.policy = policy

        self._config = config if config is not None else store.load()
        self._committed = self._config
        self._state = CommitState.COMMITTED
        self._view = derive_view(self._config)
        self._status = ""

        self._status_timer = QTimer(self)
        self._status_timer.setSingleShot(True)
        self._status_timer.timeout.connect(self.clear_status)
        self._status_timer_requested.connect(self._restart_status_timer)

        if getattr(store, "last_load_error", None):
            self._show_status(tr("config_reset"), error=True)

    # --- read access ---

    @property
    def config(self) -> AppConfig:
        with self._lock:
            return self._config

    @property
    def committed(self) -> AppConfig:
        """Last document known to be on disk."""
        with self._lock:
            return self._committed

    @property
    def state(self) -> CommitState:
        with self._lock:
            return self._state

    @property
    def view(self) -> ViewState:
        with self._lock:
            return self._view

    @property
    def status(self) -> str:
        return self._status

    # --- local commits ---

    def apply(self, intent: Intent) -> bool:
        """Applies a user intent, persists the result and publishes it.

        Returns False when the intent was rejected or the save failed.
        """
        with self._lock:
            base = self._config
            try:
                candidate = intent.apply(base)
            except ValidationError as e:
                logger.info("Rejected %s: %s", type(intent).__name__, e.key)
                if e.model_index is not None:
                    self._set_view(
                        replace(self._view, selected_model=e.model_index, show_model_settings=True)
                    )
                self._show_status(tr(e.key, **e.params), error=True)
                return False

            if candidate == base:
                self._set_view(self._view_after(intent, base))
                return True

            self._config = candidate
            self._state = CommitState.PENDING
            try:
                self._store.save(candidate)
            except PersistenceError as e:
                logger.error("Saving configuration failed: %s", e)
                if self.policy is SavePolicy.ROLLBACK:
                    self._config = self._committed
                    self._state = CommitState.ROLLED_BACK
                else:
                    self._state = CommitState.FAILED
                self._publish(self._view_after(intent, self._config))
                self._show_status(tr("save_failed", error=e.cause), error=True)
                return False

            self._committed = candidate
            self._state = CommitState.COMMITTED
            self._publish(self._view_after(intent, candidate))
            self._show_status(tr(intent.success_key))
            return True

    def _view_after(self, intent: Intent, config: AppConfig) -> ViewState:
        if isinstance(intent, SwitchActiveTool):
            return derive_view(config)
        view = replace(self._view, active_tool=config.active_tool)
        tool = config.active_tool
        if not is_tool(tool):
            return replace(view, selected_model=0)
        if isinstance(intent, ActivateModel) and intent.tool == tool:
            return replace(view, selected_model=model_tab_index(config, tool))
        if isinstance(intent, AddCustomModel) and intent.tool == tool:
            return replace(view, selected_model=len(config.tool(tool).models) - 1)
        last = len(config.tool(tool).models) - 1
        return replace(view, selected_model=min(max(view.selected_model, 0), last))

    # --- external updates ---

    def accept_external(self, config: AppConfig) -> bool:
        """Takes over a document produced outside this process's UI.

        The document is trusted as is and not saved again. Returns False when
        it equals the current document (for example our own save echoed back
        by the file watcher).
        """
        with self._lock:
            if config == self._config:
                return False
            logger.info("Accepting external configuration change")
            self._config = config
            self._committed = config
            self._state = CommitState.COMMITTED
            self._publish(derive_view(config, self._view.show_model_settings))
            return True

    def commit_external(self, change) -> AppConfig:
        """Runs an external actor's read-modify-save as one critical section.

        ``change`` receives the latest document on disk (the in-memory one if
        the file is unreadable) and returns the new document, which is saved
        and then accepted. ValidationError and PersistenceError propagate; the
        current document is left untouched in both cases.
        """
        with self._lock:
            try:
                latest = self._store.read()
            except ConfigLoadError as e:
                logger.warning("Using in-memory configuration: %s", e)
                latest = self._config
            updated = change(latest)
            if updated != latest:
                self._store.save(updated)
            self.accept_external(updated)
            return updated

    # --- view ---

    def select_model_tab(self, index: int) -> None:
        """Shows a model's settings without activating it."""
        with self._lock:
            tool = self._config.active_tool
            if not is_tool(tool):
                return
            last = len(self._config.tool(tool).models) - 1
            self._set_view(replace(self._view, selected_model=min(max(index, 0), last)))

    def set_model_settings_visible(self, visible: bool) -> None:
        with self._lock:
            self._set_view(replace(self._view, show_model_settings=visible))

    def _publish(self, view: ViewState) -> None:
        # Status and tray texts follow the document language
        if self._config.language and self._config.language != get_language():
            set_language(self._config.language)
        self.config_changed.emit(self._config)
        self._set_view(view)

    def _set_view(self, view: ViewState) -> None:
        if view != self._view:
            self._view = view
            self.view_changed.emit(view)

    # --- status ---

    def show_status(self, message: str, error: bool = False) -> None:
        """Shows a transient status message."""
        self._show_status(message, error)

    def _show_status(self, message: str, error: bool = False) -> None:
        self._status = message
        self.status_changed.emit(message)
        self._status_timer_requested.emit(ERROR_STATUS_TIMEOUT_MS if error else STATUS_TIMEOUT_MS)

    @Slot(int)
    def _restart_status_timer(self, msec: int) -> None:
        self._status_timer.start(msec)

    @Slot()
    def clear_status(self) -> None:
        if self._status:
            self._status = ""
            self.status_changed.emit("")

    # --- dispatch ---

    def launch(self, launcher, tool: str | None = None) -> bool:
        """Launches a tool (default: the active one) on the current project."""
        config = self.config
        tool = tool or config.active_tool
        if not is_tool(tool):
            self._show_status(tr("select_tool"), error=True)
            return False
        ok, message = launcher.launch_for(config, tool)
        self._show_status(message, error=not ok)
        return ok
