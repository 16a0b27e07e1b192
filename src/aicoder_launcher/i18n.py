"""Internationalization (i18n) module for AICoder Launcher.

Covers the transient status messages and the tray menu. English is the
fallback for missing keys and unknown languages.
"""

from typing import Callable

# Supported languages
LANGUAGES = {
    "en": "English",
    "de": "Deutsch",
    "zh-Hans": "简体中文",
}

DEFAULT_LANGUAGE = "en"

# Current language (module-level state)
_current_language = DEFAULT_LANGUAGE

# Translation callback for dynamic updates (tray titles)
_on_language_change: Callable[[], None] | None = None


def set_language(lang: str) -> None:
    """Set the current language; unknown codes are ignored."""
    global _current_language
    if lang in LANGUAGES:
        _current_language = lang
        if _on_language_change:
            _on_language_change()


def get_language() -> str:
    """Get the current language code."""
    return _current_language


def set_on_language_change(callback: Callable[[], None] | None) -> None:
    """Set callback for language changes (for UI updates)."""
    global _on_language_change
    _on_language_change = callback


def tr(key: str, **params) -> str:
    """Translate a key to the current language and fill in ``params``.

    Returns the key itself if no translation is found.
    """
    translations = TRANSLATIONS.get(_current_language, TRANSLATIONS[DEFAULT_LANGUAGE])
    text = translations.get(key, TRANSLATIONS[DEFAULT_LANGUAGE].get(key, key))
    if not params:
        return text
    try:
        return text.format(**params)
    except (KeyError, IndexError):
        return text


TRANSLATIONS = {
    "en": {
        # Status messages
        "saving": "Saving...",
        "saved": "Saved",
        "syncing": "Syncing...",
        "switched": "Switched",
        "project_switched": "Project switched",
        "dir_updated": "Directory updated",
        "project_removed": "Project removed",
        "projects_imported": "Projects imported",
        "save_failed": "Error saving: {error}",
        "config_reset": "Configuration could not be read and was reset",
        "launched": "{tool} started",
        "launch_failed": "Launch failed: {error}",
        "select_tool": "Select a tool first",
        "projects_exported": "{count} projects exported",
        "sync_not_configured": "No sync folder configured",
        "sync_no_password": "No sync password in the keyring",
        "sync_no_file": "No sync file found",
        "sync_wrong_password": "Wrong password or corrupt sync file",
        "sync_export_failed": "Export failed",
        # Validation errors
        "api_key_required": "Please configure API Key first!",
        "last_project": "The last project cannot be deleted",
        "no_projects": "At least one project is required",
        "unknown_tool": "Unknown tool: {tool}",
        "unknown_model": "Unknown model: {name}",
        "unknown_field": "Unknown field: {field}",
        "builtin_rename": "Built-in model '{name}' cannot be renamed",
        "builtin_delete": "Built-in model '{name}' cannot be deleted",
        "original_delete": "The Original model cannot be deleted",
        "name_empty": "Name must not be empty",
        "name_taken": "Name '{name}' is already in use",
        # Tray
        "tray_title": "AICoder Dashboard",
        "tray_show": "Show AICoder",
        "tray_launch": "Launch Claude Code",
        "tray_models": "Models",
        "tray_export": "Export projects",
        "tray_import": "Import projects",
        "tray_quit": "Quit AICoder",
    },
    "de": {
        "saving": "Speichern...",
        "saved": "Gespeichert",
        "syncing": "Synchronisiere...",
        "switched": "Gewechselt",
        "project_switched": "Projekt gewechselt",
        "dir_updated": "Verzeichnis aktualisiert",
        "project_removed": "Projekt entfernt",
        "projects_imported": "Projekte importiert",
        "save_failed": "Fehler beim Speichern: {error}",
        "config_reset": "Konfiguration war nicht lesbar und wurde zurückgesetzt",
        "launched": "{tool} gestartet",
        "launch_failed": "Start fehlgeschlagen: {error}",
        "select_tool": "Bitte zuerst ein Tool wählen",
        "projects_exported": "{count} Projekte exportiert",
        "sync_not_configured": "Kein Sync-Ordner konfiguriert",
        "sync_no_password": "Kein Sync-Passwort im Schlüsselbund",
        "sync_no_file": "Keine Sync-Datei gefunden",
        "sync_wrong_password": "Falsches Passwort oder beschädigte Sync-Datei",
        "sync_export_failed": "Export fehlgeschlagen",
        "api_key_required": "Bitte zuerst einen API-Key konfigurieren!",
        "last_project": "Das letzte Projekt kann nicht gelöscht werden",
        "no_projects": "Mindestens ein Projekt ist erforderlich",
        "unknown_tool": "Unbekanntes Tool: {tool}",
        "unknown_model": "Unbekanntes Modell: {name}",
        "unknown_field": "Unbekanntes Feld: {field}",
        "builtin_rename": "Das eingebaute Modell '{name}' kann nicht umbenannt werden",
        "builtin_delete": "Das eingebaute Modell '{name}' kann nicht gelöscht werden",
        "original_delete": "Das Original-Modell kann nicht gelöscht werden",
        "name_empty": "Der Name darf nicht leer sein",
        "name_taken": "Der Name '{name}' ist bereits vergeben",
        "tray_title": "AICoder Dashboard",
        "tray_show": "Hauptfenster anzeigen",
        "tray_launch": "Claude Code starten",
        "tray_models": "Modelle",
        "tray_export": "Projekte exportieren",
        "tray_import": "Projekte importieren",
        "tray_quit": "Beenden",
    },
    "zh-Hans": {
        "saving": "正在保存...",
        "saved": "已保存",
        "syncing": "正在同步...",
        "switched": "已切换",
        "project_switched": "项目已切换",
        "dir_updated": "目录已更新",
        "project_removed": "项目已删除",
        "projects_imported": "项目已导入",
        "save_failed": "保存失败: {error}",
        "api_key_required": "请先配置 API Key！",
        "last_project": "无法删除最后一个项目",
        "tray_title": "AICoder 控制台",
        "tray_show": "显示主窗口",
        "tray_launch": "启动 Claude Code",
        "tray_models": "模型选择",
        "tray_export": "导出项目",
        "tray_import": "导入项目",
        "tray_quit": "退出程序",
    },
}
