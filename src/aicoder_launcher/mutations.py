"""Mutations of the configuration document.

Every function takes a document and returns a new one; nothing is modified
in place and no state is kept between calls. A rejected mutation raises
ValidationError and the caller keeps the old document.

Models are identified by name, so renaming the active model also moves
``current_model``.
"""

import re
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import ClassVar

from .errors import ValidationError
from .schema import AppConfig, ModelConfig, ProjectConfig, new_project_id, unique_model_name
from .tools import ORIGINAL_MODEL, TOOL_IDS, is_panel, is_tool

EDITABLE_MODEL_FIELDS = ("api_key", "model_url", "model_name", "model_id", "wire_api")
PROJECT_BOOL_FIELDS = ("yolo_mode", "admin_mode", "python_project", "use_proxy")
PROJECT_STR_FIELDS = (
    "name",
    "path",
    "python_env",
    "proxy_host",
    "proxy_port",
    "proxy_username",
    "proxy_password",
)

_PROVIDER_SUFFIX = re.compile(r"^(.+?)-(Claude|Gemini|Codex)$", re.IGNORECASE)


def _require_tool(tool: str) -> None:
    if not is_tool(tool):
        raise ValidationError("unknown_tool", tool=tool)


# === Tools and models ===


def model_tab_index(config: AppConfig, tool: str) -> int:
    """Index of the active model in a tool's model list (0 if not found)."""
    tool_cfg = config.tool(tool)
    return max(tool_cfg.index_of(tool_cfg.current_model), 0)


def switch_active_tool(config: AppConfig, tool: str) -> AppConfig:
    """Selects a tool panel (or the message panel)."""
    if not is_panel(tool):
        raise ValidationError("unknown_tool", tool=tool)
    return replace(config, active_tool=tool)


def activate_model(config: AppConfig, tool: str, model_name: str) -> AppConfig:
    """Makes a model the tool's active one.

    Every model except "Original" needs a non-blank API key. The error
    carries the model's index so the UI can open its settings.
    """
    _require_tool(tool)
    tool_cfg = config.tool(tool)
    index = tool_cfg.index_of(model_name)
    model = tool_cfg.models[index] if index >= 0 else None

    if model is None:
        if model_name == ORIGINAL_MODEL:
            raise ValidationError("unknown_model", name=model_name)
        raise ValidationError("api_key_required", name=model_name)
    if not model.is_original and not model.has_api_key:
        raise ValidationError("api_key_required", model_index=index, name=model_name)

    return config.with_tool(tool, replace(tool_cfg, current_model=model_name))


def edit_model_field(config: AppConfig, tool: str, index: int, field: str, value: str) -> AppConfig:
    """Updates one field of the model at ``index``.

    Only custom models can be renamed; a rename of the active model updates
    ``current_model`` to the new name.
    """
    _require_tool(tool)
    if field not in EDITABLE_MODEL_FIELDS:
        raise ValidationError("unknown_field", field=field)
    tool_cfg = config.tool(tool)
    if not 0 <= index < len(tool_cfg.models):
        raise ValidationError("unknown_model", name=str(index))

    model = tool_cfg.models[index]
    current_model = tool_cfg.current_model

    if field == "model_name":
        if value == model.model_name:
            return config
        if not model.is_custom:
            raise ValidationError("builtin_rename", name=model.model_name)
        if not value.strip():
            raise ValidationError("name_empty")
        if value in tool_cfg.model_names:
            raise ValidationError("name_taken", name=value)
        if model.model_name == current_model:
            current_model = value

    models = list(tool_cfg.models)
    models[index] = replace(model, **{field: value})
    return config.with_tool(tool, replace(tool_cfg, current_model=current_model, models=tuple(models)))


def add_custom_model(config: AppConfig, tool: str) -> AppConfig:
    """Appends an empty custom model with a free "Custom" name."""
    _require_tool(tool)
    tool_cfg = config.tool(tool)
    model = ModelConfig(model_name=unique_model_name(tool_cfg.model_names), is_custom=True)
    return config.with_tool(tool, replace(tool_cfg, models=tool_cfg.models + (model,)))


def remove_model(config: AppConfig, tool: str, model_name: str) -> AppConfig:
    """Deletes a custom model; the active one falls back to "Original"."""
    _require_tool(tool)
    tool_cfg = config.tool(tool)
    model = tool_cfg.get_model(model_name)
    if model is None:
        raise ValidationError("unknown_model", name=model_name)
    if model.is_original:
        raise ValidationError("original_delete")
    if not model.is_custom:
        raise ValidationError("builtin_delete", name=model_name)

    models = tuple(m for m in tool_cfg.models if m.model_name != model_name)
    current_model = tool_cfg.current_model
    if current_model == model_name:
        current_model = ORIGINAL_MODEL
    return config.with_tool(tool, replace(tool_cfg, current_model=current_model, models=models))


def provider_prefix(model_name: str) -> str:
    """Provider part of a model name ("AiCodeMirror-Claude" -> "AiCodeMirror")."""
    match = _PROVIDER_SUFFIX.match(model_name)
    return match.group(1) if match else model_name


def share_api_key(config: AppConfig, tool: str, index: int) -> AppConfig:
    """Copies a model's API key to the same provider's models in every tool.

    Custom models and "Original" neither give nor receive keys.
    """
    _require_tool(tool)
    tool_cfg = config.tool(tool)
    if not 0 <= index < len(tool_cfg.models):
        raise ValidationError("unknown_model", name=str(index))
    source = tool_cfg.models[index]
    if source.is_original or source.is_custom:
        return config

    prefix = provider_prefix(source.model_name).casefold()
    for tool_id in TOOL_IDS:
        target_cfg = config.tool(tool_id)
        models = []
        for i, m in enumerate(target_cfg.models):
            if tool_id == tool and i == index:
                models.append(m)
            elif m.is_custom or m.is_original:
                models.append(m)
            elif provider_prefix(m.model_name).casefold() == prefix:
                models.append(replace(m, api_key=source.api_key))
            else:
                models.append(m)
        config = config.with_tool(tool_id, replace(target_cfg, models=tuple(models)))
    return config


# === Projects ===


def next_project_name(names) -> str:
    """First free "Project {n}" name, probing n = 1, 2, ..."""
    taken = set(names)
    n = 1
    while f"Project {n}" in taken:
        n += 1
    return f"Project {n}"


def _update_project(config: AppConfig, project_id: str, **changes) -> AppConfig:
    index = config.project_index(project_id)
    if index < 0:
        return config
    projects = list(config.projects)
    projects[index] = replace(projects[index], **changes)
    return replace(config, projects=tuple(projects))


def switch_active_project(config: AppConfig, project_id: str) -> AppConfig:
    """Selects a project; unknown ids are ignored."""
    if config.get_project(project_id) is None:
        return config
    return replace(config, current_project=project_id)


def set_project_path(config: AppConfig, project_id: str, path: str) -> AppConfig:
    return _update_project(config, project_id, path=path)


def set_project_yolo(
    config: AppConfig, project_id: str, value: bool, platform: str = sys.platform
) -> AppConfig:
    """Sets yolo mode; outside Windows it excludes admin (root) mode."""
    changes = {"yolo_mode": value}
    if value and platform != "win32":
        changes["admin_mode"] = False
    return _update_project(config, project_id, **changes)


def set_project_field(
    config: AppConfig, project_id: str, field: str, value, platform: str = sys.platform
) -> AppConfig:
    """Updates one launch option of a project."""
    if field == "yolo_mode":
        return set_project_yolo(config, project_id, bool(value), platform)
    if field in PROJECT_BOOL_FIELDS:
        changes = {field: bool(value)}
        if field == "admin_mode" and value and platform != "win32":
            changes["yolo_mode"] = False
        return _update_project(config, project_id, **changes)
    if field in PROJECT_STR_FIELDS:
        value = "" if value is None else str(value)
        if field == "name" and not value.strip():
            raise ValidationError("name_empty")
        return _update_project(config, project_id, **{field: value})
    raise ValidationError("unknown_field", field=field)


def add_project(config: AppConfig, home: str, project_id: str | None = None) -> AppConfig:
    """Appends a project named "Project {n}" pointing at ``home``."""
    ids = {p.id for p in config.projects}
    project_id = project_id or new_project_id()
    while project_id in ids:
        project_id = new_project_id()
    project = ProjectConfig(
        id=project_id,
        name=next_project_name(p.name for p in config.projects),
        path=home or "",
    )
    return replace(config, projects=config.projects + (project,))


def remove_project(config: AppConfig, project_id: str) -> AppConfig:
    """Deletes a project; the last remaining one cannot be deleted.

    If the deleted project was selected, the first remaining one is.
    """
    if config.get_project(project_id) is None:
        return config
    if len(config.projects) <= 1:
        raise ValidationError("last_project")
    projects = tuple(p for p in config.projects if p.id != project_id)
    current_project = config.current_project
    if current_project == project_id:
        current_project = projects[0].id
    return replace(config, projects=projects, current_project=current_project)


def replace_projects(config: AppConfig, projects) -> AppConfig:
    """Replaces the project list (sync import), keeping the selection if possible."""
    projects = list(projects)
    if not projects:
        raise ValidationError("no_projects")
    seen: set[str] = set()
    for i, p in enumerate(projects):
        if p.id in seen:
            projects[i] = p = replace(p, id=new_project_id())
        seen.add(p.id)
    current_project = config.current_project
    if current_project not in seen:
        current_project = projects[0].id
    return replace(config, projects=tuple(projects), current_project=current_project)


# === Global settings ===


def set_language(config: AppConfig, language: str) -> AppConfig:
    return replace(config, language=language)


def set_hide_startup_popup(config: AppConfig, value: bool) -> AppConfig:
    return replace(config, hide_startup_popup=value)


def set_default_proxy(
    config: AppConfig, host: str, port: str, username: str = "", password: str = ""
) -> AppConfig:
    """Sets the proxy used by projects without their own proxy settings."""
    return replace(
        config,
        default_proxy_host=host,
        default_proxy_port=port,
        default_proxy_username=username,
        default_proxy_password=password,
    )


def set_sync_path(config: AppConfig, path: str) -> AppConfig:
    """Sets the folder used for encrypted project export and import."""
    return replace(config, sync_path=path.strip())


# === Intents ===


class Intent(ABC):
    """A user intent; ``apply`` derives the next document."""

    success_key: ClassVar[str] = "saved"  # i18n key of the status after a commit

    @abstractmethod
    def apply(self, config: AppConfig) -> AppConfig:
        """Returns the next document or raises ValidationError."""


@dataclass(frozen=True)
class SwitchActiveTool(Intent):
    tool: str

    def apply(self, config):
        return switch_active_tool(config, self.tool)


@dataclass(frozen=True)
class ActivateModel(Intent):
    success_key: ClassVar[str] = "switched"

    tool: str
    model_name: str

    def apply(self, config):
        return activate_model(config, self.tool, self.model_name)


@dataclass(frozen=True)
class EditModelField(Intent):
    tool: str
    index: int
    field: str
    value: str

    def apply(self, config):
        return edit_model_field(config, self.tool, self.index, self.field, self.value)


@dataclass(frozen=True)
class AddCustomModel(Intent):
    tool: str

    def apply(self, config):
        return add_custom_model(config, self.tool)


@dataclass(frozen=True)
class RemoveModel(Intent):
    tool: str
    model_name: str

    def apply(self, config):
        return remove_model(config, self.tool, self.model_name)


@dataclass(frozen=True)
class ShareApiKey(Intent):
    tool: str
    index: int

    def apply(self, config):
        return share_api_key(config, self.tool, self.index)


@dataclass(frozen=True)
class SwitchActiveProject(Intent):
    success_key: ClassVar[str] = "project_switched"

    project_id: str

    def apply(self, config):
        return switch_active_project(config, self.project_id)


@dataclass(frozen=True)
class SetProjectPath(Intent):
    success_key: ClassVar[str] = "dir_updated"

    project_id: str
    path: str

    def apply(self, config):
        return set_project_path(config, self.project_id, self.path)


@dataclass(frozen=True)
class SetProjectYolo(Intent):
    project_id: str
    value: bool

    def apply(self, config):
        return set_project_yolo(config, self.project_id, self.value)


@dataclass(frozen=True)
class SetProjectField(Intent):
    project_id: str
    field: str
    value: object

    def apply(self, config):
        return set_project_field(config, self.project_id, self.field, self.value)


@dataclass(frozen=True)
class AddProject(Intent):
    home: str
    project_id: str | None = None

    def apply(self, config):
        return add_project(config, self.home, self.project_id)


@dataclass(frozen=True)
class RemoveProject(Intent):
    success_key: ClassVar[str] = "project_removed"

    project_id: str

    def apply(self, config):
        return remove_project(config, self.project_id)


@dataclass(frozen=True)
class ReplaceProjects(Intent):
    success_key: ClassVar[str] = "projects_imported"

    projects: tuple

    def apply(self, config):
        return replace_projects(config, self.projects)


@dataclass(frozen=True)
class SetLanguage(Intent):
    language: str

    def apply(self, config):
        return set_language(config, self.language)


@dataclass(frozen=True)
class SetHideStartupPopup(Intent):
    value: bool

    def apply(self, config):
        return set_hide_startup_popup(config, self.value)


@dataclass(frozen=True)
class SetSyncPath(Intent):
    path: str

    def apply(self, config):
        return set_sync_path(config, self.path)


@dataclass(frozen=True)
class SetDefaultProxy(Intent):
    host: str
    port: str
    username: str = ""
    password: str = ""

    def apply(self, config):
        return set_default_proxy(config, self.host, self.port, self.username, self.password)
