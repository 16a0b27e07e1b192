"""Configuration document schema for AICoder Launcher.

All entities are immutable; a change always produces a new document.
``from_dict`` tolerates partial input (missing strings become ``""``, missing
flags ``False``) and repairs structural damage instead of failing, so a loaded
document is always usable. Keys the schema does not know are kept in
``extra`` and written back unchanged.
"""

import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path

from .log import get_logger
from .tools import CUSTOM_MODEL, DEFAULT_MODELS, MESSAGE_PANEL, ORIGINAL_MODEL, TOOL_IDS, is_panel

logger = get_logger(__name__)

MODEL_FIELDS = ("model_name", "model_id", "model_url", "api_key", "wire_api", "is_custom")
TOOL_FIELDS = ("current_model", "models")
PROJECT_FIELDS = (
    "id",
    "name",
    "path",
    "yolo_mode",
    "admin_mode",
    "python_project",
    "python_env",
    "use_proxy",
    "proxy_host",
    "proxy_port",
    "proxy_username",
    "proxy_password",
)
APP_FIELDS = (
    *TOOL_IDS,
    "projects",
    "current_project",
    "active_tool",
    "language",
    "hide_startup_popup",
    "default_proxy_host",
    "default_proxy_port",
    "default_proxy_username",
    "default_proxy_password",
    "sync_path",
)

DEFAULT_PROJECT_ID = "default"
DEFAULT_PROJECT_NAME = "Project 1"


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    if isinstance(value, str):
        return value
    # Ports and similar fields are sometimes written as numbers by hand
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _bool(data: dict, key: str) -> bool:
    value = data.get(key)
    return value if isinstance(value, bool) else False


def _extra(data: dict, known: tuple[str, ...]) -> dict:
    return {k: v for k, v in data.items() if k not in known}


def _merge(known: dict, extra: dict) -> dict:
    data = dict(known)
    for key, value in extra.items():
        data.setdefault(key, value)
    return data


def new_project_id() -> str:
    """Generates an opaque project id."""
    return uuid.uuid4().hex[:9]


def unique_model_name(taken, base: str = CUSTOM_MODEL) -> str:
    """Returns ``base`` or ``"{base} {n}"`` (n >= 2), whichever is free."""
    if base not in taken:
        return base
    n = 2
    while f"{base} {n}" in taken:
        n += 1
    return f"{base} {n}"


@dataclass(frozen=True)
class ModelConfig:
    """A named credential + endpoint profile of a tool."""

    model_name: str
    model_id: str = ""
    model_url: str = ""
    api_key: str = ""  # Secret, may be empty
    wire_api: str = ""
    is_custom: bool = False
    extra: dict = field(default_factory=dict, repr=False)

    @property
    def is_original(self) -> bool:
        return self.model_name == ORIGINAL_MODEL

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())

    def to_dict(self) -> dict:
        """Serializes the model to a dictionary."""
        return _merge(
            {
                "model_name": self.model_name,
                "model_id": self.model_id,
                "model_url": self.model_url,
                "api_key": self.api_key,
                "wire_api": self.wire_api,
                "is_custom": self.is_custom,
            },
            self.extra,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ModelConfig":
        """Creates a model from a dictionary; missing fields get defaults."""
        if not isinstance(data, dict):
            data = {}
        return cls(
            model_name=_str(data, "model_name"),
            model_id=_str(data, "model_id"),
            model_url=_str(data, "model_url"),
            api_key=_str(data, "api_key"),
            wire_api=_str(data, "wire_api"),
            is_custom=_bool(data, "is_custom"),
            extra=_extra(data, MODEL_FIELDS),
        )


@dataclass(frozen=True)
class ToolConfig:
    """Model profiles of one tool plus the name of the active one.

    ``current_model`` is a name reference into ``models``.
    """

    current_model: str = ORIGINAL_MODEL
    models: tuple[ModelConfig, ...] = ()
    extra: dict = field(default_factory=dict, repr=False)

    @property
    def model_names(self) -> list[str]:
        return [m.model_name for m in self.models]

    def index_of(self, model_name: str) -> int:
        """Returns the position of a model, or -1."""
        for i, m in enumerate(self.models):
            if m.model_name == model_name:
                return i
        return -1

    def get_model(self, model_name: str) -> ModelConfig | None:
        """Returns a model by name."""
        index = self.index_of(model_name)
        return self.models[index] if index >= 0 else None

    def get_current(self) -> ModelConfig | None:
        """Returns the active model."""
        return self.get_model(self.current_model)

    def to_dict(self) -> dict:
        return _merge(
            {
                "current_model": self.current_model,
                "models": [m.to_dict() for m in self.models],
            },
            self.extra,
        )

    @classmethod
    def default(cls, tool_id: str) -> "ToolConfig":
        """Returns the built-in profile list of a tool."""
        models = tuple(ModelConfig.from_dict(dict(m)) for m in DEFAULT_MODELS[tool_id])
        return cls(current_model=ORIGINAL_MODEL, models=models)

    @classmethod
    def from_dict(cls, data: dict, tool_id: str) -> "ToolConfig":
        """Creates a tool config and repairs it.

        Nameless built-in models and duplicate names are dropped, a nameless
        custom model is called "Custom", "Original" is guaranteed to exist and
        ``current_model`` falls back to it when it does not resolve.
        """
        if not isinstance(data, dict):
            return cls.default(tool_id)

        models: list[ModelConfig] = []
        seen: set[str] = set()
        raw_models = data.get("models")
        for raw in raw_models if isinstance(raw_models, list) else []:
            model = ModelConfig.from_dict(raw)
            if not model.model_name.strip():
                if not model.is_custom:
                    logger.warning("Dropping %s model without a name", tool_id)
                    continue
                model = replace(model, model_name=unique_model_name(seen))
            if model.model_name in seen:
                logger.warning("Dropping duplicate %s model '%s'", tool_id, model.model_name)
                continue
            seen.add(model.model_name)
            models.append(model)

        if not models:
            defaults = cls.default(tool_id)
            models = list(defaults.models)
            seen = set(defaults.model_names)
        if ORIGINAL_MODEL not in seen:
            models.insert(0, ModelConfig(model_name=ORIGINAL_MODEL))
            seen.add(ORIGINAL_MODEL)

        current_model = _str(data, "current_model")
        if current_model not in seen:
            current_model = ORIGINAL_MODEL

        return cls(
            current_model=current_model,
            models=tuple(models),
            extra=_extra(data, TOOL_FIELDS),
        )


@dataclass(frozen=True)
class ProjectConfig:
    """A project directory with its launch options."""

    id: str  # Opaque, stable for the lifetime of the project
    name: str
    path: str
    yolo_mode: bool = False
    admin_mode: bool = False
    python_project: bool = False
    python_env: str = ""
    use_proxy: bool = False
    proxy_host: str = ""
    proxy_port: str = ""
    proxy_username: str = ""
    proxy_password: str = ""
    extra: dict = field(default_factory=dict, repr=False)

    def to_dict(self) -> dict:
        """Serializes the project to a dictionary."""
        return _merge(
            {
                "id": self.id,
                "name": self.name,
                "path": self.path,
                "yolo_mode": self.yolo_mode,
                "admin_mode": self.admin_mode,
                "python_project": self.python_project,
                "python_env": self.python_env,
                "use_proxy": self.use_proxy,
                "proxy_host": self.proxy_host,
                "proxy_port": self.proxy_port,
                "proxy_username": self.proxy_username,
                "proxy_password": self.proxy_password,
            },
            self.extra,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectConfig":
        """Creates a project from a dictionary; an empty id is regenerated."""
        if not isinstance(data, dict):
            data = {}
        project_id = _str(data, "id")
        if not project_id.strip():
            project_id = new_project_id()
        return cls(
            id=project_id,
            name=_str(data, "name"),
            path=_str(data, "path"),
            yolo_mode=_bool(data, "yolo_mode"),
            admin_mode=_bool(data, "admin_mode"),
            python_project=_bool(data, "python_project"),
            python_env=_str(data, "python_env"),
            use_proxy=_bool(data, "use_proxy"),
            proxy_host=_str(data, "proxy_host"),
            proxy_port=_str(data, "proxy_port"),
            proxy_username=_str(data, "proxy_username"),
            proxy_password=_str(data, "proxy_password"),
            extra=_extra(data, PROJECT_FIELDS),
        )


@dataclass(frozen=True)
class AppConfig:
    """The configuration document (aggregate root)."""

    claude: ToolConfig = field(default_factory=lambda: ToolConfig.default("claude"))
    gemini: ToolConfig = field(default_factory=lambda: ToolConfig.default("gemini"))
    codex: ToolConfig = field(default_factory=lambda: ToolConfig.default("codex"))
    projects: tuple[ProjectConfig, ...] = ()
    current_project: str = ""
    active_tool: str = MESSAGE_PANEL
    language: str = ""
    hide_startup_popup: bool = False
    default_proxy_host: str = ""
    default_proxy_port: str = ""
    default_proxy_username: str = ""
    default_proxy_password: str = ""
    sync_path: str = ""  # Folder holding the encrypted project file
    extra: dict = field(default_factory=dict, repr=False)

    def tool(self, tool_id: str) -> ToolConfig:
        """Returns the config of a tool."""
        if tool_id not in TOOL_IDS:
            raise KeyError(tool_id)
        return getattr(self, tool_id)

    def with_tool(self, tool_id: str, tool_config: ToolConfig) -> "AppConfig":
        """Returns a copy with one tool config replaced."""
        if tool_id not in TOOL_IDS:
            raise KeyError(tool_id)
        return replace(self, **{tool_id: tool_config})

    def project_index(self, project_id: str) -> int:
        for i, p in enumerate(self.projects):
            if p.id == project_id:
                return i
        return -1

    def get_project(self, project_id: str) -> ProjectConfig | None:
        """Returns a project by id."""
        index = self.project_index(project_id)
        return self.projects[index] if index >= 0 else None

    def get_current_project(self) -> ProjectConfig | None:
        """Returns the selected project, falling back to the first one."""
        project = self.get_project(self.current_project)
        if project is None and self.projects:
            return self.projects[0]
        return project

    def to_dict(self) -> dict:
        """Serializes the document to a dictionary."""
        data = {tool_id: self.tool(tool_id).to_dict() for tool_id in TOOL_IDS}
        data.update(
            {
                "projects": [p.to_dict() for p in self.projects],
                "current_project": self.current_project,
                "active_tool": self.active_tool,
                "language": self.language,
                "hide_startup_popup": self.hide_startup_popup,
                "default_proxy_host": self.default_proxy_host,
                "default_proxy_port": self.default_proxy_port,
                "default_proxy_username": self.default_proxy_username,
                "default_proxy_password": self.default_proxy_password,
                "sync_path": self.sync_path,
            }
        )
        return _merge(data, self.extra)

    @classmethod
    def from_dict(cls, data: dict, home: str | None = None) -> "AppConfig":
        """Creates a document from a dictionary and repairs references.

        ``home`` is the path given to a regenerated default project.
        """
        if not isinstance(data, dict):
            data = {}

        tools = {tool_id: ToolConfig.from_dict(data.get(tool_id), tool_id) for tool_id in TOOL_IDS}

        projects: list[ProjectConfig] = []
        seen: set[str] = set()
        raw_projects = data.get("projects")
        for raw in raw_projects if isinstance(raw_projects, list) else []:
            project = ProjectConfig.from_dict(raw)
            if project.id in seen:
                project = replace(project, id=new_project_id())
            seen.add(project.id)
            projects.append(project)
        if not projects:
            projects.append(_default_project(home))
            seen.add(projects[0].id)

        current_project = _str(data, "current_project")
        if current_project not in seen:
            current_project = projects[0].id

        active_tool = _str(data, "active_tool")
        if not is_panel(active_tool):
            active_tool = MESSAGE_PANEL

        return cls(
            **tools,
            projects=tuple(projects),
            current_project=current_project,
            active_tool=active_tool,
            language=_str(data, "language"),
            hide_startup_popup=_bool(data, "hide_startup_popup"),
            default_proxy_host=_str(data, "default_proxy_host"),
            default_proxy_port=_str(data, "default_proxy_port"),
            default_proxy_username=_str(data, "default_proxy_username"),
            default_proxy_password=_str(data, "default_proxy_password"),
            sync_path=_str(data, "sync_path"),
            extra=_extra(data, APP_FIELDS),
        )


def _default_project(home: str | None) -> ProjectConfig:
    return ProjectConfig(
        id=DEFAULT_PROJECT_ID,
        name=DEFAULT_PROJECT_NAME,
        path=home if home is not None else str(Path.home()),
    )


def default_config(home: str | None = None) -> AppConfig:
    """Returns the first-start document."""
    project = _default_project(home)
    return AppConfig(projects=(project,), current_project=project.id)


def check_integrity(config: AppConfig) -> list[str]:
    """Returns reference-integrity violations of a document (empty when valid)."""
    problems = []
    if not config.projects:
        problems.append("no projects")
    elif config.get_project(config.current_project) is None:
        problems.append(f"current_project '{config.current_project}' not found")
    if not is_panel(config.active_tool):
        problems.append(f"unknown active_tool '{config.active_tool}'")
    for tool_id in TOOL_IDS:
        tool = config.tool(tool_id)
        names = tool.model_names
        if len(set(names)) != len(names):
            problems.append(f"{tool_id}: duplicate model names")
        if names.count(ORIGINAL_MODEL) != 1:
            problems.append(f"{tool_id}: expected exactly one '{ORIGINAL_MODEL}' model")
        if tool.get_current() is None:
            problems.append(f"{tool_id}: current_model '{tool.current_model}' not found")
    ids = [p.id for p in config.projects]
    if len(set(ids)) != len(ids):
        problems.append("duplicate project ids")
    return problems
