"""AICoder Launcher - configuration and launch manager for AI coding CLIs.

Keeps the model profiles of Claude Code, Gemini CLI and Codex together with
a list of project directories in one configuration document, and launches a
tool against a project.

Cross-Platform: Windows, macOS, Linux
"""

__version__ = "1.0.0"

from .config import ConfigStore, load_config, save_config
from .coordinator import SavePolicy, SyncCoordinator
from .schema import AppConfig, ModelConfig, ProjectConfig, ToolConfig

__all__ = [
    "AppConfig",
    "ModelConfig",
    "ProjectConfig",
    "ToolConfig",
    "ConfigStore",
    "load_config",
    "save_config",
    "SavePolicy",
    "SyncCoordinator",
]
