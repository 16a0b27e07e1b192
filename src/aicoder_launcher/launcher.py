"""Tool launch and environment checks for AICoder Launcher.

Starts a tool CLI in a terminal window for a project. The configuration
document only supplies the data: the active model's credentials become
environment variables, the project supplies directory, yolo flag and proxy.
"""

import os
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from .i18n import tr
from .log import get_logger
from .schema import AppConfig, ProjectConfig
from .tools import TOOLS, get_tool

logger = get_logger(__name__)

# Shell characters that are not allowed in commands and flags
DANGEROUS_CHARS = set(';|&`$(){}[]<>\\"\'\n\r')

TERMINAL_ENV = "AICODER_TERMINAL"
TERMINAL_CANDIDATES = ("x-terminal-emulator", "gnome-terminal", "konsole", "xterm")
DEFAULT_WIRE_API = "responses"
PROXY_ENV_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "http_proxy", "https_proxy")


def validate_command(cmd: str) -> tuple[bool, str]:
    """Checks a command for shell metacharacters.

    Returns: (is_valid, error_message)
    """
    if not cmd or not cmd.strip():
        return False, "Command is empty"
    dangerous_found = sorted({c for c in cmd if c in DANGEROUS_CHARS})
    if dangerous_found:
        return False, f"Invalid characters in command: {''.join(dangerous_found)}"
    return True, ""


def resolve_home_directory() -> str:
    """Default directory for new projects."""
    return str(Path.home())


def proxy_url(config: AppConfig, project: ProjectConfig) -> str:
    """Proxy URL for a project, falling back to the global default proxy."""
    if not project.use_proxy:
        return ""
    if project.proxy_host:
        host, port = project.proxy_host, project.proxy_port
        username, password = project.proxy_username, project.proxy_password
    else:
        host, port = config.default_proxy_host, config.default_proxy_port
        username, password = config.default_proxy_username, config.default_proxy_password
    if not host:
        return ""
    auth = ""
    if username:
        auth = f"{username}:{password}@" if password else f"{username}@"
    address = f"{host}:{port}" if port else host
    return f"http://{auth}{address}"


def build_launch_env(config: AppConfig, tool: str, project: ProjectConfig | None = None) -> dict:
    """Environment variables a tool needs for its active model.

    "Original" models need none; the tool then uses its own login.
    """
    spec = get_tool(tool)
    if spec is None:
        raise KeyError(tool)
    env = {}
    model = config.tool(tool).get_current()
    if model is not None and not model.is_original:
        env[spec.key_env] = model.api_key
        if model.model_url:
            env[spec.base_url_env] = model.model_url
        if model.model_id:
            env[spec.model_env] = model.model_id
        if tool == "codex":
            env["WIRE_API"] = model.wire_api or DEFAULT_WIRE_API
    if project is not None:
        url = proxy_url(config, project)
        if url:
            for name in PROXY_ENV_VARS:
                env[name] = url
    return env


@dataclass
class ToolStatus:
    """Installation state of a tool CLI."""

    name: str
    installed: bool
    path: str = ""


def check_environment() -> list[ToolStatus]:
    """Looks up every supported tool on PATH."""
    statuses = []
    for spec in TOOLS.values():
        path = shutil.which(spec.command)
        statuses.append(ToolStatus(name=spec.id, installed=path is not None, path=path or ""))
    return statuses


def find_terminal() -> str | None:
    """Terminal emulator from $AICODER_TERMINAL or the first one installed."""
    configured = os.environ.get(TERMINAL_ENV)
    if configured:
        return configured
    for candidate in TERMINAL_CANDIDATES:
        if shutil.which(candidate):
            return candidate
    return None


class ToolLauncher:
    """Starts tool CLIs in terminal windows (fire and forget)."""

    def __init__(self, terminal_cmd: str | None = None):
        self.terminal_cmd = terminal_cmd

    def launch_for(self, config: AppConfig, tool: str) -> tuple[bool, str]:
        """Launches a tool on the document's current project."""
        project = config.get_current_project()
        if project is None:
            return False, tr("launch_failed", error="no project")
        env = build_launch_env(config, tool, project)
        return self.launch(tool, project.yolo_mode, project.path, env)

    def launch(self, tool: str, yolo: bool, project_path: str, env: dict) -> tuple[bool, str]:
        """Starts ``tool`` in ``project_path``.

        Returns: (success, message)
        """
        spec = get_tool(tool)
        if spec is None:
            return False, tr("unknown_tool", tool=tool)
        if not os.path.isdir(project_path):
            return False, tr("launch_failed", error=f"path does not exist: {project_path}")

        argv = spec.get_full_command(yolo)
        for part in argv:
            is_valid, error = validate_command(part)
            if not is_valid:
                return False, tr("launch_failed", error=error)

        process_env = os.environ.copy()
        # Drop leftovers of other models before applying the active one
        for name in (spec.key_env, spec.base_url_env, spec.model_env, "WIRE_API"):
            process_env.pop(name, None)
        process_env.update(env)

        try:
            if sys.platform == "win32":
                subprocess.Popen(
                    ["cmd", "/k", *argv],
                    cwd=project_path,
                    env=process_env,
                    creationflags=subprocess.CREATE_NEW_CONSOLE,
                )
            else:
                terminal = self.terminal_cmd or find_terminal()
                if terminal is None:
                    return False, tr("launch_failed", error="no terminal emulator found")
                subprocess.Popen(
                    self._terminal_argv(terminal, spec.name, argv),
                    cwd=project_path,
                    env=process_env,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    start_new_session=True,
                )
        except FileNotFoundError as e:
            return False, tr("launch_failed", error=f"not found: {e.filename}")
        except (subprocess.SubprocessError, OSError) as e:
            return False, tr("launch_failed", error=str(e))

        logger.info("Launched %s in %s", tool, project_path)
        return True, tr("launched", tool=spec.name)

    @staticmethod
    def _terminal_argv(terminal: str, title: str, argv: list[str]) -> list[str]:
        script = f"{shlex.join(argv)}; echo '{title} finished. Press Enter to close...'; read"
        if Path(terminal).name == "gnome-terminal":
            return [terminal, f"--title={title}", "--", "bash", "-c", script]
        return [terminal, "-e", "bash", "-c", script]
