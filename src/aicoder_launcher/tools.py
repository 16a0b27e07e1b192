"""Tool catalog for AICoder Launcher.

The set of supported CLI tools is closed; each tool carries its own list of
model profiles inside the configuration document.
"""

from dataclasses import dataclass

ORIGINAL_MODEL = "Original"
CUSTOM_MODEL = "Custom"
MESSAGE_PANEL = "message"  # Sentinel for "no tool panel selected"


@dataclass(frozen=True)
class ToolSpec:
    """Static description of a supported CLI tool."""

    id: str  # Key in the config document (e.g. "claude")
    name: str  # Display name
    command: str  # Binary looked up on PATH
    key_env: str  # Env var receiving the API key
    base_url_env: str  # Env var receiving the endpoint URL
    model_env: str  # Env var receiving the model id
    yolo_flag: str = ""  # Flag for "no permission prompts"
    color: str = "#808080"

    def get_full_command(self, yolo: bool = False) -> list[str]:
        """Return the argv used to start the tool."""
        argv = [self.command]
        if yolo and self.yolo_flag:
            argv.append(self.yolo_flag)
        return argv


TOOLS: dict[str, ToolSpec] = {
    "claude": ToolSpec(
        id="claude",
        name="Claude Code",
        command="claude",
        key_env="ANTHROPIC_AUTH_TOKEN",
        base_url_env="ANTHROPIC_BASE_URL",
        model_env="ANTHROPIC_MODEL",
        yolo_flag="--dangerously-skip-permissions",
        color="#E07A5F",
    ),
    "gemini": ToolSpec(
        id="gemini",
        name="Gemini CLI",
        command="gemini",
        key_env="GEMINI_API_KEY",
        base_url_env="GOOGLE_GEMINI_BASE_URL",
        model_env="GOOGLE_GEMINI_MODEL",
        yolo_flag="--yolo",
        color="#4285F4",
    ),
    "codex": ToolSpec(
        id="codex",
        name="OpenAI Codex CLI",
        command="codex",
        key_env="OPENAI_API_KEY",
        base_url_env="OPENAI_BASE_URL",
        model_env="OPENAI_MODEL",
        yolo_flag="--full-auto",
        color="#10A37F",
    ),
}

TOOL_IDS: tuple[str, ...] = tuple(TOOLS)

# Built-in model profiles written on first start, as raw document entries.
DEFAULT_MODELS: dict[str, tuple[dict, ...]] = {
    "claude": (
        {"model_name": ORIGINAL_MODEL},
        {"model_name": "GLM", "model_id": "glm-4.7",
         "model_url": "https://open.bigmodel.cn/api/anthropic"},
        {"model_name": "kimi", "model_id": "kimi-k2-thinking",
         "model_url": "https://api.kimi.com/coding"},
        {"model_name": "doubao", "model_id": "doubao-seed-code-preview-latest",
         "model_url": "https://ark.cn-beijing.volces.com/api/coding"},
        {"model_name": "MiniMax", "model_id": "MiniMax-M2.1",
         "model_url": "https://api.minimaxi.com/anthropic"},
        {"model_name": "AIgoCode", "model_id": "claude-3-5-sonnet-20241022",
         "model_url": "https://api.aigocode.com/api"},
        {"model_name": "AiCodeMirror", "model_id": "Haiku",
         "model_url": "https://api.aicodemirror.com/api/claudecode"},
        {"model_name": CUSTOM_MODEL, "is_custom": True},
    ),
    "gemini": (
        {"model_name": ORIGINAL_MODEL},
        {"model_name": "AIgoCode", "model_id": "gemini-2.0-flash-exp",
         "model_url": "https://api.aigocode.com/gemini"},
        {"model_name": "AiCodeMirror", "model_id": "gemini-2.0-flash-exp",
         "model_url": "https://api.aicodemirror.com/api/gemini"},
        {"model_name": CUSTOM_MODEL, "is_custom": True},
    ),
    "codex": (
        {"model_name": ORIGINAL_MODEL},
        {"model_name": "AIgoCode", "model_id": "gpt-5-codex",
         "model_url": "https://api.aigocode.com/openai", "wire_api": "responses"},
        {"model_name": "AiCodeMirror", "model_id": "gpt-5.2-codex",
         "model_url": "https://api.aicodemirror.com/api/codex/backend-api/codex",
         "wire_api": "responses"},
        {"model_name": CUSTOM_MODEL, "is_custom": True},
    ),
}


def get_tool(tool_id: str) -> ToolSpec | None:
    """Returns a tool spec by ID."""
    return TOOLS.get(tool_id)


def is_tool(tool_id: str) -> bool:
    """Checks if the ID names a model-bearing tool."""
    return tool_id in TOOLS


def is_panel(panel: str) -> bool:
    """Checks if the value is a valid ``active_tool`` (tool or message sentinel)."""
    return panel == MESSAGE_PANEL or panel in TOOLS
