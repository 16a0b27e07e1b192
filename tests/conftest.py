"""Shared fixtures for the AICoder Launcher tests."""

from dataclasses import replace
from pathlib import Path

import pytest
from PySide6.QtCore import QCoreApplication

from aicoder_launcher import i18n
from aicoder_launcher.config import ConfigStore
from aicoder_launcher.errors import PersistenceError
from aicoder_launcher.schema import default_config

HOME = "/home/tester"


class MemoryStore:
    """In-memory stand-in for ConfigStore."""

    def __init__(self, config=None):
        self.config = config if config is not None else default_config(HOME)
        self.saved = []
        self.fail = False
        self.last_load_error = None
        self.path = Path("memory.json")

    def load(self):
        return self.config

    def read(self):
        return self.config

    def save(self, config):
        if self.fail:
            raise PersistenceError(self.path, OSError("disk full"))
        self.saved.append(config)
        self.config = config


def with_api_key(config, tool, model_name, key="sk-test"):
    """Returns a copy of ``config`` where one model has an API key."""
    tool_cfg = config.tool(tool)
    models = tuple(
        replace(m, api_key=key) if m.model_name == model_name else m for m in tool_cfg.models
    )
    return config.with_tool(tool, replace(tool_cfg, models=models))


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture(autouse=True)
def english():
    i18n.set_language("en")
    yield
    i18n.set_language("en")


@pytest.fixture
def config():
    return default_config(HOME)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def store(tmp_path):
    return ConfigStore(tmp_path / "config.json", home=str(tmp_path), legacy_paths=())
