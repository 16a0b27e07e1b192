"""Unit tests for aicoder_launcher.mutations."""

import pytest
from conftest import HOME, with_api_key

from aicoder_launcher.errors import ValidationError
from aicoder_launcher.mutations import (
    ActivateModel,
    AddCustomModel,
    AddProject,
    EditModelField,
    Intent,
    RemoveProject,
    ReplaceProjects,
    SetSyncPath,
    SwitchActiveProject,
    activate_model,
    add_custom_model,
    add_project,
    edit_model_field,
    model_tab_index,
    next_project_name,
    provider_prefix,
    remove_model,
    remove_project,
    replace_projects,
    set_default_proxy,
    set_project_field,
    set_project_path,
    set_project_yolo,
    share_api_key,
    switch_active_project,
    switch_active_tool,
)
from aicoder_launcher.schema import ProjectConfig, check_integrity
from aicoder_launcher.tools import MESSAGE_PANEL, ORIGINAL_MODEL


@pytest.fixture
def two_projects(config):
    return add_project(config, "/work", project_id="p2")


# ---------------------------------------------------------------------------
# Tools and models
# ---------------------------------------------------------------------------


class TestSwitchActiveTool:
    def test_switch_to_tool_and_back(self, config):
        doc = switch_active_tool(config, "gemini")
        assert doc.active_tool == "gemini"
        assert switch_active_tool(doc, MESSAGE_PANEL).active_tool == MESSAGE_PANEL

    def test_unknown_tool_rejected(self, config):
        with pytest.raises(ValidationError) as excinfo:
            switch_active_tool(config, "emacs")
        assert excinfo.value.key == "unknown_tool"


class TestActivateModel:
    def test_original_needs_no_key(self, config):
        doc = with_api_key(config, "claude", "kimi")
        doc = activate_model(doc, "claude", "kimi")
        doc = activate_model(doc, "claude", ORIGINAL_MODEL)
        assert doc.claude.current_model == ORIGINAL_MODEL

    def test_model_with_key_becomes_current(self, config):
        doc = activate_model(with_api_key(config, "gemini", "AIgoCode"), "gemini", "AIgoCode")
        assert doc.gemini.current_model == "AIgoCode"
        assert model_tab_index(doc, "gemini") == 1

    def test_model_without_key_rejected_with_index(self, config):
        with pytest.raises(ValidationError) as excinfo:
            activate_model(config, "claude", "Custom")
        assert excinfo.value.key == "api_key_required"
        assert excinfo.value.model_index == config.claude.index_of("Custom")

    def test_blank_key_counts_as_missing(self, config):
        doc = with_api_key(config, "claude", "kimi", key="   ")
        with pytest.raises(ValidationError) as excinfo:
            activate_model(doc, "claude", "kimi")
        assert excinfo.value.key == "api_key_required"

    def test_missing_model_rejected(self, config):
        with pytest.raises(ValidationError) as excinfo:
            activate_model(config, "claude", "Nope")
        assert excinfo.value.key == "api_key_required"
        assert excinfo.value.model_index is None

    def test_rejection_leaves_document_unchanged(self, config):
        before = config.to_dict()
        with pytest.raises(ValidationError):
            activate_model(config, "codex", "AIgoCode")
        assert config.to_dict() == before


class TestEditModelField:
    def test_edit_key_and_url(self, config):
        doc = edit_model_field(config, "claude", 2, "api_key", "sk-1")
        doc = edit_model_field(doc, "claude", 2, "model_url", "https://x")
        assert doc.claude.models[2].api_key == "sk-1"
        assert doc.claude.models[2].model_url == "https://x"
        assert config.claude.models[2].api_key == ""

    def test_rename_custom_model_tracks_current(self, config):
        index = config.claude.index_of("Custom")
        doc = edit_model_field(config, "claude", index, "api_key", "k")
        doc = activate_model(doc, "claude", "Custom")
        doc = edit_model_field(doc, "claude", index, "model_name", "Mine")
        assert doc.claude.current_model == "Mine"
        assert doc.claude.get_model("Mine").api_key == "k"
        assert check_integrity(doc) == []

    def test_builtin_rename_rejected(self, config):
        with pytest.raises(ValidationError) as excinfo:
            edit_model_field(config, "claude", 1, "model_name", "Other")
        assert excinfo.value.key == "builtin_rename"

    def test_rename_to_taken_name_rejected(self, config):
        index = config.claude.index_of("Custom")
        with pytest.raises(ValidationError) as excinfo:
            edit_model_field(config, "claude", index, "model_name", "kimi")
        assert excinfo.value.key == "name_taken"

    def test_rename_to_blank_rejected(self, config):
        index = config.claude.index_of("Custom")
        with pytest.raises(ValidationError) as excinfo:
            edit_model_field(config, "claude", index, "model_name", "  ")
        assert excinfo.value.key == "name_empty"

    def test_unknown_field_and_index(self, config):
        with pytest.raises(ValidationError):
            edit_model_field(config, "claude", 1, "is_custom", "yes")
        with pytest.raises(ValidationError):
            edit_model_field(config, "claude", 99, "api_key", "x")


class TestCustomModels:
    def test_add_custom_model_gets_free_name(self, config):
        doc = add_custom_model(config, "gemini")
        doc = add_custom_model(doc, "gemini")
        assert doc.gemini.model_names[-2:] == ["Custom 2", "Custom 3"]
        assert doc.gemini.models[-1].is_custom

    def test_remove_current_custom_model_falls_back_to_original(self, config):
        doc = with_api_key(config, "codex", "Custom")
        doc = activate_model(doc, "codex", "Custom")
        doc = remove_model(doc, "codex", "Custom")
        assert "Custom" not in doc.codex.model_names
        assert doc.codex.current_model == ORIGINAL_MODEL

    def test_builtin_and_original_cannot_be_removed(self, config):
        with pytest.raises(ValidationError) as excinfo:
            remove_model(config, "claude", "kimi")
        assert excinfo.value.key == "builtin_delete"
        with pytest.raises(ValidationError) as excinfo:
            remove_model(config, "claude", ORIGINAL_MODEL)
        assert excinfo.value.key == "original_delete"


class TestShareApiKey:
    def test_provider_prefix(self):
        assert provider_prefix("AiCodeMirror-Claude") == "AiCodeMirror"
        assert provider_prefix("aigocode-codex") == "aigocode"
        assert provider_prefix("kimi") == "kimi"

    def test_key_copied_across_tools(self, config):
        index = config.claude.index_of("AIgoCode")
        doc = edit_model_field(config, "claude", index, "api_key", "shared")
        doc = share_api_key(doc, "claude", index)
        assert doc.gemini.get_model("AIgoCode").api_key == "shared"
        assert doc.codex.get_model("AIgoCode").api_key == "shared"
        assert doc.codex.get_model("AiCodeMirror").api_key == ""
        assert doc.codex.get_model("Custom").api_key == ""

    def test_custom_model_does_not_share(self, config):
        index = config.claude.index_of("Custom")
        doc = edit_model_field(config, "claude", index, "api_key", "secret")
        assert share_api_key(doc, "claude", index) == doc


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class TestProjects:
    def test_add_project_twice(self, config):
        doc = add_project(config, HOME)
        doc = add_project(doc, HOME)
        assert [p.name for p in doc.projects] == ["Project 1", "Project 2", "Project 3"]
        assert len({p.id for p in doc.projects}) == 3
        assert doc.current_project == config.current_project

    def test_add_project_uses_home_directory(self, config):
        doc = add_project(config, "/home/other")
        assert doc.projects[-1].path == "/home/other"
        assert doc.projects[-1].yolo_mode is False

    def test_next_project_name_fills_first_gap(self):
        assert next_project_name(["Project 1", "Project 2"]) == "Project 3"
        assert next_project_name(["Project 2"]) == "Project 1"
        assert next_project_name([]) == "Project 1"

    def test_colliding_project_id_replaced(self, config):
        doc = add_project(config, HOME, project_id=config.projects[0].id)
        assert len({p.id for p in doc.projects}) == 2

    def test_remove_current_project_selects_first_remaining(self, two_projects):
        doc = switch_active_project(two_projects, "default")
        doc = remove_project(doc, "default")
        assert [p.id for p in doc.projects] == ["p2"]
        assert doc.current_project == "p2"

    def test_remove_other_project_keeps_selection(self, two_projects):
        doc = remove_project(two_projects, "p2")
        assert doc.current_project == "default"

    def test_last_project_cannot_be_removed(self, config):
        with pytest.raises(ValidationError) as excinfo:
            remove_project(config, "default")
        assert excinfo.value.key == "last_project"

    def test_switch_to_unknown_project_is_ignored(self, config):
        assert switch_active_project(config, "missing") == config

    def test_set_project_path(self, two_projects):
        doc = set_project_path(two_projects, "p2", "/srv/app")
        assert doc.get_project("p2").path == "/srv/app"
        assert doc.get_project("default").path == HOME

    def test_yolo_clears_admin_outside_windows(self, config):
        doc = set_project_field(config, "default", "admin_mode", True, platform="linux")
        doc = set_project_yolo(doc, "default", True, platform="linux")
        project = doc.get_project("default")
        assert project.yolo_mode is True
        assert project.admin_mode is False

    def test_admin_clears_yolo_outside_windows(self, config):
        doc = set_project_yolo(config, "default", True, platform="linux")
        doc = set_project_field(doc, "default", "admin_mode", True, platform="linux")
        project = doc.get_project("default")
        assert project.admin_mode is True
        assert project.yolo_mode is False

    def test_yolo_and_admin_combine_on_windows(self, config):
        doc = set_project_yolo(config, "default", True, platform="win32")
        doc = set_project_field(doc, "default", "admin_mode", True, platform="win32")
        project = doc.get_project("default")
        assert project.yolo_mode and project.admin_mode

    def test_project_string_fields(self, config):
        doc = set_project_field(config, "default", "proxy_port", 3128)
        doc = set_project_field(doc, "default", "name", "Backend")
        assert doc.projects[0].proxy_port == "3128"
        assert doc.projects[0].name == "Backend"

    def test_project_field_errors(self, config):
        with pytest.raises(ValidationError) as excinfo:
            set_project_field(config, "default", "name", " ")
        assert excinfo.value.key == "name_empty"
        with pytest.raises(ValidationError) as excinfo:
            set_project_field(config, "default", "id", "new")
        assert excinfo.value.key == "unknown_field"

    def test_replace_projects(self, config):
        imported = (
            ProjectConfig(id="a", name="A", path="/a"),
            ProjectConfig(id="a", name="B", path="/b"),
        )
        doc = replace_projects(config, imported)
        assert [p.name for p in doc.projects] == ["A", "B"]
        assert len({p.id for p in doc.projects}) == 2
        assert doc.current_project == "a"
        assert check_integrity(doc) == []

    def test_replace_with_nothing_rejected(self, config):
        with pytest.raises(ValidationError) as excinfo:
            replace_projects(config, ())
        assert excinfo.value.key == "no_projects"


class TestGlobalSettings:
    def test_default_proxy(self, config):
        doc = set_default_proxy(config, "proxy", "8080", "user")
        assert (doc.default_proxy_host, doc.default_proxy_port, doc.default_proxy_username) == (
            "proxy",
            "8080",
            "user",
        )
        assert doc.default_proxy_password == ""


# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------


class TestIntents:
    def test_intents_delegate(self, config):
        doc = AddProject(HOME, project_id="p2").apply(config)
        doc = SwitchActiveProject("p2").apply(doc)
        assert doc.current_project == "p2"
        doc = RemoveProject("p2").apply(doc)
        assert doc.current_project == "default"

    def test_success_keys(self):
        assert ActivateModel("claude", "kimi").success_key == "switched"
        assert SwitchActiveProject("x").success_key == "project_switched"
        assert RemoveProject("x").success_key == "project_removed"
        assert ReplaceProjects(()).success_key == "projects_imported"
        assert AddCustomModel("claude").success_key == "saved"
        assert EditModelField("claude", 0, "api_key", "").success_key == "saved"

    def test_intents_are_values(self):
        assert ActivateModel("claude", "kimi") == ActivateModel("claude", "kimi")
        assert hash(AddProject(HOME)) == hash(AddProject(HOME))


def test_sequence_of_mutations_keeps_document_valid(config):
    doc = config
    doc = add_project(doc, HOME)
    doc = add_custom_model(doc, "claude")
    doc = with_api_key(doc, "claude", "Custom 2")
    doc = activate_model(doc, "claude", "Custom 2")
    doc = remove_project(doc, doc.projects[0].id)
    doc = switch_active_tool(doc, "claude")
    assert check_integrity(doc) == []
    assert doc.claude.current_model == "Custom 2"
    assert doc.current_project == doc.projects[0].id


def test_intent_base_class_is_abstract():
    with pytest.raises(TypeError):
        Intent()


def test_set_sync_path_strips_whitespace(config):
    doc = SetSyncPath("  /mnt/cloud ").apply(config)
    assert doc.sync_path == "/mnt/cloud"
