"""Unit tests for aicoder_launcher.watcher."""

import pytest

from aicoder_launcher.coordinator import SyncCoordinator
from aicoder_launcher.mutations import AddProject, switch_active_tool
from aicoder_launcher.watcher import ConfigWatcher


@pytest.fixture
def coordinator(qapp, store):
    return SyncCoordinator(store)


@pytest.fixture
def watcher(coordinator, store):
    w = ConfigWatcher(coordinator, store)
    yield w
    w.stop()


def test_start_watches_directory_and_file(watcher, store, coordinator):
    store.save(coordinator.config)
    assert watcher.start()
    assert str(store.path) in watcher._watcher.files()
    assert str(store.path.parent) in watcher._watcher.directories()


def test_start_without_file_watches_directory(watcher, store):
    assert watcher.start()
    assert str(store.path.parent) in watcher._watcher.directories()


def test_reload_picks_up_external_save(watcher, store, coordinator):
    external = switch_active_tool(coordinator.config, "codex")
    store.save(external)

    assert watcher.reload()
    assert coordinator.config == external


def test_own_save_is_ignored(watcher, coordinator):
    assert coordinator.apply(AddProject("/work", project_id="p2"))
    assert not watcher.reload()


def test_missing_file_is_ignored(watcher):
    assert not watcher.reload()


def test_unreadable_file_is_skipped_without_backup(watcher, store, coordinator, tmp_path):
    before = coordinator.config
    store.path.write_text('{"claude": ', encoding="utf-8")

    assert not watcher.reload()
    assert coordinator.config is before
    assert not list(tmp_path.glob("*.bak"))


def test_file_change_slot_reloads(watcher, store, coordinator):
    watcher.start()
    external = switch_active_tool(coordinator.config, "gemini")
    store.save(external)

    watcher._on_file_changed(str(store.path))

    assert coordinator.config == external
    assert str(store.path) in watcher._watcher.files()
