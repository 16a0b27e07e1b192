"""Unit tests for aicoder_launcher.sync."""

import keyring
import pytest
from keyring.errors import KeyringError

from aicoder_launcher import sync
from aicoder_launcher.coordinator import SyncCoordinator
from aicoder_launcher.mutations import add_project, set_project_field
from aicoder_launcher.sync import (
    SYNC_FILENAME,
    SyncManager,
    decrypt_data,
    encrypt_data,
    export_to_sync,
    get_sync_password,
    import_from_sync,
    set_sync_password,
)


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    monkeypatch.setattr(sync, "KDF_ITERATIONS", 1000)


class TestCrypto:
    def test_encrypt_decrypt(self):
        blob = encrypt_data({"a": [1, 2], "b": "ü"}, "secret")
        assert decrypt_data(blob, "secret") == {"a": [1, 2], "b": "ü"}

    def test_salt_makes_output_unique(self):
        assert encrypt_data({"a": 1}, "pw") != encrypt_data({"a": 1}, "pw")

    def test_wrong_password(self):
        assert decrypt_data(encrypt_data({"a": 1}, "right"), "wrong") is None

    def test_truncated_blob(self):
        assert decrypt_data(b"short", "pw") is None

    def test_tampered_blob(self):
        blob = bytearray(encrypt_data({"a": 1}, "pw"))
        blob[-1] ^= 0x01
        assert decrypt_data(bytes(blob), "pw") is None


class TestSyncManager:
    def test_round_trip_without_proxy_password(self, tmp_path, config):
        doc = add_project(config, "/work", project_id="p2")
        doc = set_project_field(doc, "p2", "proxy_password", "hunter2")
        manager = SyncManager(tmp_path / "cloud", "pw")

        assert manager.export_projects(doc.projects)
        assert (tmp_path / "cloud" / SYNC_FILENAME).is_file()

        projects = manager.import_projects()
        assert [p.id for p in projects] == ["default", "p2"]
        assert projects[1].path == "/work"
        assert projects[1].proxy_password == ""

    def test_import_wrong_password(self, tmp_path, config):
        SyncManager(tmp_path, "pw").export_projects(config.projects)
        assert SyncManager(tmp_path, "other").import_projects() is None

    def test_import_without_file(self, tmp_path):
        assert SyncManager(tmp_path, "pw").import_projects() is None

    def test_not_configured_without_password(self, tmp_path, config):
        assert not SyncManager(tmp_path, "").export_projects(config.projects)


class TestKeyring:
    def test_password_round_trip(self, monkeypatch):
        stored = {}
        monkeypatch.setattr(keyring, "set_password", lambda s, u, p: stored.__setitem__((s, u), p))
        monkeypatch.setattr(keyring, "get_password", lambda s, u: stored.get((s, u)))
        assert set_sync_password("pw")
        assert get_sync_password() == "pw"

    def test_keyring_unavailable(self, monkeypatch):
        def broken(*args):
            raise KeyringError("no backend")

        monkeypatch.setattr(keyring, "set_password", broken)
        monkeypatch.setattr(keyring, "get_password", broken)
        assert not set_sync_password("pw")
        assert get_sync_password() is None


class TestImportExport:
    def test_export_then_import_replaces_projects(self, qapp, tmp_path, memory_store, config):
        source = add_project(config, "/elsewhere", project_id="remote")
        assert export_to_sync(source, tmp_path, password="pw") == (True, "2 projects exported")

        coordinator = SyncCoordinator(memory_store)
        ok, message = import_from_sync(coordinator, tmp_path, password="pw")

        assert ok, message
        assert [p.id for p in coordinator.config.projects] == ["default", "remote"]
        assert memory_store.saved[-1] == coordinator.config
        assert coordinator.status == "Projects imported"

    def test_import_missing_file(self, qapp, tmp_path, memory_store):
        coordinator = SyncCoordinator(memory_store)
        assert import_from_sync(coordinator, tmp_path, password="pw") == (False, "No sync file found")

    def test_no_password(self, monkeypatch, tmp_path, config):
        monkeypatch.setattr(sync, "get_sync_password", lambda: None)
        ok, _ = export_to_sync(config, tmp_path)
        assert not ok
