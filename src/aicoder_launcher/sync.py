"""Encrypted project sync for AICoder Launcher.

The project list can be exported to a password-protected file in a shared
folder (cloud drive, network share) and imported on another machine. Model
profiles and API keys are never exported. The sync password lives in the OS
keyring.

File format: salt (16) + nonce (12) + AES-GCM ciphertext of a JSON object
``{"version": 1, "projects": [...]}``.
"""

import json
import secrets
from pathlib import Path

import keyring
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from keyring.errors import KeyringError

from .i18n import tr
from .log import get_logger
from .mutations import ReplaceProjects
from .schema import ProjectConfig

logger = get_logger(__name__)

SYNC_FILENAME = "aicoder_projects.enc"
SYNC_VERSION = 1
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
KDF_ITERATIONS = 100000

KEYRING_SERVICE = "aicoder-launcher"
KEYRING_USER = "sync"

# Machine-local secrets stay out of the sync file
_LOCAL_ONLY_FIELDS = ("proxy_password",)


def derive_key(password: str, salt: bytes) -> bytes:
    """Derives a 256-bit AES key from the password (PBKDF2-HMAC-SHA256)."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def encrypt_data(data: dict, password: str) -> bytes:
    """Encrypts a JSON-serializable dict with AES-GCM."""
    salt = secrets.token_bytes(SALT_SIZE)
    nonce = secrets.token_bytes(NONCE_SIZE)
    plaintext = json.dumps(data, ensure_ascii=False).encode("utf-8")
    ciphertext = AESGCM(derive_key(password, salt)).encrypt(nonce, plaintext, None)
    return salt + nonce + ciphertext


def decrypt_data(encrypted: bytes, password: str) -> dict | None:
    """Decrypts data written by ``encrypt_data``.

    Returns None for a wrong password or a damaged file.
    """
    if len(encrypted) < SALT_SIZE + NONCE_SIZE + TAG_SIZE:
        return None
    salt = encrypted[:SALT_SIZE]
    nonce = encrypted[SALT_SIZE:SALT_SIZE + NONCE_SIZE]
    ciphertext = encrypted[SALT_SIZE + NONCE_SIZE:]
    try:
        plaintext = AESGCM(derive_key(password, salt)).decrypt(nonce, ciphertext, None)
        data = json.loads(plaintext.decode("utf-8"))
    except InvalidTag:
        return None
    except ValueError:
        # JSONDecodeError and UnicodeDecodeError
        return None
    return data if isinstance(data, dict) else None


def get_sync_password() -> str | None:
    """Gets the sync password from the OS keyring."""
    try:
        return keyring.get_password(KEYRING_SERVICE, KEYRING_USER)
    except KeyringError as e:
        logger.warning("Keyring not available: %s", e)
        return None


def set_sync_password(password: str) -> bool:
    """Saves the sync password in the OS keyring."""
    try:
        keyring.set_password(KEYRING_SERVICE, KEYRING_USER, password)
    except KeyringError as e:
        logger.error("Keyring not available: %s", e)
        return False
    return True


def _export_project(project: ProjectConfig) -> dict:
    data = project.to_dict()
    for name in _LOCAL_ONLY_FIELDS:
        data.pop(name, None)
    return data


class SyncManager:
    """Reads and writes the encrypted sync file in a folder."""

    def __init__(self, sync_path, password: str):
        self.sync_path = Path(sync_path)
        self.password = password
        self.sync_file = self.sync_path / SYNC_FILENAME

    def is_configured(self) -> bool:
        return bool(str(self.sync_path)) and bool(self.password)

    def sync_file_exists(self) -> bool:
        return self.sync_file.is_file()

    def export_projects(self, projects) -> bool:
        """Writes the projects to the sync file."""
        if not self.is_configured():
            return False
        payload = {"version": SYNC_VERSION, "projects": [_export_project(p) for p in projects]}
        try:
            self.sync_path.mkdir(parents=True, exist_ok=True)
            self.sync_file.write_bytes(encrypt_data(payload, self.password))
        except OSError as e:
            logger.error("Sync export failed: %s", e)
            return False
        return True

    def import_projects(self) -> list[ProjectConfig] | None:
        """Reads the projects from the sync file (None on any failure)."""
        if not self.is_configured() or not self.sync_file_exists():
            return None
        try:
            encrypted = self.sync_file.read_bytes()
        except OSError as e:
            logger.error("Sync import failed: %s", e)
            return None
        data = decrypt_data(encrypted, self.password)
        if data is None:
            return None
        projects = data.get("projects")
        if not isinstance(projects, list):
            logger.error("Sync file has no project list")
            return None
        return [ProjectConfig.from_dict(p) for p in projects]


def export_to_sync(config, sync_path, password: str | None = None) -> tuple[bool, str]:
    """Exports the document's projects to the sync folder."""
    if not sync_path:
        return False, tr("sync_not_configured")
    password = password or get_sync_password()
    if not password:
        return False, tr("sync_no_password")
    manager = SyncManager(sync_path, password)
    if manager.export_projects(config.projects):
        return True, tr("projects_exported", count=len(config.projects))
    return False, tr("sync_export_failed")


def import_from_sync(coordinator, sync_path, password: str | None = None) -> tuple[bool, str]:
    """Imports projects from the sync folder as a local commit."""
    if not sync_path:
        return False, tr("sync_not_configured")
    password = password or get_sync_password()
    if not password:
        return False, tr("sync_no_password")
    manager = SyncManager(sync_path, password)
    if not manager.sync_file_exists():
        return False, tr("sync_no_file")
    projects = manager.import_projects()
    if projects is None:
        return False, tr("sync_wrong_password")
    if not coordinator.apply(ReplaceProjects(tuple(projects))):
        return False, coordinator.status or tr("no_projects")
    return True, tr("projects_imported")
