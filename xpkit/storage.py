"""Credential storage for the XPKit SDK.

The store persists two small JSON records: the cached access token
(``xpkit.auth``) and the pending SSO session (``xpkit.sso``). Where they are
kept depends on the backend picked when the store is created:

- MemoryBackend: in-process key-value map, for browser runtimes and tests
- FileBackend: one ``<key>.json`` file per key, with file locking
- EncryptedFileBackend: same files, Fernet-encrypted with a key held in
  the OS keyring
"""

import asyncio
import base64
import hashlib
import json
import logging
import os
import stat
import sys
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Generator

import keyring
from cryptography.fernet import Fernet, InvalidToken
from keyring.errors import KeyringError

from .errors import CredentialStoreError
from .records import AuthRecord, SsoSessionRecord

logger = logging.getLogger(__name__)

AUTH_KEY = "xpkit.auth"
SSO_KEY = "xpkit.sso"

ENV_STORAGE = "XPKIT_STORAGE"
ENV_STORE_DIR = "XPKIT_STORE_DIR"

KEYRING_SERVICE = "xpkit-sdk"
KEYRING_USERNAME = "credential-encryption-key"


if sys.platform != "win32":
    import fcntl

    @contextmanager
    def _file_lock(filepath: Path, exclusive: bool = True) -> Generator[None, None, None]:
        """Hold an fcntl lock on ``<file>.lock`` for the duration of the block."""
        lock_path = filepath.with_suffix(filepath.suffix + ".lock")
        lock_path.touch(exist_ok=True)

        with open(lock_path, "r") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
else:
    import msvcrt

    @contextmanager
    def _file_lock(filepath: Path, exclusive: bool = True) -> Generator[None, None, None]:
        """Hold an msvcrt lock on ``<file>.lock`` (always exclusive on Windows)."""
        lock_path = filepath.with_suffix(filepath.suffix + ".lock")
        lock_path.touch(exist_ok=True)

        with open(lock_path, "r+") as lock_file:
            msvcrt.locking(lock_file.fileno(), msvcrt.LK_LOCK, 1)
            try:
                yield
            finally:
                msvcrt.locking(lock_file.fileno(), msvcrt.LK_UNLCK, 1)


class StorageBackend(ABC):
    """A medium that maps keys to serialized JSON text."""

    @abstractmethod
    def save(self, key: str, data: str) -> None: ...

    @abstractmethod
    def load(self, key: str) -> str | None:
        """Return the stored text, or None if the key is absent."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete the key. Deleting an absent key is not an error."""


class MemoryBackend(StorageBackend):
    """Ephemeral key-value storage that lives as long as the process."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def save(self, key: str, data: str) -> None:
        self._items[key] = data

    def load(self, key: str) -> str | None:
        return self._items.get(key)

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


class FileBackend(StorageBackend):
    """Stores each key as ``<directory>/<key>.json``.

    Reads take a shared lock and writes an exclusive one, so several
    processes sharing a directory never see a half-written record.
    """

    def __init__(self, directory: Path | None = None):
        self.directory = directory or Path(".")

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _encode(self, data: str) -> str:
        return data

    def _decode(self, data: str, key: str) -> str:
        return data

    def save(self, key: str, data: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        filepath = self.path_for(key)

        with _file_lock(filepath, exclusive=True):
            filepath.write_text(self._encode(data))
            try:
                filepath.chmod(stat.S_IRUSR | stat.S_IWUSR)
            except OSError as e:
                logger.warning(f"Could not set file permissions on {filepath}: {e}")

    def load(self, key: str) -> str | None:
        filepath = self.path_for(key)
        if not filepath.exists():
            return None

        with _file_lock(filepath, exclusive=False):
            try:
                raw = filepath.read_text()
            except FileNotFoundError:
                return None

        if not raw:
            return raw
        return self._decode(raw, key)

    def remove(self, key: str) -> None:
        filepath = self.path_for(key)
        if not filepath.exists():
            return

        # The lock file stays, it is shared by every process using this key
        with _file_lock(filepath, exclusive=True):
            try:
                filepath.unlink()
            except FileNotFoundError:
                pass


def _derive_fallback_key() -> bytes:
    """Derive a Fernet key from machine-specific data when no keyring exists."""
    components = []

    machine_id_path = Path("/etc/machine-id")
    if machine_id_path.exists():
        components.append(machine_id_path.read_text().strip())

    components.append(str(Path.home()))
    components.append(os.environ.get("USER", os.environ.get("USERNAME", "xpkit")))

    key_bytes = hashlib.sha256(":".join(components).encode()).digest()
    return base64.urlsafe_b64encode(key_bytes)


class EncryptedFileBackend(FileBackend):
    """FileBackend whose file contents are encrypted with Fernet.

    The encryption key is generated once and kept in the OS keyring. If no
    keyring backend is usable, a machine-derived key is used instead.
    """

    def __init__(self, directory: Path | None = None):
        super().__init__(directory)
        self.using_keyring = False
        self._cipher = self._init_cipher()

    def _init_cipher(self) -> Fernet:
        try:
            key = keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME)
            if key is None:
                key = Fernet.generate_key().decode("ascii")
                keyring.set_password(KEYRING_SERVICE, KEYRING_USERNAME, key)
                logger.debug("Generated new credential encryption key in keyring")
            self.using_keyring = True
            return Fernet(key.encode("ascii"))
        except (KeyringError, RuntimeError, OSError) as e:
            logger.warning(
                f"Keyring not available ({type(e).__name__}: {e}). "
                f"Falling back to a machine-derived encryption key."
            )
            return Fernet(_derive_fallback_key())

    def _encode(self, data: str) -> str:
        return self._cipher.encrypt(data.encode("utf-8")).decode("ascii")

    def _decode(self, data: str, key: str) -> str:
        try:
            return self._cipher.decrypt(data.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            raise CredentialStoreError(
                f"Cannot decrypt {key}. The encryption key may have changed; "
                f"run 'xpkit logout' and authenticate again."
            ) from e


def detect_backend() -> StorageBackend:
    """Pick a storage backend for the current environment.

    ``XPKIT_STORAGE`` (``memory``, ``file`` or ``encrypted``) overrides the
    detection. Otherwise browser runtimes get a MemoryBackend and everything
    else a FileBackend in ``XPKIT_STORE_DIR`` (default: working directory).

    Raises:
        CredentialStoreError: If XPKIT_STORAGE names an unknown backend
    """
    directory = Path(os.environ.get(ENV_STORE_DIR, "."))
    choice = os.environ.get(ENV_STORAGE, "").strip().lower()

    if not choice:
        choice = "memory" if sys.platform == "emscripten" else "file"

    if choice == "memory":
        return MemoryBackend()
    if choice == "file":
        return FileBackend(directory)
    if choice == "encrypted":
        return EncryptedFileBackend(directory)

    raise CredentialStoreError(
        f"Unknown {ENV_STORAGE} value {choice!r}; expected memory, file or encrypted"
    )


class CredentialStore:
    """Async key-value store for authentication records.

    The backend is chosen once, when the store is created: either the one
    passed in, or whatever ``detect`` returns.
    """

    def __init__(
        self,
        backend: StorageBackend | None = None,
        detect: Callable[[], StorageBackend] = detect_backend,
    ):
        self.backend = backend if backend is not None else detect()

    async def save(self, key: str, record: dict[str, Any]) -> None:
        data = json.dumps(record)
        try:
            await asyncio.to_thread(self.backend.save, key, data)
        except OSError as e:
            raise CredentialStoreError(f"Could not save {key}: {e}") from e

    async def load(self, key: str) -> dict[str, Any]:
        """Load a record, returning an empty dict when there is none.

        Raises:
            CredentialStoreError: If the record is unreadable or corrupted
        """
        try:
            data = await asyncio.to_thread(self.backend.load, key)
        except OSError as e:
            raise CredentialStoreError(f"Could not load {key}: {e}") from e

        if not data:
            return {}

        try:
            record = json.loads(data)
        except json.JSONDecodeError as e:
            raise CredentialStoreError(f"Stored record {key} is corrupted") from e

        if not isinstance(record, dict):
            raise CredentialStoreError(f"Stored record {key} is not a JSON object")
        return record

    async def remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.backend.remove, key)
        except OSError as e:
            raise CredentialStoreError(f"Could not remove {key}: {e}") from e

    # Typed helpers

    async def load_auth(self) -> AuthRecord | None:
        data = await self.load(AUTH_KEY)
        if not data.get("access_token") or data.get("expires") is None:
            return None
        try:
            return AuthRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Invalid auth record in storage: {e}")
            return None

    async def save_auth(self, record: AuthRecord) -> None:
        await self.save(AUTH_KEY, record.to_dict())

    async def remove_auth(self) -> None:
        await self.remove(AUTH_KEY)

    async def load_sso(self) -> SsoSessionRecord | None:
        data = await self.load(SSO_KEY)
        if not data:
            return None
        return SsoSessionRecord.from_dict(data)

    async def save_sso(self, record: SsoSessionRecord) -> None:
        await self.save(SSO_KEY, record.to_dict())

    async def remove_sso(self) -> None:
        await self.remove(SSO_KEY)
