"""Shared fixtures and utilities for XPKit SDK tests."""

import json
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest

from xpkit.config import AuthOptions, ClientOptions
from xpkit.records import AuthRecord, now_ms
from xpkit.storage import AUTH_KEY, CredentialStore, MemoryBackend

BASE_URL = "xpkit.test"
TOKEN_URL = f"https://auth.{BASE_URL}/api/token/"

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingBackend(MemoryBackend):
    """MemoryBackend that remembers which keys were removed."""

    def __init__(self) -> None:
        super().__init__()
        self.removed: list[str] = []

    def remove(self, key: str) -> None:
        self.removed.append(key)
        super().remove(key)


def token_json(access_token: str = "new-token", expires_in: int = 36000) -> dict[str, Any]:
    """Body of a successful token endpoint response."""
    return {
        "access_token": access_token,
        "token_type": "Bearer",
        "scope": "",
        "expires_in": expires_in,
    }


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def options() -> ClientOptions:
    """Client options using client credentials."""
    return ClientOptions(
        base_url=BASE_URL,
        auth=AuthOptions(client_id="client-id", client_secret="client-secret"),
    )


@pytest.fixture
def valid_auth() -> AuthRecord:
    """An auth record that expires an hour from now."""
    return AuthRecord(
        access_token="cached-token",
        expires=now_ms() + 3600 * 1000,
        base_url=BASE_URL,
        client_id="client-id",
        client_secret="client-secret",
    )


@pytest.fixture
def expired_auth() -> AuthRecord:
    """An auth record that expired a minute ago."""
    return AuthRecord(
        access_token="old-token",
        expires=now_ms() - 60 * 1000,
        base_url=BASE_URL,
        client_id="client-id",
        client_secret="client-secret",
    )


# ============================================================================
# Storage Fixtures
# ============================================================================


@pytest.fixture
def backend() -> RecordingBackend:
    """In-memory backend that records removals."""
    return RecordingBackend()


@pytest.fixture
def store(backend: RecordingBackend) -> CredentialStore:
    """Credential store backed by memory."""
    return CredentialStore(backend)


@pytest.fixture
def authed_store(backend: RecordingBackend, valid_auth: AuthRecord) -> CredentialStore:
    """Credential store already holding a valid token."""
    backend.save(AUTH_KEY, json.dumps(valid_auth.to_dict()))
    return CredentialStore(backend)


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
def make_http_client() -> Callable[[Handler], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered by ``handler``."""

    def _make(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def unreachable_client() -> httpx.AsyncClient:
    """An AsyncClient that fails the test if any request is sent."""

    def handler(request: httpx.Request) -> httpx.Response:
        pytest.fail(f"Unexpected request to {request.url}")

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def clean_env(tmp_path: Path) -> Generator[None, None, None]:
    """Clear XPKIT_* variables and run from an empty directory."""
    old_env = os.environ.copy()
    old_cwd = os.getcwd()
    for key in list(os.environ.keys()):
        if key.startswith("XPKIT_"):
            del os.environ[key]
    os.chdir(tmp_path)
    yield
    os.chdir(old_cwd)
    os.environ.clear()
    os.environ.update(old_env)
