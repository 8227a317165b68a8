"""Tests for client setup."""

import logging
from collections.abc import Callable

import httpx
import pytest

from conftest import BASE_URL, TOKEN_URL, Handler, RecordingBackend, token_json
from xpkit.client import XPKitClient, setup
from xpkit.config import AuthOptions, ClientOptions
from xpkit.errors import AuthFlowError
from xpkit.log import ConsoleLogger, NullLogger
from xpkit.records import AuthRecord, now_ms
from xpkit.storage import AUTH_KEY, CredentialStore

MakeClient = Callable[[Handler], httpx.AsyncClient]


def counting_token_client(make_http_client: MakeClient, calls: list[str]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(200, json=token_json("new-token"))

    return make_http_client(handler)


class TestSetup:
    """Tests for the setup state machine."""

    @pytest.mark.asyncio
    async def test_no_session_acquires(
        self,
        options: ClientOptions,
        backend: RecordingBackend,
        store: CredentialStore,
        make_http_client: MakeClient,
    ) -> None:
        calls: list[str] = []
        client = await setup(
            options, store=store, http_client=counting_token_client(make_http_client, calls)
        )

        assert isinstance(client, XPKitClient)
        assert calls == [TOKEN_URL]
        auth = await store.load_auth()
        assert auth is not None
        assert auth.access_token == "new-token"
        assert backend.removed == []

    @pytest.mark.asyncio
    async def test_expired_token_is_replaced(
        self,
        options: ClientOptions,
        backend: RecordingBackend,
        store: CredentialStore,
        expired_auth: AuthRecord,
        make_http_client: MakeClient,
    ) -> None:
        """Test that an expired record is deleted and a new token acquired."""
        await store.save_auth(expired_auth)
        calls: list[str] = []

        await setup(options, store=store, http_client=counting_token_client(make_http_client, calls))

        assert backend.removed == [AUTH_KEY]
        assert calls == [TOKEN_URL]
        auth = await store.load_auth()
        assert auth is not None
        assert auth.access_token == "new-token"
        assert not auth.is_expired()

    @pytest.mark.asyncio
    async def test_valid_token_is_kept(
        self,
        options: ClientOptions,
        backend: RecordingBackend,
        authed_store: CredentialStore,
        valid_auth: AuthRecord,
        unreachable_client: httpx.AsyncClient,
    ) -> None:
        """Test that a valid cached token causes no deletion and no request."""
        await setup(options, store=authed_store, http_client=unreachable_client)

        assert backend.removed == []
        assert await authed_store.load_auth() == valid_auth

    @pytest.mark.asyncio
    async def test_missing_expiry_acquires(
        self,
        options: ClientOptions,
        store: CredentialStore,
        make_http_client: MakeClient,
    ) -> None:
        await store.save(AUTH_KEY, {"access_token": "no-expiry"})
        calls: list[str] = []

        await setup(options, store=store, http_client=counting_token_client(make_http_client, calls))

        assert calls == [TOKEN_URL]

    @pytest.mark.asyncio
    async def test_injected_access_token(
        self,
        backend: RecordingBackend,
        store: CredentialStore,
        unreachable_client: httpx.AsyncClient,
    ) -> None:
        """Test that a supplied token is stored without credentials or requests."""
        options = ClientOptions(
            base_url=BASE_URL,
            auth=AuthOptions(client_id="ignored", client_secret="ignored", access_token="external"),
        )

        await setup(options, store=store, http_client=unreachable_client)

        auth = await store.load_auth()
        assert auth is not None
        assert auth.access_token == "external"
        assert auth.client_id == ""
        assert auth.client_secret == ""
        assert auth.base_url == BASE_URL
        assert auth.expires > now_ms()

    @pytest.mark.asyncio
    async def test_injected_token_replaces_cached(
        self,
        authed_store: CredentialStore,
        unreachable_client: httpx.AsyncClient,
    ) -> None:
        options = ClientOptions(base_url=BASE_URL, auth=AuthOptions(access_token="external"))

        await setup(options, store=authed_store, http_client=unreachable_client)

        auth = await authed_store.load_auth()
        assert auth is not None
        assert auth.access_token == "external"

    @pytest.mark.asyncio
    async def test_flush(
        self,
        options: ClientOptions,
        backend: RecordingBackend,
        authed_store: CredentialStore,
        make_http_client: MakeClient,
    ) -> None:
        """Test that flush discards a still-valid token and acquires a new one."""
        calls: list[str] = []

        await setup(
            options,
            flush=True,
            store=authed_store,
            http_client=counting_token_client(make_http_client, calls),
        )

        assert backend.removed == [AUTH_KEY]
        assert calls == [TOKEN_URL]
        auth = await authed_store.load_auth()
        assert auth is not None
        assert auth.access_token == "new-token"

    @pytest.mark.asyncio
    async def test_acquisition_failure(
        self,
        options: ClientOptions,
        store: CredentialStore,
        make_http_client: MakeClient,
    ) -> None:
        http_client = make_http_client(
            lambda request: httpx.Response(401, json={"error": "invalid_client"})
        )

        with pytest.raises(AuthFlowError) as exc_info:
            await setup(options, store=store, http_client=http_client)

        assert exc_info.value.status_code == 401
        assert await store.load_auth() is None


class TestSetupLogging:
    """Tests for the logger selection in setup."""

    @pytest.mark.asyncio
    async def test_disabled_by_default(
        self,
        options: ClientOptions,
        authed_store: CredentialStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO, logger="xpkit"):
            client = await setup(options, store=authed_store)

        assert isinstance(client.logger, NullLogger)
        assert "[XPKIT]" not in caplog.text

    @pytest.mark.asyncio
    async def test_enabled(
        self,
        authed_store: CredentialStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        options = ClientOptions(
            base_url=BASE_URL,
            auth=AuthOptions(client_id="client-id", client_secret="client-secret"),
            logging=True,
        )

        with caplog.at_level(logging.INFO, logger="xpkit"):
            client = await setup(options, store=authed_store)

        assert isinstance(client.logger, ConsoleLogger)
        assert "[XPKIT]: Access token is still valid" in caplog.text

    @pytest.mark.asyncio
    async def test_injected_logger(
        self, options: ClientOptions, authed_store: CredentialStore
    ) -> None:
        messages: list[str] = []

        class ListLogger:
            def log(self, message: str) -> None:
                messages.append(message)

        await setup(options, store=authed_store, logger=ListLogger())

        assert messages == ["Access token is still valid"]
