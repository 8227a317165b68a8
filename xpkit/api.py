"""Request engine for the XPKit platform.

Every resource call goes through ``Api``. It reads the bearer token from the
credential store on each call, sends the request with httpx, parses the
response into one of the platform's envelopes and, when the platform answers
401 or 403, refreshes the token once and retries the same request.

The token endpoint calls (client credentials and authorization code grants)
live here too, since they share the response parser.
"""

import io
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Mapping, TypeVar, cast

import httpx

from .errors import ApiError, AuthFlowError, TransportError, XPKitError
from .log import NullLogger, SdkLogger
from .records import AuthRecord, TokenResponse
from .storage import AUTH_KEY, CredentialStore
from .types import (
    FilterOptions,
    XPKitAcknowledgement,
    XPKitAcknowledgements,
    XPKitResource,
    XPKitResources,
    XPKitResponse,
    XPKitSummaryResponse,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_AGENT = "xpkit-python-sdk"

AUTH_ERROR_CODES = (401, 403)

# One original attempt plus one retry after a token refresh
MAX_ATTEMPTS = 2


def token_endpoint(base_url: str) -> str:
    """URL of the token endpoint for a platform base URL."""
    return f"https://auth.{base_url}/api/token/"


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_params(options: Mapping[str, Any] | None) -> list[tuple[str, str]]:
    """Turn filter options into query parameters.

    Keys whose value is an empty string (or None) are left out; every other
    value is sent as a string, with booleans spelled ``true``/``false``.
    """
    if not options:
        return []
    return [
        (key, _query_value(value))
        for key, value in options.items()
        if value is not None and value != ""
    ]


def with_query(endpoint: str, params: list[tuple[str, str]]) -> str:
    """Append ``params`` after any query string already on ``endpoint``."""
    if not params:
        return endpoint
    url = httpx.URL(endpoint)
    return str(url.copy_with(params=list(url.params.multi_items()) + params))


def _is_file(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray, tuple, Path, io.IOBase)) or hasattr(value, "read")


def build_multipart(resource: Mapping[str, Any]) -> list[tuple[str, Any]]:
    """Build httpx ``files`` entries for a multipart upload.

    Plain values become form fields. Files may be given as bytes, a file
    object, a ``pathlib.Path`` or an httpx-style ``(filename, content[,
    content_type])`` tuple.
    """
    parts: list[tuple[str, Any]] = []
    for key, value in resource.items():
        if isinstance(value, Path):
            parts.append((key, (value.name, value.read_bytes())))
        elif isinstance(value, (bytes, bytearray)):
            parts.append((key, (key, bytes(value))))
        elif _is_file(value):
            parts.append((key, value))
        else:
            parts.append((key, (None, _query_value(value))))
    return parts


def parse_api_response(response: httpx.Response) -> Any:
    """Parse a JSON API response.

    Raises:
        TransportError: If the body is not valid JSON
        ApiError: If the status is outside the 2xx range
    """
    try:
        data = response.json()
    except ValueError as e:
        raise TransportError("Could not get resources", response.status_code, str(e)) from e

    if not response.is_success:
        message = None
        if isinstance(data, dict):
            message = data.get("error")
        raise ApiError(message or "Unknown error", response.status_code, json.dumps(data))

    return data


class Api:
    """Stateless request engine bound to a credential store.

    Args:
        store: Where the access token is read from and refreshed into
        logger: SDK trace logger
        http_client: Optional shared client; if omitted a client is opened
            and closed for every request
    """

    def __init__(
        self,
        store: CredentialStore | None = None,
        logger: SdkLogger | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.store = store or CredentialStore()
        self.logger = logger or NullLogger()
        self.http_client = http_client

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request, mapping network failures to TransportError."""
        client = self.http_client or httpx.AsyncClient(timeout=None)
        should_close = self.http_client is None

        logger.debug(f"{method} {url}")
        try:
            return await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise TransportError(f"Network error calling {url}: {e}") from e
        finally:
            if should_close:
                await client.aclose()

    async def _auth_headers(
        self,
        additional_headers: Mapping[str, str] | None = None,
        content_type: str | None = "application/json",
    ) -> dict[str, str]:
        auth = await self.store.load(AUTH_KEY)
        headers = {
            "User-Agent": USER_AGENT,
            "Authorization": f"Bearer {auth.get('access_token', '')}",
        }
        if content_type:
            headers["Content-Type"] = content_type
        if additional_headers:
            headers.update(additional_headers)
        return headers

    async def _with_auth_retry(self, operation: Callable[[], Awaitable[T]], retry: bool = True) -> T:
        """Run ``operation``, refreshing the token and retrying once on 401/403.

        The retried call's failure is raised unchanged, so a credential that
        stays invalid costs exactly one refresh.
        """
        attempts = MAX_ATTEMPTS if retry else 1
        attempt = 1
        while True:
            try:
                return await operation()
            except XPKitError as e:
                if e.status_code not in AUTH_ERROR_CODES or attempt >= attempts:
                    raise
                self.logger.log(f"Received HTTP {e.status_code}, refreshing access token")
            await self.refresh_token()
            attempt += 1

    # Token endpoint

    async def _request_token(self, base_url: str, fields: dict[str, str]) -> TokenResponse:
        response = await self._send(
            "POST",
            token_endpoint(base_url),
            files=[(name, (None, value)) for name, value in fields.items()],
            headers={"User-Agent": USER_AGENT},
        )
        return TokenResponse.from_dict(parse_api_response(response))

    async def get_token(self, client_id: str, client_secret: str, base_url: str) -> TokenResponse:
        """Acquire a token with the client credentials grant."""
        return await self._request_token(
            base_url,
            {
                "grant_type": "client_credentials",
                "client_id": client_id,
                "client_secret": client_secret,
            },
        )

    async def exchange_code_for_token(
        self,
        code: str,
        client_id: str,
        redirect_uri: str,
        code_verifier: str,
        base_url: str,
    ) -> TokenResponse:
        """Exchange an SSO authorization code for a token (PKCE)."""
        return await self._request_token(
            base_url,
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": client_id,
                "redirect_uri": redirect_uri,
                "code_verifier": code_verifier,
            },
        )

    async def refresh_token(self) -> bool:
        """Re-acquire the stored token with its client credentials.

        Returns:
            True if a new token was saved, False if the stored record has no
            client credentials (e.g. an injected access token)

        Raises:
            AuthFlowError: If the token endpoint call fails
        """
        auth = await self.store.load_auth()
        if auth is None or not auth.can_refresh():
            self.logger.log("No client credentials stored, cannot refresh access token")
            return False

        try:
            token = await self.get_token(auth.client_id, auth.client_secret, auth.base_url)
        except XPKitError as e:
            raise AuthFlowError(
                f"Failed to refresh access token from XPKit. {e}", e.status_code, e.response
            ) from e

        await self.store.save_auth(
            AuthRecord.from_token_response(token, auth.base_url, auth.client_id, auth.client_secret)
        )
        self.logger.log("Saved refreshed access token")
        return True

    # Resource primitives

    async def get_resources(
        self,
        endpoint: str,
        options: FilterOptions | None = None,
        retry: bool = True,
    ) -> XPKitResources:
        """List resources, passing filter options as the query string."""
        params = build_query_params(options)
        if params:
            self.logger.log(f"Filter options: {httpx.QueryParams(params)}")

        async def operation() -> XPKitResources:
            response = await self._send(
                "GET", with_query(endpoint, params), headers=await self._auth_headers()
            )
            return cast(XPKitResources, parse_api_response(response))

        return await self._with_auth_retry(operation, retry)

    async def _get_resource(
        self,
        endpoint: str,
        method: str,
        resource: Mapping[str, Any] | Iterable[Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
        retry: bool = True,
    ) -> Any:
        async def operation() -> Any:
            kwargs: dict[str, Any] = {"headers": await self._auth_headers(additional_headers)}
            if resource:
                kwargs["json"] = resource
            response = await self._send(method, endpoint, **kwargs)
            return parse_api_response(response)

        return await self._with_auth_retry(operation, retry)

    async def call_resource(
        self,
        endpoint: str,
        method: str,
        resource: Mapping[str, Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
        retry: bool = True,
    ) -> XPKitResource:
        """Read, create, replace or update a single resource."""
        return cast(
            XPKitResource,
            await self._get_resource(endpoint, method, resource, additional_headers, retry),
        )

    async def call_summary(
        self,
        endpoint: str,
        method: str,
        resource: Mapping[str, Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
        retry: bool = True,
    ) -> XPKitSummaryResponse:
        """Call an endpoint that answers with a ``{name: count}`` summary."""
        return cast(
            XPKitSummaryResponse,
            await self._get_resource(endpoint, method, resource, additional_headers, retry),
        )

    async def call_async_request(
        self,
        endpoint: str,
        method: str,
        resource: Mapping[str, Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
        retry: bool = True,
    ) -> XPKitAcknowledgement:
        """Trigger an asynchronous job and return its acknowledgement."""
        return cast(
            XPKitAcknowledgement,
            await self._get_resource(endpoint, method, resource, additional_headers, retry),
        )

    async def call_async_requests(
        self,
        endpoint: str,
        method: str,
        resource: Mapping[str, Any] | Iterable[Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
        retry: bool = True,
    ) -> XPKitAcknowledgements:
        """Trigger several asynchronous jobs and return their acknowledgements."""
        return cast(
            XPKitAcknowledgements,
            await self._get_resource(endpoint, method, resource, additional_headers, retry),
        )

    async def delete_resource(
        self,
        endpoint: str,
        resource: Mapping[str, Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
        retry: bool = True,
        success_codes: Iterable[int] = (204,),
    ) -> bool:
        """Delete a resource.

        The response body is never parsed. A status in ``success_codes``
        means the resource is gone; some endpoints answer 200 rather than
        204, and their accessors pass both.

        Returns:
            True when the delete succeeded

        Raises:
            ApiError: For any other status, including a 401/403 that
                persists after the token refresh
        """
        accepted = frozenset(success_codes)

        async def operation() -> bool:
            kwargs: dict[str, Any] = {"headers": await self._auth_headers(additional_headers)}
            if resource:
                kwargs["json"] = resource
            response = await self._send("DELETE", endpoint, **kwargs)

            if response.status_code in accepted:
                return True
            if response.status_code in AUTH_ERROR_CODES:
                raise ApiError("Authentication error", response.status_code, response.text)
            raise ApiError("Unexpected API response", response.status_code, response.text)

        return await self._with_auth_retry(operation, retry)

    async def download_resource(
        self,
        endpoint: str,
        method: str,
        body: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
        additional_headers: Mapping[str, str] | None = None,
        file_type: str = "text/text",
        retry: bool = True,
    ) -> str | bytes:
        """Download a file.

        Args:
            file_type: Declared type of the file; types starting with
                ``text`` are returned as ``str``, anything else as ``bytes``

        Raises:
            ApiError: If the status is outside the 2xx range
        """
        params = build_query_params(options)
        if params:
            self.logger.log(f"Options: {httpx.QueryParams(params)}")

        async def operation() -> str | bytes:
            kwargs: dict[str, Any] = {
                "headers": await self._auth_headers(additional_headers, content_type=None),
            }
            if body:
                kwargs["json"] = body
            response = await self._send(method, with_query(endpoint, params), **kwargs)

            data: str | bytes = response.text if file_type.startswith("text") else response.content

            if not response.is_success:
                text = data if isinstance(data, str) else data.decode("utf-8", errors="replace")
                raise ApiError("Download error", response.status_code, text)
            return data

        return await self._with_auth_retry(operation, retry)

    async def upload_multipart(
        self,
        endpoint: str,
        resource: Mapping[str, Any],
        retry: bool = True,
    ) -> XPKitResponse:
        """POST a multipart form mixing plain fields and file attachments."""
        parts = build_multipart(resource)

        async def operation() -> XPKitResponse:
            for _, part in parts:
                fileobj = part[1] if isinstance(part, tuple) else part
                if hasattr(fileobj, "seek"):
                    fileobj.seek(0)
            response = await self._send(
                "POST",
                endpoint,
                files=parts,
                headers=await self._auth_headers(content_type=None),
            )
            return cast(XPKitResponse, parse_api_response(response))

        return await self._with_auth_retry(operation, retry)
