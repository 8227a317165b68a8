"""Client handle and session setup."""

from dataclasses import dataclass, field

import httpx

from .api import Api
from .auth import set_access_token
from .config import ClientOptions
from .log import NullLogger, SdkLogger, get_logger
from .records import AuthRecord, compute_expiry
from .storage import CredentialStore


@dataclass(frozen=True)
class XPKitClient:
    """Handle passed to resource accessors.

    Holds the caller's options and the capabilities the accessors need; the
    access token itself stays in the credential store.
    """

    options: ClientOptions
    store: CredentialStore = field(default_factory=CredentialStore)
    logger: SdkLogger = field(default_factory=NullLogger)
    http_client: httpx.AsyncClient | None = None

    def api(self) -> Api:
        """Create a request engine bound to this client's store and logger."""
        return Api(self.store, self.logger, self.http_client)


async def setup(
    options: ClientOptions,
    flush: bool = False,
    *,
    store: CredentialStore | None = None,
    logger: SdkLogger | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> XPKitClient:
    """Log in to XPKit and create a client.

    If ``options.auth.access_token`` is set it is stored as-is and the client
    credentials are ignored. Otherwise a cached token is reused while it is
    still valid, and a new one is requested when it is missing or expired.

    Args:
        options: Authentication and logging options
        flush: Discard any cached token first

    Returns:
        The client handle

    Raises:
        AuthFlowError: If a token had to be requested and the request failed
    """
    client = XPKitClient(
        options=options,
        store=store or CredentialStore(),
        logger=logger or get_logger(options.logging),
        http_client=http_client,
    )
    log = client.logger

    if flush:
        log.log("Clearing auth data")
        await client.store.remove_auth()

    if options.auth.access_token:
        log.log("Saving provided access token. Ignoring client_id and client_secret")
        await client.store.save_auth(
            AuthRecord(
                access_token=options.auth.access_token,
                expires=compute_expiry(),
                base_url=options.base_url,
                client_id="",
                client_secret="",
            )
        )
        return client

    auth = await client.store.load_auth()
    if auth is None:
        log.log("Requesting access token")
        await set_access_token(client)
    elif auth.is_expired():
        log.log("Refreshing expired access token")
        await client.store.remove_auth()
        await set_access_token(client)
    else:
        log.log("Access token is still valid")

    return client
