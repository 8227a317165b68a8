"""Token acquisition and the SSO login flow.

The SSO flow runs in two steps across a browser redirect:

1. ``generate_login_urls`` creates a PKCE pair and a state value, stores
   them as the pending SSO session and returns one authorization URL per
   identity provider.
2. After the user logs in, the platform redirects back with ``code`` and
   ``state``. ``exchange_code_for_token`` checks the state against the
   stored session and trades the code for an access token.
"""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING, Iterable
from urllib.parse import urlencode

from .api import Api
from .config import ClientOptions
from .errors import AuthFlowError, ValidationError, XPKitError
from .log import SdkLogger, get_logger
from .pkce import CHALLENGE_METHOD, new_login_challenge
from .records import AuthRecord, TokenResponse
from .resources.auth import Auth
from .storage import CredentialStore

if TYPE_CHECKING:
    from .client import XPKitClient

SSO_PROVIDERS = ("apple", "facebook", "google", "linkedin", "microsoft", "xpkit")

INVALID_STATE_OR_CODE = "Invalid state or code"


def authorize_endpoint(base_url: str) -> str:
    return f"https://auth.{base_url}/authorize/"


async def set_access_token(client: XPKitClient) -> TokenResponse:
    """Acquire a token with the client's credentials and store it.

    Raises:
        AuthFlowError: If the token cannot be retrieved from XPKit
    """
    options = client.options
    try:
        token = await Auth(client).request_token(
            options.auth.client_id, options.auth.client_secret, options.base_url
        )
    except XPKitError as e:
        raise AuthFlowError(
            f"Failed to get access token from XPKit. {e}", e.status_code, e.response
        ) from e

    client.logger.log("Saving access token")
    await client.store.save_auth(
        AuthRecord.from_token_response(
            token, options.base_url, options.auth.client_id, options.auth.client_secret
        )
    )
    return token


def build_login_url(
    options: ClientOptions,
    provider: str,
    state: str,
    code_challenge: str,
    redirect_uri: str,
) -> str:
    params = {
        "response_type": "code",
        "provider": provider,
        "client_id": options.auth.client_id,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": CHALLENGE_METHOD,
        "redirect_uri": redirect_uri,
    }
    return f"{authorize_endpoint(options.base_url)}?{urlencode(params)}"


async def generate_login_urls(
    options: ClientOptions,
    providers: Iterable[str],
    redirect_uri: str,
    store: CredentialStore | None = None,
) -> dict[str, str]:
    """Generate SSO login URLs and remember the pending session.

    All URLs share one PKCE pair and state, so whichever provider the user
    picks can be exchanged with ``exchange_code_for_token``.

    Args:
        options: Client options (base URL and client ID are used)
        providers: Identity providers, any of ``SSO_PROVIDERS``
        redirect_uri: Where the platform sends the user after login

    Returns:
        Mapping of provider name to authorization URL

    Raises:
        ValidationError: If an unknown provider is requested
    """
    providers = list(providers)
    unknown = [p for p in providers if p not in SSO_PROVIDERS]
    if unknown:
        raise ValidationError(
            f"Unknown SSO provider(s): {', '.join(unknown)}. "
            f"Expected one of: {', '.join(SSO_PROVIDERS)}"
        )

    store = store or CredentialStore()
    login = new_login_challenge()

    await store.save_sso(login.session())

    return {
        provider: build_login_url(options, provider, login.state, login.challenge, redirect_uri)
        for provider in providers
    }


async def exchange_code_for_token(
    options: ClientOptions,
    code: str,
    state: str,
    redirect_uri: str,
    store: CredentialStore | None = None,
    api: Api | None = None,
    logger: SdkLogger | None = None,
) -> TokenResponse:
    """Exchange the code from an SSO redirect for an access token.

    The pending SSO session is removed whether or not the exchange succeeds;
    a state value is only ever accepted once.

    Raises:
        ValidationError: If there is no pending session, the state does not
            match it, or the code is empty. No request is made in that case.
        AuthFlowError: If the token endpoint rejects the exchange
    """
    store = store or CredentialStore()
    logger = logger or get_logger(options.logging)

    session = await store.load_sso()
    if (
        session is None
        or not session.state
        or not code
        or not hmac.compare_digest(state.encode(), session.state.encode())
    ):
        raise ValidationError(INVALID_STATE_OR_CODE)

    api = api or Api(store, logger)
    logger.log(f"Calling exchangeCodeForToken at https://auth.{options.base_url}/api/token/")
    try:
        return await api.exchange_code_for_token(
            code, options.auth.client_id, redirect_uri, session.code_verifier, options.base_url
        )
    except XPKitError as e:
        raise AuthFlowError(
            f"Failed to exchange authorization code with XPKit. {e}", e.status_code, e.response
        ) from e
    finally:
        await store.remove_sso()
