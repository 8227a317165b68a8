"""Persisted authentication records and token endpoint responses.

Records are stored as plain JSON dictionaries so that the on-disk format of
``xpkit.auth`` and ``xpkit.sso`` stays the same across storage backends.
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Stored expiry is always this many seconds before the provider's expiry
EXPIRY_MARGIN_SECONDS = 500

# Used when the provider does not declare expires_in, and for injected tokens
DEFAULT_TOKEN_LIFETIME_SECONDS = 36000


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def compute_expiry(expires_in: int | None = None, now: int | None = None) -> int:
    """Compute the stored expiry timestamp for a freshly acquired token.

    Args:
        expires_in: Lifetime declared by the token endpoint, in seconds
        now: Current time in epoch milliseconds (defaults to the clock)

    Returns:
        Epoch milliseconds strictly before the declared expiry
    """
    if now is None:
        now = now_ms()

    lifetime = DEFAULT_TOKEN_LIFETIME_SECONDS if expires_in is None else int(expires_in)
    if lifetime <= EXPIRY_MARGIN_SECONDS:
        logger.warning(
            f"Token lifetime of {lifetime}s is shorter than the {EXPIRY_MARGIN_SECONDS}s "
            f"safety margin; the token will be treated as expired on next setup"
        )
        return now

    return now + (lifetime - EXPIRY_MARGIN_SECONDS) * 1000


@dataclass
class TokenResponse:
    """Response of the ``/api/token/`` endpoint."""

    access_token: str
    token_type: str = "Bearer"
    scope: str = ""
    expires_in: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenResponse":
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope", ""),
            expires_in=int(expires_in) if expires_in is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "token_type": self.token_type,
            "scope": self.scope,
            "access_token": self.access_token,
        }
        if self.expires_in is not None:
            data["expires_in"] = self.expires_in
        return data


@dataclass
class AuthRecord:
    """The cached bearer token plus what is needed to refresh it.

    Attributes:
        access_token: Bearer token sent with every resource call
        expires: Epoch milliseconds after which the token is considered expired
        base_url: Platform base domain, e.g. ``xpkit.net``
        client_id: OAuth client ID (empty for injected tokens)
        client_secret: OAuth client secret (empty for injected tokens)
    """

    access_token: str
    expires: int
    base_url: str
    client_id: str = ""
    client_secret: str = ""

    def is_expired(self, now: int | None = None) -> bool:
        """Check whether the stored expiry has passed."""
        if now is None:
            now = now_ms()
        return now > self.expires

    def can_refresh(self) -> bool:
        """Check whether client credentials are available for a refresh."""
        return bool(self.client_id and self.client_secret and self.base_url)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuthRecord":
        """Deserialize a record loaded from storage.

        Raises:
            KeyError: If ``access_token`` or ``expires`` is missing
        """
        return cls(
            access_token=data["access_token"],
            expires=int(data["expires"]),
            base_url=data.get("base_url", ""),
            client_id=data.get("client_id", ""),
            client_secret=data.get("client_secret", ""),
        )

    @classmethod
    def from_token_response(
        cls,
        response: TokenResponse,
        base_url: str,
        client_id: str,
        client_secret: str,
    ) -> "AuthRecord":
        return cls(
            access_token=response.access_token,
            expires=compute_expiry(response.expires_in),
            base_url=base_url,
            client_id=client_id,
            client_secret=client_secret,
        )


@dataclass
class SsoSessionRecord:
    """Correlation state for a pending SSO browser redirect.

    Created by ``generate_login_urls`` and consumed exactly once by
    ``exchange_code_for_token``.
    """

    code_verifier: str
    state: str

    def to_dict(self) -> dict[str, Any]:
        return {"code_verifier": self.code_verifier, "state": self.state}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SsoSessionRecord":
        return cls(
            code_verifier=data.get("code_verifier", ""),
            state=data.get("state", ""),
        )
