"""Client configuration for the XPKit SDK."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .errors import ValidationError

# Env file searched when none is given explicitly
DEFAULT_ENV_PATH = Path(".env")

ENV_BASE_URL = "XPKIT_BASE_URL"
ENV_CLIENT_ID = "XPKIT_CLIENT_ID"
ENV_CLIENT_SECRET = "XPKIT_CLIENT_SECRET"
ENV_ACCESS_TOKEN = "XPKIT_ACCESS_TOKEN"
ENV_LOGGING = "XPKIT_LOGGING"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AuthOptions:
    """Credentials used to obtain an access token.

    If ``access_token`` is set it is used as-is and the client credentials
    are ignored.
    """

    client_id: str = ""
    client_secret: str = ""
    access_token: str | None = None


@dataclass(frozen=True)
class ClientOptions:
    """Immutable options for an XPKit client.

    Attributes:
        base_url: Platform base domain; services live at ``<service>.<base_url>``
        auth: Credentials for token acquisition
        logging: Emit SDK trace messages through the ``xpkit`` logger
    """

    base_url: str
    auth: AuthOptions
    logging: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientOptions":
        """Build options from a nested dictionary (``auth`` as a sub-dict)."""
        auth = data.get("auth", {})
        return cls(
            base_url=data["base_url"],
            auth=AuthOptions(
                client_id=auth.get("client_id", ""),
                client_secret=auth.get("client_secret", ""),
                access_token=auth.get("access_token"),
            ),
            logging=bool(data.get("logging", False)),
        )


def find_env_file(explicit_path: Path | None = None) -> Path | None:
    """Find the .env file to load, if any."""
    if explicit_path:
        if explicit_path.exists():
            return explicit_path
        return None

    if DEFAULT_ENV_PATH.exists():
        return DEFAULT_ENV_PATH
    return None


def load_options(env_path: Path | None = None, require_secret: bool = True) -> ClientOptions:
    """Load client options from the environment.

    A ``.env`` file is loaded first (without overriding variables that are
    already set), then the ``XPKIT_*`` variables are read.

    Args:
        env_path: Explicit path to a .env file (optional)
        require_secret: Require a client secret. The SSO flow only needs
            the client ID.

    Returns:
        ClientOptions built from the environment

    Raises:
        ValidationError: If no base URL or no usable credentials are configured
    """
    env_file = find_env_file(env_path)
    if env_file:
        load_dotenv(env_file)

    base_url = os.environ.get(ENV_BASE_URL, "").strip()
    if not base_url:
        raise ValidationError(f"{ENV_BASE_URL} is not set")

    access_token = os.environ.get(ENV_ACCESS_TOKEN) or None
    client_id = os.environ.get(ENV_CLIENT_ID, "")
    client_secret = os.environ.get(ENV_CLIENT_SECRET, "")

    if not require_secret:
        if not client_id:
            raise ValidationError(f"{ENV_CLIENT_ID} is not set")
    elif access_token is None and not (client_id and client_secret):
        raise ValidationError(
            f"Set {ENV_ACCESS_TOKEN}, or both {ENV_CLIENT_ID} and {ENV_CLIENT_SECRET}"
        )

    return ClientOptions(
        base_url=base_url,
        auth=AuthOptions(
            client_id=client_id,
            client_secret=client_secret,
            access_token=access_token,
        ),
        logging=os.environ.get(ENV_LOGGING, "").lower() in _TRUTHY,
    )
