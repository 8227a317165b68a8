"""XPKit SDK - authentication and request engine for the XPKit platform."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("xpkit-sdk")
except PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback for development

__all__ = [
    "__version__",
    # Setup
    "XPKitClient",
    "setup",
    "ClientOptions",
    "AuthOptions",
    "load_options",
    # SSO
    "generate_login_urls",
    "exchange_code_for_token",
    # Engine and storage
    "Api",
    "CredentialStore",
    # Errors
    "XPKitError",
    "TransportError",
    "ApiError",
    "AuthFlowError",
    "ValidationError",
    "CredentialStoreError",
]


# Lazy imports to avoid circular dependencies
def __getattr__(name: str) -> object:
    """Lazy import module components."""
    if name in ("XPKitClient", "setup"):
        from .client import XPKitClient, setup
        return {"XPKitClient": XPKitClient, "setup": setup}[name]
    elif name in ("ClientOptions", "AuthOptions", "load_options"):
        from .config import AuthOptions, ClientOptions, load_options
        return {"ClientOptions": ClientOptions, "AuthOptions": AuthOptions, "load_options": load_options}[name]
    elif name in ("generate_login_urls", "exchange_code_for_token"):
        from .auth import exchange_code_for_token, generate_login_urls
        return {"generate_login_urls": generate_login_urls, "exchange_code_for_token": exchange_code_for_token}[name]
    elif name == "Api":
        from .api import Api
        return Api
    elif name == "CredentialStore":
        from .storage import CredentialStore
        return CredentialStore
    elif name in (
        "XPKitError",
        "TransportError",
        "ApiError",
        "AuthFlowError",
        "ValidationError",
        "CredentialStoreError",
    ):
        from . import errors
        return getattr(errors, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
