"""CLI entry point for the XPKit SDK."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import NoReturn

import click

from . import __version__
from .auth import SSO_PROVIDERS, exchange_code_for_token, generate_login_urls
from .client import setup
from .config import ClientOptions, load_options
from .errors import AuthFlowError, XPKitError
from .log import ConsoleLogger
from .output import OutputHandler
from .records import now_ms
from .storage import CredentialStore

# Logger for CLI
logger = logging.getLogger("xpkit.cli")


def _format_expiry(expires: int) -> str:
    return datetime.fromtimestamp(expires / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _mask(token: str) -> str:
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}...{token[-4:]}"


@click.group()
@click.option("--json", "json_mode", is_flag=True, help="Output in JSON format")
@click.option("--env-file", "env_path", type=click.Path(exists=True), help="Path to .env file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, json_mode: bool, env_path: str | None, verbose: bool) -> None:
    """XPKit - authenticate against the XPKit platform."""
    ctx.ensure_object(dict)
    ctx.obj["json_mode"] = json_mode
    ctx.obj["env_path"] = Path(env_path) if env_path else None
    ctx.obj["output"] = OutputHandler(json_mode)
    # SDK trace messages are logged at INFO through ConsoleLogger
    ctx.obj["sdk_logger"] = ConsoleLogger() if verbose else None

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    else:
        logging.basicConfig(level=logging.WARNING)


def get_options(ctx: click.Context, require_secret: bool = True) -> ClientOptions | NoReturn:
    """Get client options from the environment, handling errors."""
    output: OutputHandler = ctx.obj["output"]
    try:
        return load_options(ctx.obj["env_path"], require_secret=require_secret)
    except XPKitError as e:
        output.error(
            e,
            help_text="Set XPKIT_BASE_URL and your client credentials in the environment or a .env file.",
        )
        raise SystemExit(1)  # Never reached due to sys.exit in output.error


@main.command()
@click.option("--flush", is_flag=True, help="Discard the cached token and request a new one")
@click.pass_context
def login(ctx: click.Context, flush: bool) -> None:
    """Log in with client credentials and cache the access token."""
    output: OutputHandler = ctx.obj["output"]
    options = get_options(ctx)

    try:
        store = CredentialStore()
        logger.debug(f"Using {type(store.backend).__name__} for credentials")
        asyncio.run(setup(options, flush=flush, store=store, logger=ctx.obj["sdk_logger"]))
        auth = asyncio.run(store.load_auth())
    except AuthFlowError as e:
        output.error(e, help_text="Check XPKIT_CLIENT_ID and XPKIT_CLIENT_SECRET.")
        return
    except XPKitError as e:
        output.error(e)
        return

    if auth is None:
        output.error(XPKitError("No access token was stored"))
        return

    output.success(
        {"base_url": auth.base_url or options.base_url, "expires": auth.expires},
        human_message=f"Logged in to {options.base_url}. Token valid until {_format_expiry(auth.expires)}.",
    )


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the cached access token."""
    output: OutputHandler = ctx.obj["output"]

    try:
        auth = asyncio.run(CredentialStore().load_auth())
    except XPKitError as e:
        output.error(e)
        return

    if auth is None:
        output.success(
            {"logged_in": False},
            human_message="Not logged in. Run 'xpkit login' to request a token.",
        )
        return

    expired = auth.is_expired(now_ms())
    output.fields(
        {
            "logged_in": not expired,
            "base_url": auth.base_url,
            "access_token": _mask(auth.access_token),
            "expires": _format_expiry(auth.expires),
            "expired": expired,
            "refreshable": auth.can_refresh(),
        },
        title="XPKit session",
    )


@main.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Remove the cached access token and any pending SSO session."""
    output: OutputHandler = ctx.obj["output"]

    try:
        store = CredentialStore()
        asyncio.run(store.remove_auth())
        asyncio.run(store.remove_sso())
    except XPKitError as e:
        output.error(e)
        return

    output.success({"logged_out": True}, human_message="Logged out.")


@main.command("sso-urls")
@click.argument("providers", nargs=-1, required=True, type=click.Choice(SSO_PROVIDERS))
@click.option("--redirect-uri", required=True, help="Where XPKit redirects after login")
@click.pass_context
def sso_urls(ctx: click.Context, providers: tuple[str, ...], redirect_uri: str) -> None:
    """Print SSO login URLs for one or more identity providers."""
    output: OutputHandler = ctx.obj["output"]
    options = get_options(ctx, require_secret=False)

    try:
        urls = asyncio.run(generate_login_urls(options, providers, redirect_uri, CredentialStore()))
    except XPKitError as e:
        output.error(e)
        return

    output.fields(urls, title="Open one of these URLs to log in:")


@main.command("sso-exchange")
@click.argument("code")
@click.argument("state")
@click.option("--redirect-uri", required=True, help="Redirect URI used for the login URLs")
@click.pass_context
def sso_exchange(ctx: click.Context, code: str, state: str, redirect_uri: str) -> None:
    """Exchange the code from an SSO redirect for an access token."""
    output: OutputHandler = ctx.obj["output"]
    options = get_options(ctx, require_secret=False)

    try:
        token = asyncio.run(
            exchange_code_for_token(
                options, code, state, redirect_uri, CredentialStore(), logger=ctx.obj["sdk_logger"]
            )
        )
    except XPKitError as e:
        output.error(e, help_text="Run 'xpkit sso-urls' again to start a new login.")
        return

    output.success(token.to_dict(), human_message=f"Access token: {token.access_token}")


if __name__ == "__main__":
    main()
