"""Output formatters for human-readable and JSON output."""

import json
import sys
from typing import Any

import click

from .errors import XPKitError


def format_json(data: Any) -> str:
    """Format a successful result as JSON output."""
    return json.dumps({"success": True, "data": data}, indent=2, default=str)


def format_error_json(error: Exception, help_text: str | None = None) -> str:
    """Format an error as JSON, including the HTTP status when there is one."""
    details: dict[str, Any] = {
        "type": type(error).__name__,
        "message": str(error),
        "help": help_text or "",
    }
    if isinstance(error, XPKitError):
        details["status_code"] = error.status_code
        details["response"] = error.response
    return json.dumps({"success": False, "error": details}, indent=2)


class OutputHandler:
    """Handles output formatting based on mode (JSON or human)."""

    def __init__(self, json_mode: bool = False):
        self.json_mode = json_mode

    def success(self, data: Any, human_message: str | None = None) -> None:
        """Output success response."""
        if self.json_mode:
            click.echo(format_json(data))
        elif human_message:
            click.echo(human_message)
        else:
            click.echo(json.dumps(data, indent=2, default=str))

    def fields(self, data: dict[str, Any], title: str | None = None) -> None:
        """Output a flat mapping as aligned ``key: value`` lines."""
        if self.json_mode:
            click.echo(format_json(data))
            return

        if title:
            click.secho(title, bold=True)
        width = max((len(key) for key in data), default=0)
        for key, value in data.items():
            click.echo(f"  {(key + ':').ljust(width + 1)} {value}")

    def error(self, error: Exception, help_text: str | None = None) -> None:
        """Output error response and exit with status 1."""
        if self.json_mode:
            click.echo(format_error_json(error, help_text))
        else:
            message = f"Error: {error}"
            if isinstance(error, XPKitError) and error.status_code is not None:
                message += f" (HTTP {error.status_code})"
            click.secho(message, fg="red", err=True)
            if help_text:
                click.echo(f"\n{help_text}", err=True)
        sys.exit(1)
