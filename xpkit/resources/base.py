"""Base class for resource accessors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import ValidationError

if TYPE_CHECKING:
    from ..client import XPKitClient


class BaseResource:
    """Binds an accessor to a client's options, logger and request engine.

    Subclasses build ``https://<service>.<base_url>/...`` URLs and hand them
    to one of the ``Api`` primitives.
    """

    def __init__(self, client: XPKitClient | None):
        if client is None:
            raise ValidationError("Client is required")
        self.client = client
        self.base_url = client.options.base_url
        self.logger = client.logger
        self.api = client.api()

    def service_url(self, service: str, path: str) -> str:
        """Build the URL of ``path`` on a platform service."""
        return f"https://{service}.{self.base_url}/{path.lstrip('/')}"
