"""Accessor for the auth service."""

from ..records import TokenResponse
from .base import BaseResource


class Auth(BaseResource):
    async def request_token(self, client_id: str, client_secret: str, base_url: str) -> TokenResponse:
        """Request a token with the client credentials grant."""
        self.logger.log(f"Calling requestToken at https://auth.{base_url}/api/token/")
        return await self.api.get_token(client_id, client_secret, base_url)
