"""Accessor for the identifications service.

Identities (QR codes and PDF417 barcodes) are returned as files, so most
calls here use ``download_resource`` rather than the JSON primitives.
"""

from typing import Any

from ..errors import XPKitError
from ..types import (
    FilterOptions,
    IdentificationType,
    XPKitAcknowledgement,
    XPKitResource,
    XPKitResources,
)
from .base import BaseResource


class Identifications(BaseResource):
    def _url(self, path: str) -> str:
        return self.service_url("identifications", f"api/identity/{path}")

    async def create_identity(
        self, identity_type: IdentificationType, account_id: str, options: dict[str, Any]
    ) -> str | bytes:
        """Create an identity; text by default, PNG bytes with ``format="png"``."""
        url = self._url(identity_type)
        self.logger.log(f"Calling createIdentity at {url}")
        return await self.api.download_resource(
            url,
            "GET",
            options=options,
            additional_headers={"Account-ID": account_id},
            file_type=options.get("format") or "text",
        )

    async def encode_identity(
        self,
        identity_type: IdentificationType,
        account_id: str,
        data: str,
        options: dict[str, Any] | None = None,
    ) -> bytes:
        """Render ``data`` as a PNG identity."""
        url = self._url(f"encode/{identity_type}")
        self.logger.log(f"Calling encodeIdentity at {url}")
        result = await self.api.download_resource(
            url,
            "GET",
            options={**(options or {}), "data": data},
            additional_headers={"Account-ID": account_id},
            file_type="png",
        )
        assert isinstance(result, bytes)
        return result

    async def verify_identity(self, account_id: str, data: str) -> bool:
        """Check whether an identity with ``data`` already exists."""
        url = self._url("verify")
        self.logger.log(f"Calling verifyIdentity at {url}")
        try:
            await self.api.download_resource(
                url,
                "GET",
                options={"data": data},
                additional_headers={"Account-ID": account_id},
                file_type="text/text",
            )
        except XPKitError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def list_batches(self, filter_options: FilterOptions | None = None) -> XPKitResources:
        url = self._url("download")
        self.logger.log(f"Calling listBatches at {url}")
        return await self.api.get_resources(url, filter_options or {})

    async def create_batch(
        self, identity_type: IdentificationType, resource: dict[str, Any]
    ) -> XPKitAcknowledgement:
        url = self._url(f"batch/{identity_type}")
        self.logger.log(f"Calling createBatch at {url}")
        return await self.api.call_async_request(url, "POST", resource)

    async def download_batch(self, resource_id: str) -> bytes:
        """Download a batch of identities as a zip archive."""
        url = self._url(f"download/{resource_id}")
        self.logger.log(f"Calling downloadBatch at {url}")
        result = await self.api.download_resource(url, "GET", file_type="zip")
        assert isinstance(result, bytes)
        return result

    async def delete_batch(self, identity_type: IdentificationType, resource_id: str) -> bool:
        url = self._url(f"batch/{identity_type}")
        self.logger.log(f"Calling deleteBatch at {url}")
        # This endpoint answers 200 rather than 204 once the batch is gone
        return await self.api.delete_resource(
            url, {"batch_id": resource_id}, success_codes=(200, 204)
        )

    async def list_wallet_configurations(
        self, filter_options: FilterOptions | None = None
    ) -> XPKitResources:
        url = self._url("apple")
        self.logger.log(f"Calling listWalletConfigurations at {url}")
        return await self.api.get_resources(url, filter_options or {})

    async def read_wallet_configuration(self, resource_id: str) -> XPKitResource:
        url = self._url(f"apple/{resource_id}")
        self.logger.log(f"Calling readWalletConfiguration at {url}")
        return await self.api.call_resource(url, "GET")

    async def create_wallet_configuration(self, configuration_name: str) -> XPKitResource:
        url = self._url("apple")
        self.logger.log(f"Calling createWalletConfiguration at {url}")
        return await self.api.call_resource(url, "POST", {"configuration_name": configuration_name})

    async def upload_wallet_configuration_file(
        self, resource_id: str, file_key: str, file: Any
    ) -> XPKitResource:
        """Attach a file (certificate, icon, ...) to a wallet configuration."""
        url = self._url(f"apple/{resource_id}")
        self.logger.log(f"Calling uploadWalletConfigurationFile at {url}")
        return await self.api.upload_multipart(url, {file_key: file})  # type: ignore[return-value]

    async def update_wallet_configuration(
        self, resource_id: str, field: str, value: str
    ) -> XPKitResource:
        url = self._url(f"apple/{resource_id}")
        self.logger.log(f"Calling updateWalletConfiguration at {url}")
        return await self.api.call_resource(url, "PATCH", {field: value})

    async def delete_wallet_configuration(self, resource_id: str) -> bool:
        url = self._url(f"apple/{resource_id}")
        self.logger.log(f"Calling deleteWalletConfiguration at {url}")
        return await self.api.delete_resource(url)

    async def generate_wallet_pass_file(self, resource: dict[str, Any]) -> XPKitResource:
        url = self._url("apple/wallet")
        self.logger.log(f"Calling generateWalletPassFile at {url}")
        return await self.api.call_resource(url, "POST", resource)
