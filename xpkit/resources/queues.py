"""Accessor for the queues service."""

from typing import Any

from ..types import FilterOptions, XPKitResource, XPKitResources, XPKitSummaryResponse
from .base import BaseResource


class Queues(BaseResource):
    """Queue configurations and the items waiting in each queue."""

    def _configuration_url(self, resource_id: str | None = None) -> str:
        path = "api/configuration"
        return self.service_url("queues", f"{path}/{resource_id}" if resource_id else path)

    def _queue_url(self, queue_id: str, resource_id: str | None = None) -> str:
        path = f"api/queue/{queue_id}"
        return self.service_url("queues", f"{path}/{resource_id}" if resource_id else path)

    async def list_queues(self, filter_options: FilterOptions | None = None) -> XPKitResources:
        url = self._configuration_url()
        self.logger.log(f"Calling listQueues at {url}")
        return await self.api.get_resources(url, filter_options or {})

    async def read_queue(self, resource_id: str) -> XPKitResource:
        url = self._configuration_url(resource_id)
        self.logger.log(f"Calling readQueue at {url}")
        return await self.api.call_resource(url, "GET")

    async def create_queue(self, resource: dict[str, Any]) -> XPKitResource:
        url = self._configuration_url()
        self.logger.log(f"Calling createQueue at {url}")
        return await self.api.call_resource(url, "POST", resource)

    async def replace_queue(self, resource_id: str, resource: dict[str, Any]) -> XPKitResource:
        url = self._configuration_url(resource_id)
        self.logger.log(f"Calling replaceQueue at {url}")
        return await self.api.call_resource(url, "PUT", resource)

    async def update_queue(self, resource_id: str, resource: dict[str, Any]) -> XPKitResource:
        url = self._configuration_url(resource_id)
        self.logger.log(f"Calling updateQueue at {url}")
        return await self.api.call_resource(url, "PATCH", resource)

    async def delete_queue(self, resource_id: str) -> bool:
        url = self._configuration_url(resource_id)
        self.logger.log(f"Calling deleteQueue at {url}")
        return await self.api.delete_resource(url)

    async def list_queue_items(
        self, queue_id: str, filter_options: FilterOptions | None = None
    ) -> XPKitResources:
        url = self._queue_url(queue_id)
        self.logger.log(f"Calling listQueueItems at {url}")
        return await self.api.get_resources(url, filter_options or {})

    async def read_queue_item(self, resource_id: str, queue_id: str) -> XPKitResource:
        url = self._queue_url(queue_id, resource_id)
        self.logger.log(f"Calling readQueueItem at {url}")
        return await self.api.call_resource(url, "GET")

    async def create_queue_item(self, queue_id: str, resource: dict[str, Any]) -> XPKitResource:
        url = self._queue_url(queue_id)
        self.logger.log(f"Calling createQueueItem at {url}")
        return await self.api.call_resource(url, "POST", resource)

    async def replace_queue_item(
        self, resource_id: str, queue_id: str, resource: dict[str, Any]
    ) -> XPKitResource:
        url = self._queue_url(queue_id, resource_id)
        self.logger.log(f"Calling replaceQueueItem at {url}")
        return await self.api.call_resource(url, "PUT", resource)

    async def update_queue_item(
        self, resource_id: str, queue_id: str, resource: dict[str, Any]
    ) -> XPKitResource:
        url = self._queue_url(queue_id, resource_id)
        self.logger.log(f"Calling updateQueueItem at {url}")
        return await self.api.call_resource(url, "PATCH", resource)

    async def delete_queue_item(self, resource_id: str, queue_id: str) -> bool:
        url = self._queue_url(queue_id, resource_id)
        self.logger.log(f"Calling deleteQueueItem at {url}")
        return await self.api.delete_resource(url)

    async def read_queue_group_stats(self, queue_id: str) -> XPKitSummaryResponse:
        """Count of items per group, e.g. ``{"red": 10, "blue": 5}``."""
        url = self._queue_url(queue_id, "group/stats")
        self.logger.log(f"Calling readQueueGroupStats at {url}")
        return await self.api.call_summary(url, "GET")
