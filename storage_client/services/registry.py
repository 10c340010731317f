"""Service registry that wires all application services together."""
import asyncio
import logging
from typing import Optional

import httpx

from storage_client.core.config import Settings
from storage_client.core.exceptions import StorageClientError
from storage_client.core.operation_context import operation_context
from storage_client.core.tasks import LifecycleManager
from storage_client.services.backend_client import BackendClient
from storage_client.services.listing_service import DirectoryListingService
from storage_client.services.live_queue_service import Connector, LiveQueueClient
from storage_client.services.notification_service import NotificationSink
from storage_client.services.upload_service import UploadController
from storage_client.services.view_controller import ViewController
from storage_client.services.view_stream_service import ViewStreamService

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Container object for dependency injection."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        connector: Optional[Connector] = None,
    ) -> None:
        self.settings = settings
        self.backend = BackendClient(settings, transport=transport)
        self.notifications = NotificationSink(duration=settings.toast_duration)
        self.listing_service = DirectoryListingService(self.backend)
        self.upload_controller = UploadController(
            self.backend,
            max_upload_bytes=settings.max_upload_bytes,
        )
        self.view_controller = ViewController(
            backend=self.backend,
            listing=self.listing_service,
            uploads=self.upload_controller,
            notifications=self.notifications,
            download_chunk_size=settings.download_chunk_size,
        )
        self.view_stream_service = ViewStreamService(self.view_controller)
        self.live_queue = LiveQueueClient(
            settings.resolved_push_url,
            reconnect_delay=settings.reconnect_delay,
            connector=connector,
        )
        self.live_queue.add_handler(self.view_controller.handle_push_event)
        self.live_queue.add_state_listener(self.view_controller.on_connection_state)
        self._startup_lock = asyncio.Lock()
        self._shutdown_lock = asyncio.Lock()
        self._lifecycle = LifecycleManager(name="service-registry", logger=logger)

    async def _load_initial_view(self) -> None:
        try:
            await self.view_controller.navigate("")
        except StorageClientError as exc:
            logger.warning("Initial listing from %s failed: %s", self.settings.resolved_backend_url, exc)

    async def startup(self) -> None:
        async with self._startup_lock:
            with operation_context("bg:registry"):
                logger.info("Starting background services")
                self.view_stream_service.reset()
                await self._lifecycle.start([self.live_queue.start, self._load_initial_view])
                logger.info("Background services started")

    async def shutdown(self) -> None:
        async with self._shutdown_lock:
            with operation_context("bg:registry"):
                logger.info("Stopping background services")
                await self.view_stream_service.shutdown()
                await self._lifecycle.stop([self.live_queue.stop])
                await self.upload_controller.aclose()
                await self.listing_service.aclose()
                await self.view_controller.aclose()
                self.notifications.clear()
                await self.backend.aclose()
                logger.info("Background services stopped")
