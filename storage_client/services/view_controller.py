"""Compose listing, uploads, push events and toasts into one view."""
from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from storage_client.core.exceptions import ServerError, StorageClientError, TransportError
from storage_client.core.tasks import monitor_task
from storage_client.models import (
    ConnectionState,
    DirectoryEntry,
    DownloadIndicator,
    DownloadProgress,
    PushEvent,
    PushMessage,
    QueueDrained,
    SortColumn,
    SortState,
    UploadIndicator,
    UploadSession,
    UploadState,
    ViewState,
)
from storage_client.services.backend_client import BackendClient
from storage_client.services.listing_service import DirectoryListingService
from storage_client.services.notification_service import NotificationSink
from storage_client.services.upload_service import UploadController, UploadHandle
from storage_client.services.utils.path_resolver import ROOT, join, normalize, parent_of
from storage_client.services.utils.progress import percent_of

logger = logging.getLogger(__name__)

ViewListener = Callable[[ViewState], Awaitable[None] | None]


@dataclass
class ViewContext:
    """Mutable view state owned by one controller; the UI serializes writers."""

    path: str = ROOT
    sort: SortState = field(default_factory=SortState)
    entries: list[DirectoryEntry] = field(default_factory=list)
    free_space: Optional[str] = None
    connection: ConnectionState = ConnectionState.CLOSED
    download: Optional[DownloadIndicator] = None
    busy: int = 0
    upload: Optional[UploadHandle] = None
    upload_watch: Optional[asyncio.Task] = None
    generation: int = 0


class ViewController:
    """Entry point for every user action and every pushed event."""

    def __init__(
        self,
        *,
        backend: BackendClient,
        listing: DirectoryListingService,
        uploads: UploadController,
        notifications: NotificationSink,
        download_chunk_size: int = 1024 * 1024,
    ) -> None:
        self._backend = backend
        self._listing = listing
        self._uploads = uploads
        self._notifications = notifications
        self._download_chunk_size = download_chunk_size
        self._context = ViewContext()
        self._listeners: List[ViewListener] = []
        self._background: set[asyncio.Task] = set()
        listing.set_stats_hook(self._on_stats)
        notifications.register(self._on_toasts)

    @property
    def context(self) -> ViewContext:
        return self._context

    @property
    def active_upload(self) -> Optional[UploadHandle]:
        return self._uploads.active

    def snapshot(self) -> ViewState:
        ctx = self._context
        upload = None
        if ctx.upload is not None:
            upload = UploadIndicator(
                filename=ctx.upload.session.filename,
                percent=ctx.upload.percent,
                state=ctx.upload.state,
            )
        return ViewState(
            path=ctx.path,
            parent=parent_of(ctx.path) if ctx.path else None,
            entries=list(ctx.entries),
            sort=ctx.sort,
            free_space=ctx.free_space,
            connection=ctx.connection,
            download=ctx.download,
            upload=upload,
            busy=ctx.busy > 0,
            toasts=self._notifications.visible(),
        )

    def add_listener(self, listener: ViewListener) -> None:
        """Call ``listener`` with a fresh snapshot after every view change."""
        self._listeners.append(listener)

    async def publish(self) -> None:
        if not self._listeners:
            return
        view = self.snapshot()
        for listener in self._listeners:
            try:
                result = listener(view)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # noqa: BLE001
                logger.warning("View listener failed at '%s'", view.path, exc_info=True)

    # -------------------------
    # navigation & listing
    # -------------------------
    async def navigate(self, locator: str) -> ViewState:
        self._context.path = normalize(locator)
        return await self.refresh()

    async def refresh(self) -> ViewState:
        """Fetch the current directory and return the resulting view.

        A backend failure is shown as an error toast, keeps the previous
        entries and is re-raised. When a newer refresh started meanwhile,
        this outcome is dropped and the view it produced is returned.
        """
        ctx = self._context
        ctx.generation += 1
        generation = ctx.generation
        path = ctx.path
        try:
            entries = await self._listing.list(path, ctx.sort)
        except (ServerError, TransportError) as exc:
            if generation != ctx.generation:
                logger.debug("Ignoring failure of superseded listing of '%s': %s", path, exc)
                return self.snapshot()
            await self._notifications.error(f"Error: {exc}")
            raise
        if generation != ctx.generation:
            logger.debug("Discarding superseded listing of '%s'", path)
            return self.snapshot()
        # the sort may have changed while the fetch was in flight
        ctx.entries = self._listing.order(entries, ctx.sort)
        await self.publish()
        return self.snapshot()

    async def _refresh_after(self, reason: str) -> None:
        try:
            await self.refresh()
        except StorageClientError as exc:
            logger.warning("Refresh after %s failed: %s", reason, exc)

    async def toggle_sort(self, column: SortColumn | str) -> SortState:
        ctx = self._context
        ctx.sort = ctx.sort.toggled(SortColumn(column))
        ctx.entries = self._listing.order(ctx.entries, ctx.sort)
        await self.publish()
        return ctx.sort

    async def create_dir(self, name: str) -> str:
        """Create ``name`` under the current path and return its full path."""
        name = (name or "").strip().strip("/")
        if not name:
            raise ValueError("Directory name cannot be empty")
        target = join(self._context.path, name)
        try:
            await self._backend.create_dir(target)
        except (ServerError, TransportError) as exc:
            await self._notifications.error(f"Error: {exc}")
            raise
        await self._refresh_after("mkdir")
        return target

    async def save_file(self, name: str, destination: str | os.PathLike[str]) -> int:
        remote = f"{self._context.path}{name}"
        return await self._backend.download_file(
            remote,
            destination,
            chunk_size=self._download_chunk_size,
        )

    # -------------------------
    # uploads
    # -------------------------
    def start_upload(
        self,
        file: str | os.PathLike[str],
        *,
        filename: Optional[str] = None,
        discard_file: bool = False,
    ) -> UploadHandle:
        """Begin uploading into the current directory and return at once.

        The view stays busy until the session ends, whatever the outcome.
        With ``discard_file`` the local file is removed afterwards.
        """
        ctx = self._context
        handle = self._uploads.start(
            file,
            ctx.path,
            on_progress=self._on_upload_progress,
            on_complete=self._on_upload_complete,
            filename=filename,
        )
        ctx.upload = handle
        ctx.upload_watch = monitor_task(
            asyncio.create_task(self._watch_upload(handle, Path(file) if discard_file else None)),
            name="upload-watch",
            logger=logger,
        )
        return handle

    async def upload(self, file: str | os.PathLike[str], *, filename: Optional[str] = None) -> UploadSession:
        handle = self.start_upload(file, filename=filename)
        watch = self._context.upload_watch
        if watch is not None:
            await watch
        return handle.session

    def abort_upload(self) -> bool:
        handle = self._uploads.active
        if handle is None:
            return False
        return handle.abort()

    @contextlib.asynccontextmanager
    async def _blocking(self) -> AsyncIterator[None]:
        self._context.busy += 1
        await self.publish()
        try:
            yield
        finally:
            self._context.busy -= 1
            await self.publish()

    async def _watch_upload(self, handle: UploadHandle, discard: Optional[Path]) -> None:
        try:
            async with self._blocking():
                await handle.wait()
        finally:
            if self._context.upload is handle:
                self._context.upload = None
            if discard is not None:
                with contextlib.suppress(OSError):
                    discard.unlink()
        await self.publish()

    async def _on_upload_progress(self, handle: UploadHandle) -> None:
        await self.publish()

    async def _on_upload_complete(self, handle: UploadHandle) -> None:
        await self.publish()
        session = handle.session
        if session.state == UploadState.FAILED:
            await self._notifications.error(f"Error: {session.error}")
        await self._refresh_after("upload")

    # -------------------------
    # remote downloads & push events
    # -------------------------
    async def remote_download(self, url: str) -> None:
        """Ask the backend to fetch ``url`` into the current directory.

        The request runs in the background; its outcome arrives later as
        push messages.
        """
        url = (url or "").strip()
        if not url:
            raise ValueError("URL cannot be empty")
        task = asyncio.create_task(self._enqueue_download(url, self._context.path))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        await self._notifications.success("Download queued")

    async def _enqueue_download(self, url: str, path: str) -> None:
        try:
            await self._backend.enqueue_download(url, path)
        except StorageClientError as exc:
            logger.warning("Download enqueue for %s failed: %s", url, exc)

    async def handle_push_event(self, event: PushEvent) -> None:
        ctx = self._context
        if isinstance(event, DownloadProgress):
            task = event.task
            ctx.download = DownloadIndicator(
                filename=task.filename,
                percent=percent_of(task.completed_bytes, task.total_bytes),
            )
            await self.publish()
        elif isinstance(event, QueueDrained):
            ctx.download = None
            await self.publish()
            await self._refresh_after("drained download queue")
        elif isinstance(event, PushMessage):
            await self._notifications.post(event.text, event.severity)

    async def on_connection_state(self, state: ConnectionState) -> None:
        self._context.connection = state
        await self.publish()

    async def _on_stats(self, free: str) -> None:
        self._context.free_space = free
        await self.publish()

    async def dismiss_toast(self, toast_id: str) -> bool:
        return await self._notifications.dismiss(toast_id)

    async def _on_toasts(self, toasts) -> None:
        await self.publish()

    async def aclose(self) -> None:
        watch = self._context.upload_watch
        if watch is not None:
            await asyncio.gather(watch, return_exceptions=True)
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
