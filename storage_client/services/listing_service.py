"""Directory listing fetch and ordering."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Iterable, Optional

from storage_client.core.tasks import monitor_task
from storage_client.models import DirectoryEntry, SortState
from storage_client.services.backend_client import BackendClient
from storage_client.services.utils.path_resolver import normalize
from storage_client.services.utils.sorting import order_entries

logger = logging.getLogger(__name__)

StatsHook = Callable[[str], Awaitable[None] | None]


class DirectoryListingService:
    """Fetch the entries of a path and put them in display order.

    Each listing also kicks off a free-space lookup that runs on its own;
    its latency or failure never affects the listing.
    """

    def __init__(self, backend: BackendClient, *, on_stats: Optional[StatsHook] = None) -> None:
        self._backend = backend
        self._on_stats = on_stats
        self._stats_task: Optional[asyncio.Task[None]] = None

    def set_stats_hook(self, hook: Optional[StatsHook]) -> None:
        self._on_stats = hook

    async def list(self, path: str, sort_state: SortState) -> list[DirectoryEntry]:
        path = normalize(path)
        self._start_stats_fetch()
        entries = await self._backend.list_files(path)
        logger.debug("Listed %s entries in '%s'", len(entries), path)
        return order_entries(entries, sort_state)

    @staticmethod
    def order(entries: Iterable[DirectoryEntry], sort_state: SortState) -> list[DirectoryEntry]:
        return order_entries(entries, sort_state)

    def _start_stats_fetch(self) -> None:
        if self._stats_task and not self._stats_task.done():
            self._stats_task.cancel()
        self._stats_task = monitor_task(
            asyncio.create_task(self._fetch_stats(), name="listing-stats"),
            name="listing-stats",
            logger=logger,
        )

    async def _fetch_stats(self) -> None:
        try:
            free = await self._backend.free_space()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Stats fetch failed, ignoring: %s", exc)
            return
        if not self._on_stats:
            return
        try:
            result = self._on_stats(free)
            if inspect.isawaitable(result):
                await result
        except Exception:  # noqa: BLE001
            logger.warning("Stats hook failed", exc_info=True)

    async def aclose(self) -> None:
        if self._stats_task and not self._stats_task.done():
            self._stats_task.cancel()
            await asyncio.gather(self._stats_task, return_exceptions=True)
        self._stats_task = None
