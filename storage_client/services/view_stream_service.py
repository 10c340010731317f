"""Push view changes to SSE subscribers as typed events.

A subscriber first receives one ``snapshot`` event with the whole view.
After that, every published view is split into sections (``listing``,
``status``, ``download``, ``upload``, ``toasts``) and only the sections
that changed are sent, each as its own event carrying that section's
fields. Event ids increase across all sections.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from typing import Any

from storage_client.models import ViewState
from storage_client.services.view_controller import ViewController

logger = logging.getLogger(__name__)

SECTIONS: dict[str, tuple[str, ...]] = {
    "listing": ("path", "parent", "sort", "entries"),
    "status": ("connection", "busy", "free_space"),
    "download": ("download",),
    "upload": ("upload",),
    "toasts": ("toasts",),
}


@dataclass(frozen=True)
class StreamEvent:
    name: str
    id: int
    data: dict[str, Any]

    def encode(self) -> str:
        payload = json.dumps(self.data, separators=(",", ":"))
        return f"id: {self.id}\nevent: {self.name}\ndata: {payload}\n\n"


Subscription = asyncio.Queue  # of Optional[StreamEvent]; None ends the stream


class ViewStreamService:
    def __init__(self, view: ViewController, *, queue_size: int = 200) -> None:
        self._view = view
        self._queue_size = queue_size
        self._queues: set[Subscription] = set()
        self._sections: dict[str, dict[str, Any]] = {}
        self._event_id = 0
        self._closed = asyncio.Event()
        view.add_listener(self._on_view)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def reset(self) -> None:
        self._closed.clear()

    def subscribe(self) -> tuple[Subscription, StreamEvent]:
        """Register a subscriber; returns its queue and the opening snapshot."""
        view = self._view.snapshot()
        if not self._sections:
            self._sections = self._split(view)
        queue: Subscription = asyncio.Queue(maxsize=self._queue_size)
        self._queues.add(queue)
        self._event_id += 1
        return queue, StreamEvent("snapshot", self._event_id, {"view": view.model_dump(mode="json")})

    def unsubscribe(self, queue: Subscription) -> None:
        self._queues.discard(queue)

    async def shutdown(self) -> None:
        self._closed.set()
        queues, self._queues = self._queues, set()
        for queue in queues:
            self._end(queue)

    async def _on_view(self, view: ViewState) -> None:
        if self.closed:
            return
        current = self._split(view)
        changed = [name for name, data in current.items() if self._sections.get(name) != data]
        self._sections = current
        for name in changed:
            self._event_id += 1
            self._broadcast(StreamEvent(name, self._event_id, current[name]))

    def _broadcast(self, event: StreamEvent) -> None:
        for queue in list(self._queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                # a subscriber this far behind gets disconnected, not blocked on
                self._queues.discard(queue)
                self._end(queue)
                logger.warning("Dropped view stream subscriber after %s queued events", self._queue_size)

    @staticmethod
    def _end(queue: Subscription) -> None:
        with contextlib.suppress(asyncio.QueueEmpty):
            while True:
                queue.get_nowait()
        queue.put_nowait(None)

    @staticmethod
    def _split(view: ViewState) -> dict[str, dict[str, Any]]:
        dump = view.model_dump(mode="json")
        return {name: {key: dump[key] for key in keys} for name, keys in SECTIONS.items()}
