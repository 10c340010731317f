"""Transient success/error notifications."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional

from storage_client.models import Severity, ToastMessage

ToastListener = Callable[[List[ToastMessage]], Awaitable[None] | None]

logger = logging.getLogger(__name__)


class NotificationSink:
    """Keep toasts visible for ``duration`` seconds, then drop them."""

    def __init__(self, *, duration: float = 5.0) -> None:
        self._duration = duration
        self._visible: List[ToastMessage] = []
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._listeners: List[ToastListener] = []
        self._expiring: set[asyncio.Task] = set()

    def register(self, listener: ToastListener) -> None:
        self._listeners.append(listener)

    def visible(self) -> List[ToastMessage]:
        return list(self._visible)

    async def notify(self, message: ToastMessage) -> ToastMessage:
        log = logger.warning if message.severity == "error" else logger.info
        log("Notification: %s", message.text)
        self._visible.append(message)
        loop = asyncio.get_running_loop()
        self._timers[message.id] = loop.call_later(self._duration, self._expire, message.id)
        await self._publish()
        return message

    async def success(self, text: str) -> ToastMessage:
        return await self.notify(ToastMessage(text=text, severity="success"))

    async def error(self, text: str) -> ToastMessage:
        return await self.notify(ToastMessage(text=text, severity="error"))

    async def post(self, text: str, severity: Severity) -> ToastMessage:
        return await self.notify(ToastMessage(text=text, severity=severity))

    async def dismiss(self, message_id: str) -> bool:
        timer = self._timers.pop(message_id, None)
        if timer:
            timer.cancel()
        before = len(self._visible)
        self._visible = [toast for toast in self._visible if toast.id != message_id]
        if len(self._visible) == before:
            return False
        await self._publish()
        return True

    def _expire(self, message_id: str) -> None:
        task = asyncio.ensure_future(self.dismiss(message_id))
        self._expiring.add(task)
        task.add_done_callback(self._expiring.discard)

    def clear(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._visible.clear()

    async def _publish(self) -> None:
        snapshot = self.visible()
        for listener in self._listeners:
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # noqa: BLE001
                logger.warning("Notification listener failed")

    def pending_expiry(self, message_id: str) -> Optional[float]:
        """Loop time at which ``message_id`` will be dismissed."""
        timer = self._timers.get(message_id)
        return timer.when() if timer else None
