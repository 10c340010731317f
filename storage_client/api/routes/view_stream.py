"""Server-sent view events."""
from __future__ import annotations

import asyncio
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from storage_client.api.dependencies import get_view_stream_service
from storage_client.core.exceptions import ServiceUnavailableError
from storage_client.services.view_stream_service import StreamEvent, Subscription, ViewStreamService

router = APIRouter()

KEEPALIVE_SECONDS = 25


async def _events(
    request: Request,
    stream: ViewStreamService,
    queue: Subscription,
    opening: StreamEvent,
) -> AsyncIterator[str]:
    try:
        yield opening.encode()
        while not stream.closed and not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                # SSE comment line; keeps proxies from closing an idle stream
                yield ": keepalive\n\n"
                continue
            if event is None:
                break
            yield event.encode()
    finally:
        stream.unsubscribe(queue)


@router.get("/view/stream", summary="Live view events")
async def stream_view(
    request: Request,
    stream: ViewStreamService = Depends(get_view_stream_service),
) -> StreamingResponse:
    if stream.closed:
        raise ServiceUnavailableError("View stream is shutting down")
    queue, opening = stream.subscribe()
    return StreamingResponse(
        _events(request, stream, queue, opening),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
