"""FastAPI application entrypoint."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional
from uuid import uuid4

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import MutableHeaders
from starlette.requests import Request

from storage_client import __version__
from storage_client.api.error_handlers import register_exception_handlers
from storage_client.api.router import api_router
from storage_client.core.config import Settings, get_settings
from storage_client.core.logging import configure_logging
from storage_client.core.operation_context import clear_operation_id, set_operation_id
from storage_client.services import ServiceRegistry
from storage_client.services.live_queue_service import Connector


class RequestIdMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        set_operation_id(request_id)

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            clear_operation_id()


def create_app(
    settings: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    connector: Optional[Connector] = None,
) -> FastAPI:
    """Build the companion app; ``transport`` and ``connector`` replace the network."""

    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage startup and shutdown of background services."""

        registry = ServiceRegistry(settings, transport=transport, connector=connector)
        app.state.services = registry

        await registry.startup()
        try:
            yield
        finally:
            await registry.shutdown()

    app = FastAPI(
        title="Storage Client API",
        description="Directory browser, uploads and live download queue for a file-storage backend",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)
    app.include_router(api_router)
    register_exception_handlers(app)
    return app


app = create_app()
