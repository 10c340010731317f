"""Root API router that aggregates all endpoint modules."""
from fastapi import APIRouter

from storage_client.api.routes import files, health, view, view_stream

api_router = APIRouter(prefix="/api")
api_router.include_router(view.router, tags=["view"])
api_router.include_router(view_stream.router, tags=["view"])
api_router.include_router(files.router, tags=["files"])
api_router.include_router(health.router, tags=["health"])
