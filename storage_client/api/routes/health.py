"""Health check endpoint."""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from storage_client.api.dependencies import get_service_registry
from storage_client.models import ConnectionState
from storage_client.services.registry import ServiceRegistry

router = APIRouter()


@router.get("/health", summary="Service health")
async def health_check(registry: ServiceRegistry = Depends(get_service_registry)) -> dict:
    live_queue = registry.live_queue
    view = registry.view_controller.snapshot()
    return {
        "status": "healthy" if live_queue.state == ConnectionState.OPEN else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend_url": registry.settings.resolved_backend_url,
        "push_channel": live_queue.state.value,
        "push_connection_attempts": live_queue.connection_count,
        "path": view.path,
        "free_space": view.free_space,
        "upload_active": registry.upload_controller.active is not None,
    }
