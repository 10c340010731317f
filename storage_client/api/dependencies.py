"""FastAPI dependency providers."""
from fastapi import Depends, Request

from storage_client.services.registry import ServiceRegistry
from storage_client.services.view_controller import ViewController
from storage_client.services.view_stream_service import ViewStreamService


def get_service_registry(request: Request) -> ServiceRegistry:
    """Return the service registry stored on the FastAPI application state."""

    registry = request.app.state.services
    if not isinstance(registry, ServiceRegistry):
        raise RuntimeError("Service registry not initialised")
    return registry


def get_view_controller(registry: ServiceRegistry = Depends(get_service_registry)) -> ViewController:
    return registry.view_controller


def get_view_stream_service(registry: ServiceRegistry = Depends(get_service_registry)) -> ViewStreamService:
    return registry.view_stream_service
