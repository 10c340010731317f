"""Application services."""
from storage_client.services.registry import ServiceRegistry

__all__ = ["ServiceRegistry"]
