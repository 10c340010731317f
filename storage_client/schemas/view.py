"""Schemas for view navigation endpoints."""
from pydantic import BaseModel, Field

from storage_client.models import SortColumn, SortState


class SimpleMessage(BaseModel):
    """Generic success/error wrapper."""

    success: bool
    message: str


class NavigateRequest(BaseModel):
    """Location to open; a leading ``#`` is accepted."""

    locator: str = ""


class SortRequest(BaseModel):
    column: SortColumn


class SortResponse(BaseModel):
    sort: SortState
    entry_count: int = Field(ge=0)
