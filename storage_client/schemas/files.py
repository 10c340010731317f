"""Schemas for directory, upload and download endpoints."""
from typing import Optional

from pydantic import BaseModel, Field

from storage_client.models import UploadState


class CreateDirectoryRequest(BaseModel):
    """Name of a directory to create under the current path."""

    name: str = Field(min_length=1)


class RemoteDownloadRequest(BaseModel):
    """URL the backend should fetch into the current directory."""

    url: str = Field(min_length=1)


class SaveFileRequest(BaseModel):
    """Stored file of the current directory and the local destination path."""

    name: str = Field(min_length=1)
    destination: str = Field(min_length=1)


class SaveFileResponse(BaseModel):
    name: str
    destination: str
    bytes_written: int


class UploadStatusResponse(BaseModel):
    filename: str
    target_path: str
    state: UploadState
    percent: float
    bytes_sent: int
    bytes_total: int
    error: Optional[str] = None
