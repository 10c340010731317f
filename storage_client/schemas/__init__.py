"""Pydantic schemas exposed by the companion API."""
from .files import (
    CreateDirectoryRequest,
    RemoteDownloadRequest,
    SaveFileRequest,
    SaveFileResponse,
    UploadStatusResponse,
)
from .view import NavigateRequest, SimpleMessage, SortRequest, SortResponse

__all__ = [
    "CreateDirectoryRequest",
    "NavigateRequest",
    "RemoteDownloadRequest",
    "SaveFileRequest",
    "SaveFileResponse",
    "SimpleMessage",
    "SortRequest",
    "SortResponse",
    "UploadStatusResponse",
]
