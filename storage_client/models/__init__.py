"""Domain models shared across services."""
from .domain import (
    ConnectionState,
    DirectoryEntry,
    DownloadIndicator,
    DownloadProgress,
    DownloadTask,
    EntryType,
    PushEvent,
    PushMessage,
    QueueDrained,
    Severity,
    SortColumn,
    SortDirection,
    SortState,
    ToastMessage,
    UploadIndicator,
    UploadSession,
    UploadState,
    ViewState,
)

__all__ = [
    "ConnectionState",
    "DirectoryEntry",
    "DownloadIndicator",
    "DownloadProgress",
    "DownloadTask",
    "EntryType",
    "PushEvent",
    "PushMessage",
    "QueueDrained",
    "Severity",
    "SortColumn",
    "SortDirection",
    "SortState",
    "ToastMessage",
    "UploadIndicator",
    "UploadSession",
    "UploadState",
    "ViewState",
]
