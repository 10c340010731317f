"""Domain models of the storage client."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntryType(str, Enum):
    DIR = "dir"
    FILE = "file"


class SortColumn(str, Enum):
    NAME = "name"
    TIMESTAMP = "timestamp"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class UploadState(str, Enum):
    """Lifecycle of one upload session."""

    PENDING = "pending"
    ACTIVE = "active"
    ABORTED = "aborted"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {UploadState.ABORTED, UploadState.SUCCEEDED, UploadState.FAILED}


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


Severity = Literal["success", "error"]


class DirectoryEntry(BaseModel):
    """One directory or file record returned by a listing fetch."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: EntryType
    timestamp: Optional[datetime] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _from_epoch_millis(cls, value: Any) -> Any:
        # the backend sends Unix milliseconds; 0 means "unknown"
        if isinstance(value, bool):
            raise ValueError("timestamp must be a number of milliseconds")
        if isinstance(value, (int, float)):
            if value <= 0:
                return None
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        return value

    @property
    def is_dir(self) -> bool:
        return self.type == EntryType.DIR


class SortState(BaseModel):
    """Listing order selected through the listing header."""

    model_config = ConfigDict(frozen=True)

    column: SortColumn = SortColumn.NAME
    direction: SortDirection = SortDirection.ASC

    def toggled(self, column: SortColumn) -> "SortState":
        """Flip direction when the same column is picked again, else reset to ascending."""
        column = SortColumn(column)
        if column == self.column:
            flipped = SortDirection.DESC if self.direction == SortDirection.ASC else SortDirection.ASC
            return SortState(column=column, direction=flipped)
        return SortState(column=column, direction=SortDirection.ASC)


class UploadSession(BaseModel):
    filename: str
    target_path: str
    bytes_sent: int = 0
    bytes_total: int = 0
    state: UploadState = UploadState.PENDING
    error: Optional[str] = None


class DownloadTask(BaseModel):
    """Server-owned remote download, as last reported on the push channel."""

    filename: str
    completed_bytes: int = 0
    total_bytes: int = 0


class ToastMessage(BaseModel):
    text: str
    severity: Severity = "success"
    id: str = Field(default_factory=lambda: uuid4().hex)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DownloadProgress(BaseModel):
    kind: Literal["download_progress"] = "download_progress"
    task: DownloadTask


class QueueDrained(BaseModel):
    kind: Literal["queue_drained"] = "queue_drained"


class PushMessage(BaseModel):
    kind: Literal["message"] = "message"
    text: str
    severity: Severity = "error"
    subsystem: Optional[str] = None


PushEvent = Union[DownloadProgress, QueueDrained, PushMessage]


class DownloadIndicator(BaseModel):
    filename: str
    percent: Optional[float] = None


class UploadIndicator(BaseModel):
    filename: str
    percent: float = 0.0
    state: UploadState = UploadState.PENDING


class ViewState(BaseModel):
    """Everything the page needs to render the current directory."""

    path: str = ""
    parent: Optional[str] = None
    entries: List[DirectoryEntry] = Field(default_factory=list)
    sort: SortState = Field(default_factory=SortState)
    free_space: Optional[str] = None
    connection: ConnectionState = ConnectionState.CLOSED
    download: Optional[DownloadIndicator] = None
    upload: Optional[UploadIndicator] = None
    busy: bool = False
    toasts: List[ToastMessage] = Field(default_factory=list)
