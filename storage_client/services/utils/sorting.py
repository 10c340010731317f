"""Listing order: directories first, then the selected column and direction."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from storage_client.models import DirectoryEntry, SortColumn, SortDirection, SortState

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _sort_key(column: SortColumn):
    if column == SortColumn.TIMESTAMP:
        return lambda entry: entry.timestamp or _EPOCH
    return lambda entry: entry.name.casefold()


def order_entries(entries: Iterable[DirectoryEntry], sort_state: SortState) -> list[DirectoryEntry]:
    """Return a new list ordered for display.

    Directories always lead. Descending is the exact reverse of the
    ascending order of each group, ties included.
    """
    key = _sort_key(sort_state.column)
    dirs: list[DirectoryEntry] = []
    files: list[DirectoryEntry] = []
    for entry in entries:
        (dirs if entry.is_dir else files).append(entry)
    dirs.sort(key=key)
    files.sort(key=key)
    if sort_state.direction == SortDirection.DESC:
        dirs.reverse()
        files.reverse()
    return dirs + files
