"""Operation id propagation for log records."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_operation_id: ContextVar[str | None] = ContextVar("operation_id", default=None)


def set_operation_id(operation_id: str) -> None:
    _operation_id.set(operation_id)


def get_operation_id() -> str | None:
    return _operation_id.get()


def clear_operation_id() -> None:
    _operation_id.set(None)


@contextmanager
def operation_context(operation_id: str) -> Iterator[None]:
    """Tag every record logged inside the block (and tasks created in it)."""
    token = _operation_id.set(operation_id)
    try:
        yield
    finally:
        _operation_id.reset(token)
