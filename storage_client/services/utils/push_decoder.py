"""Decode push channel frames into typed events."""
from __future__ import annotations

import json
from typing import Any, Optional

from storage_client.models import DownloadProgress, DownloadTask, PushEvent, PushMessage, QueueDrained

DOWNLOAD_UPDATE = "download"
MESSAGE_UPDATE = "message"


class PushDecodeError(ValueError):
    """Frame is not a JSON object of the form ``{type, data}``."""


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def decode_push_message(raw: str | bytes) -> Optional[PushEvent]:
    """Return the event carried by ``raw``, or ``None`` for types this client ignores."""
    try:
        packet = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise PushDecodeError(f"invalid JSON frame: {exc}") from exc
    if not isinstance(packet, dict):
        raise PushDecodeError("frame is not an object")

    data = packet.get("data")
    if not isinstance(data, dict):
        data = {}
    packet_type = packet.get("type")

    if packet_type == DOWNLOAD_UPDATE:
        filename = data.get("filename")
        if not filename:
            return QueueDrained()
        return DownloadProgress(
            task=DownloadTask(
                filename=str(filename),
                completed_bytes=_as_int(data.get("completed_bytes")),
                total_bytes=_as_int(data.get("total_bytes")),
            )
        )
    if packet_type == MESSAGE_UPDATE:
        severity = data.get("type")
        return PushMessage(
            text=str(data.get("message") or ""),
            severity=severity if severity in ("success", "error") else "error",
            subsystem=data.get("subsystem"),
        )
    return None
