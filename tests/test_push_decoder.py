"""Tests for push frame decoding."""

import json

import pytest

from storage_client.models import DownloadProgress, PushMessage, QueueDrained
from storage_client.services.utils.push_decoder import PushDecodeError, decode_push_message


def test_download_with_filename_is_progress():
    frame = json.dumps(
        {
            "type": "download",
            "ephemeral": True,
            "data": {"filename": "iso.img", "total_bytes": 400, "completed_bytes": 100},
        }
    )
    event = decode_push_message(frame)
    assert isinstance(event, DownloadProgress)
    assert event.task.filename == "iso.img"
    assert (event.task.completed_bytes, event.task.total_bytes) == (100, 400)


@pytest.mark.parametrize("data", [{}, {"filename": ""}, None])
def test_download_without_filename_is_queue_drained(data):
    assert isinstance(decode_push_message(json.dumps({"type": "download", "data": data})), QueueDrained)


def test_message_keeps_severity_and_subsystem():
    frame = {"type": "message", "data": {"message": "Saved", "type": "success", "subsystem": "download"}}
    event = decode_push_message(json.dumps(frame).encode())
    assert event == PushMessage(text="Saved", severity="success", subsystem="download")


def test_message_with_unknown_severity_is_an_error():
    event = decode_push_message('{"type": "message", "data": {"message": "odd", "type": "warning"}}')
    assert event.severity == "error"


@pytest.mark.parametrize("kind", ["users", "progress", "gpu", "service", None])
def test_other_types_are_ignored(kind):
    assert decode_push_message(json.dumps({"type": kind, "data": {}})) is None


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", "42"])
def test_undecodable_frames_raise(raw):
    with pytest.raises(PushDecodeError):
        decode_push_message(raw)
