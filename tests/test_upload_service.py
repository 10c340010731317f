"""Tests for the single-flight upload controller."""

import asyncio

import pytest

from storage_client.core.exceptions import ServerError, UploadInProgressError, UploadRejectedError
from storage_client.models import UploadState
from storage_client.services.upload_service import UploadController


class ScriptedBackend:
    """Backend stand-in whose upload replays a list of progress events."""

    def __init__(self, events=(), *, error=None, hold=False):
        self.events = list(events)
        self.error = error
        self.hold = hold
        self.calls = []

    async def upload_file(self, target_path, local_path, *, on_progress=None, filename=None):
        self.calls.append((target_path, filename))
        for sent, total in self.events:
            await on_progress(sent, total)
        if self.hold:
            await asyncio.Event().wait()
        if self.error:
            raise self.error
        return self.events[-1][1] if self.events else 0


@pytest.fixture
def local_file(tmp_path):
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"x" * 100)
    return path


async def test_progress_is_monotonic_and_ignores_zero_total(local_file):
    backend = ScriptedBackend([(0, 0), (50, 100), (30, 100), (0, 0), (80, 100), (100, 100)])
    controller = UploadController(backend)
    seen = []
    completed = []

    handle = controller.start(
        local_file,
        "#pics",
        on_progress=lambda h: seen.append(h.percent),
        on_complete=lambda h: completed.append((h.state, list(seen))),
    )
    session = await handle.wait()

    assert seen == [50.0, 80.0, 100.0]
    assert session.state == UploadState.SUCCEEDED
    assert session.target_path == "pics/"
    assert completed == [(UploadState.SUCCEEDED, seen)]
    assert controller.active is None


async def test_abort_before_completion_is_aborted_not_failed(local_file):
    backend = ScriptedBackend([(10, 100)], hold=True)
    controller = UploadController(backend)
    completed = []
    handle = controller.start(local_file, "", on_complete=lambda h: completed.append(h.state))
    await asyncio.sleep(0.01)
    assert handle.state == UploadState.ACTIVE

    assert handle.abort() is True
    session = await handle.wait()

    assert session.state == UploadState.ABORTED
    assert session.error is None
    assert completed == [UploadState.ABORTED]
    assert handle.abort() is False
    assert controller.active is None


async def test_abort_before_start(local_file):
    backend = ScriptedBackend([(10, 100)])
    controller = UploadController(backend)
    handle = controller.start(local_file, "")
    handle.abort()

    session = await handle.wait()

    assert session.state == UploadState.ABORTED
    assert backend.calls == []


async def test_server_error_fails_with_message(local_file):
    backend = ScriptedBackend([(100, 100)], error=ServerError("disk full", status_code=500))
    controller = UploadController(backend)

    session = await controller.start(local_file, "").wait()

    assert session.state == UploadState.FAILED
    assert session.error == "disk full"


async def test_second_start_is_rejected_while_active(local_file):
    backend = ScriptedBackend(hold=True)
    controller = UploadController(backend)
    first = controller.start(local_file, "")

    with pytest.raises(UploadInProgressError):
        controller.start(local_file, "")

    await controller.aclose()
    assert first.state == UploadState.ABORTED
    second = controller.start(local_file, "")
    second.abort()
    await second.wait()


async def test_size_limit_rejects_before_sending(local_file):
    backend = ScriptedBackend()
    controller = UploadController(backend, max_upload_bytes=99)

    with pytest.raises(UploadRejectedError, match="File too big"):
        controller.start(local_file, "")
    assert backend.calls == []
    assert controller.active is None


async def test_missing_file_is_rejected(tmp_path):
    controller = UploadController(ScriptedBackend())

    with pytest.raises(UploadRejectedError):
        controller.start(tmp_path / "gone.bin", "")
    with pytest.raises(UploadRejectedError, match="not a file"):
        controller.start(tmp_path, "")


async def test_filename_override(local_file):
    backend = ScriptedBackend([(1, 1)])
    controller = UploadController(backend)

    session = await controller.start(local_file, "a/", filename="holiday.jpg").wait()

    assert session.filename == "holiday.jpg"
    assert backend.calls == [("a/", "holiday.jpg")]
