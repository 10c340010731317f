"""Single-flight file upload with progress and cancellation.

One ``UploadHandle`` exists per session. The handle runs the transfer in an
inner task so that ``abort()`` cancels only the request; the outer task
always survives to record the terminal state and fire the completion
callback exactly once, after the last progress event.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Optional

from storage_client.core.exceptions import ServerError, UploadInProgressError, UploadRejectedError
from storage_client.core.operation_context import operation_context
from storage_client.core.tasks import monitor_task
from storage_client.models import UploadSession, UploadState
from storage_client.services.backend_client import BackendClient
from storage_client.services.utils.path_resolver import normalize
from storage_client.services.utils.progress import percent_of

logger = logging.getLogger(__name__)

SessionHook = Callable[["UploadHandle"], Awaitable[None] | None]


async def _call_hook(hook: Optional[SessionHook], handle: "UploadHandle", label: str) -> None:
	if not hook:
		return
	try:
		result = hook(handle)
		if inspect.isawaitable(result):
			await result
	except Exception:  # noqa: BLE001
		logger.warning("Upload %s hook failed for %s", label, handle.session.filename, exc_info=True)


class UploadHandle:
	"""Observe and control one upload session."""

	def __init__(
		self,
		controller: "UploadController",
		session: UploadSession,
		local_path: Path,
		*,
		on_progress: Optional[SessionHook] = None,
		on_complete: Optional[SessionHook] = None,
	) -> None:
		self._controller = controller
		self.session = session
		self._local_path = local_path
		self._on_progress = on_progress
		self._on_complete = on_complete
		self._abort_requested = False
		self._transfer: Optional[asyncio.Task[int]] = None
		self._task: Optional[asyncio.Task[None]] = None
		self._done = asyncio.Event()
		self._percent = 0.0

	@property
	def state(self) -> UploadState:
		return self.session.state

	@property
	def percent(self) -> float:
		return self._percent

	@property
	def done(self) -> bool:
		return self._done.is_set()

	def abort(self) -> bool:
		"""Cancel the transfer; returns False when the session already ended."""
		if self.session.state.is_terminal or self._abort_requested:
			return False
		self._abort_requested = True
		if self._transfer and not self._transfer.done():
			self._transfer.cancel()
		logger.info("Upload of %s abort requested", self.session.filename)
		return True

	async def wait(self) -> UploadSession:
		await self._done.wait()
		return self.session

	def _launch(self) -> None:
		with operation_context(f"upload:{self.session.filename}"):
			self._task = monitor_task(
				asyncio.create_task(self._run(), name=f"upload-{self.session.filename}"),
				name="upload",
				logger=logger,
			)

	async def _handle_progress(self, sent: int, total: int) -> None:
		if total <= 0 or self.session.state != UploadState.ACTIVE:
			return
		if sent < self.session.bytes_sent:
			return
		self.session.bytes_sent = sent
		self.session.bytes_total = total
		percent = percent_of(sent, total)
		if percent is not None and percent >= self._percent:
			self._percent = percent
		await _call_hook(self._on_progress, self, "progress")

	async def _run(self) -> None:
		try:
			if self._abort_requested:
				raise asyncio.CancelledError()
			self.session.state = UploadState.ACTIVE
			self._transfer = asyncio.create_task(
				self._controller.backend.upload_file(
					self.session.target_path,
					self._local_path,
					on_progress=self._handle_progress,
					filename=self.session.filename,
				)
			)
			await self._transfer
		except asyncio.CancelledError:
			self._terminate(UploadState.ABORTED)
		except ServerError as exc:
			self._terminate(UploadState.FAILED, exc.message)
		except Exception as exc:  # noqa: BLE001
			logger.warning("Upload of %s failed: %s", self.session.filename, exc)
			self._terminate(UploadState.FAILED, str(exc) or exc.__class__.__name__)
		else:
			self._terminate(UploadState.SUCCEEDED)
		finally:
			self._controller._release(self)
		try:
			await _call_hook(self._on_complete, self, "completion")
		finally:
			self._done.set()

	def _terminate(self, state: UploadState, error: Optional[str] = None) -> None:
		self.session.state = state
		self.session.error = error
		if state == UploadState.SUCCEEDED and self.session.bytes_total > 0:
			self.session.bytes_sent = self.session.bytes_total
			self._percent = 100.0
		logger.info("Upload of %s finished: %s%s", self.session.filename, state.value, f" ({error})" if error else "")


class UploadController:
	"""Drive at most one upload at a time."""

	def __init__(self, backend: BackendClient, *, max_upload_bytes: int = 0) -> None:
		self.backend = backend
		self._max_upload_bytes = max_upload_bytes
		self._active: Optional[UploadHandle] = None

	@property
	def active(self) -> Optional[UploadHandle]:
		return self._active

	def start(
		self,
		file: str | os.PathLike[str],
		target_path: str,
		*,
		on_progress: Optional[SessionHook] = None,
		on_complete: Optional[SessionHook] = None,
		filename: Optional[str] = None,
	) -> UploadHandle:
		if self._active is not None:
			raise UploadInProgressError(f"Upload of {self._active.session.filename} is still running")

		local_path = Path(file)
		try:
			size = local_path.stat().st_size
		except OSError as exc:
			raise UploadRejectedError(f"Cannot read {local_path}: {exc.strerror or exc}") from exc
		if not local_path.is_file():
			raise UploadRejectedError(f"{local_path} is not a file")
		if self._max_upload_bytes and size > self._max_upload_bytes:
			raise UploadRejectedError("File too big")

		session = UploadSession(
			filename=filename or local_path.name,
			target_path=normalize(target_path),
			bytes_total=size,
		)
		handle = UploadHandle(
			self,
			session,
			local_path,
			on_progress=on_progress,
			on_complete=on_complete,
		)
		self._active = handle
		handle._launch()
		return handle

	def _release(self, handle: UploadHandle) -> None:
		if self._active is handle:
			self._active = None

	async def aclose(self) -> None:
		"""Abort the running session, if any, and wait for it to settle."""
		handle = self._active
		if handle is None:
			return
		handle.abort()
		await handle.wait()
