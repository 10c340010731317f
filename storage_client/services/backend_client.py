"""HTTP client for the file-storage backend.

This is the only module that speaks HTTP to the backend. Every failure
leaves it as one of the exceptions in ``storage_client.core.exceptions``:
``TransportError`` when no response arrived, ``ServerError`` for a non-200
answer (carrying the backend's ``{message}``), ``MalformedResponseError``
when a 200 body cannot be decoded.
"""
from __future__ import annotations

import inspect
import logging
import mimetypes
import os
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional
from urllib.parse import quote

import aiofiles
import httpx
from pydantic import TypeAdapter, ValidationError

from storage_client.core.config import Settings
from storage_client.core.exceptions import MalformedResponseError, ServerError, TransportError
from storage_client.models import DirectoryEntry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Awaitable[None] | None]

CREATE_DIR = "create_dir"
UPLOAD_FILE = "upload_file"
UPLOAD_CHUNK_SIZE = 64 * 1024

_ENTRIES = TypeAdapter(list[DirectoryEntry])


class _ProgressStream(httpx.AsyncByteStream):
	"""Wrap a request body and report the bytes handed to the transport."""

	def __init__(self, stream: httpx.AsyncByteStream, total: int, on_progress: Optional[ProgressCallback]) -> None:
		self._stream = stream
		self._total = total
		self._on_progress = on_progress

	async def __aiter__(self) -> AsyncIterator[bytes]:
		sent = 0
		async for chunk in self._stream:
			yield chunk
			sent += len(chunk)
			if self._on_progress:
				result = self._on_progress(sent, self._total)
				if inspect.isawaitable(result):
					await result

	async def aclose(self) -> None:
		await self._stream.aclose()


class _FileUploadBody(httpx.AsyncByteStream):
	"""``multipart/form-data`` body whose file part is read with aiofiles."""

	def __init__(self, fields: dict[str, str], path: Path, filename: str, content_type: str, chunk_size: int) -> None:
		self.boundary = os.urandom(16).hex()
		self._path = path
		self._chunk_size = chunk_size
		head = b"".join(self._field(name, value) for name, value in fields.items())
		quoted = filename.replace("\\", "\\\\").replace('"', "%22")
		head += (
			f"--{self.boundary}\r\n"
			f'Content-Disposition: form-data; name="file"; filename="{quoted}"\r\n'
			f"Content-Type: {content_type}\r\n\r\n"
		).encode()
		self._head = head
		self._tail = f"\r\n--{self.boundary}--\r\n".encode()
		self.length = len(head) + path.stat().st_size + len(self._tail)

	def _field(self, name: str, value: str) -> bytes:
		return (
			f"--{self.boundary}\r\n"
			f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
			f"{value}\r\n"
		).encode()

	async def __aiter__(self) -> AsyncIterator[bytes]:
		yield self._head
		async with aiofiles.open(self._path, "rb") as fh:
			while True:
				chunk = await fh.read(self._chunk_size)
				if not chunk:
					break
				yield chunk
		yield self._tail


class BackendClient:
	"""Thin async wrapper over the backend endpoints."""

	def __init__(
		self,
		settings: Settings,
		*,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self._settings = settings
		self._client = httpx.AsyncClient(
			base_url=settings.resolved_backend_url,
			timeout=httpx.Timeout(settings.request_timeout, write=None),
			transport=transport,
		)

	async def aclose(self) -> None:
		await self._client.aclose()

	# -------------------------
	# helpers
	# -------------------------
	async def _send(self, request: httpx.Request, *, stream: bool = False) -> httpx.Response:
		try:
			response = await self._client.send(request, stream=stream)
		except httpx.HTTPError as exc:
			logger.warning("Backend request %s %s failed: %s", request.method, request.url, exc)
			raise TransportError(str(exc) or exc.__class__.__name__) from exc
		if response.status_code != 200:
			if stream:
				await response.aread()
				await response.aclose()
			raise ServerError(self._error_message(response), status_code=response.status_code)
		return response

	@staticmethod
	def _error_message(response: httpx.Response) -> str:
		try:
			payload = response.json()
		except ValueError:
			payload = None
		if isinstance(payload, dict) and payload.get("message"):
			return str(payload["message"])
		return response.text.strip() or response.reason_phrase or f"HTTP {response.status_code}"

	@staticmethod
	def _json(response: httpx.Response):
		try:
			return response.json()
		except ValueError as exc:
			raise MalformedResponseError(f"Backend returned invalid JSON: {exc}") from exc

	# -------------------------
	# listing & stats
	# -------------------------
	async def list_files(self, path: str) -> list[DirectoryEntry]:
		request = self._client.build_request("GET", "files", params={"dir": path})
		response = await self._send(request)
		try:
			return _ENTRIES.validate_python(self._json(response))
		except ValidationError as exc:
			raise MalformedResponseError(f"Unexpected listing payload: {exc}") from exc

	async def free_space(self) -> str:
		request = self._client.build_request("GET", "stat")
		payload = self._json(await self._send(request))
		if not isinstance(payload, dict) or "free" not in payload:
			raise MalformedResponseError("Stat payload has no 'free' field")
		return str(payload["free"])

	# -------------------------
	# mutations
	# -------------------------
	async def create_dir(self, path: str) -> None:
		request = self._client.build_request(
			"POST",
			"files",
			files={"dir": (None, path), "type": (None, CREATE_DIR)},
		)
		await self._send(request)

	async def upload_file(
		self,
		target_path: str,
		local_path: str | os.PathLike[str],
		*,
		on_progress: Optional[ProgressCallback] = None,
		filename: Optional[str] = None,
	) -> int:
		"""Stream ``local_path`` into ``target_path``; returns the request body size."""
		local = Path(local_path)
		name = filename or local.name
		content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
		body = _FileUploadBody(
			{"dir": target_path, "type": UPLOAD_FILE},
			local,
			name,
			content_type,
			UPLOAD_CHUNK_SIZE,
		)
		total = body.length
		request = self._client.build_request(
			"POST",
			"files",
			headers={
				"Content-Type": f"multipart/form-data; boundary={body.boundary}",
				"Content-Length": str(total),
			},
		)
		request.stream = _ProgressStream(body, total, on_progress)
		logger.info("Uploading %s to '%s' (%s bytes)", name, target_path, total)
		await self._send(request)
		return total

	async def enqueue_download(self, url: str, path: str) -> None:
		request = self._client.build_request("POST", "download", data={"url": url, "dir": path})
		await self._send(request)

	async def download_file(
		self,
		remote_path: str,
		destination: str | os.PathLike[str],
		*,
		chunk_size: int = 1024 * 1024,
	) -> int:
		"""Save a stored file to ``destination``; returns bytes written."""
		request = self._client.build_request("GET", f"download/{quote(remote_path, safe='')}")
		response = await self._send(request, stream=True)
		written = 0
		target = Path(destination)
		try:
			async with aiofiles.open(target, "wb") as out:
				async for chunk in response.aiter_bytes(chunk_size):
					await out.write(chunk)
					written += len(chunk)
		except httpx.HTTPError as exc:
			target.unlink(missing_ok=True)
			raise TransportError(str(exc) or exc.__class__.__name__) from exc
		finally:
			await response.aclose()
		logger.info("Saved %s (%s bytes) to %s", remote_path, written, target)
		return written
