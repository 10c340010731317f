"""Directory, upload and download endpoints."""
import contextlib
import logging
import os
import tempfile
from pathlib import Path

import aiofiles
from fastapi import APIRouter, Depends, File, UploadFile, status

from storage_client.api.dependencies import get_view_controller
from storage_client.core.exceptions import (
	BadRequestError,
	ConflictError,
	NotFoundError,
	StorageClientError,
	normalize_client_error,
)
from storage_client.schemas import (
	CreateDirectoryRequest,
	RemoteDownloadRequest,
	SaveFileRequest,
	SaveFileResponse,
	SimpleMessage,
	UploadStatusResponse,
)
from storage_client.services.upload_service import UploadHandle
from storage_client.services.view_controller import ViewController

logger = logging.getLogger(__name__)

router = APIRouter()

SPOOL_CHUNK = 1024 * 1024


def _upload_status(handle: UploadHandle) -> UploadStatusResponse:
	session = handle.session
	return UploadStatusResponse(
		filename=session.filename,
		target_path=session.target_path,
		state=session.state,
		percent=handle.percent,
		bytes_sent=session.bytes_sent,
		bytes_total=session.bytes_total,
		error=session.error,
	)


@router.post("/dirs", response_model=SimpleMessage, summary="Create a directory in the current path")
async def create_directory(
	payload: CreateDirectoryRequest,
	view: ViewController = Depends(get_view_controller),
) -> SimpleMessage:
	try:
		created = await view.create_dir(payload.name)
	except ValueError as exc:
		raise BadRequestError(str(exc)) from exc
	except StorageClientError as exc:
		raise normalize_client_error(exc) from exc
	return SimpleMessage(success=True, message=f"Created {created}")


@router.post(
	"/uploads",
	response_model=UploadStatusResponse,
	status_code=status.HTTP_202_ACCEPTED,
	summary="Upload a file into the current path",
)
async def upload_file(
	file: UploadFile = File(..., description="File to upload"),
	view: ViewController = Depends(get_view_controller),
) -> UploadStatusResponse:
	"""Spool the file locally, then upload it in the background."""
	if not file.filename:
		raise BadRequestError("Invalid file")
	if view.active_upload is not None:
		raise ConflictError(f"Upload of {view.active_upload.session.filename} is still running")

	fd, spool_name = tempfile.mkstemp(prefix="storage-client-", suffix=".upload")
	os.close(fd)
	spool_path = Path(spool_name)
	started = False
	try:
		async with aiofiles.open(spool_path, "wb") as handle:
			while True:
				chunk = await file.read(SPOOL_CHUNK)
				if not chunk:
					break
				await handle.write(chunk)
		upload = view.start_upload(spool_path, filename=file.filename, discard_file=True)
		started = True
	except StorageClientError as exc:
		raise normalize_client_error(exc) from exc
	finally:
		await file.close()
		if not started:
			with contextlib.suppress(OSError):
				spool_path.unlink()
	logger.info("Accepted upload of %s into '%s'", file.filename, upload.session.target_path)
	return _upload_status(upload)


@router.get("/uploads/active", response_model=UploadStatusResponse, summary="Progress of the running upload")
async def active_upload(view: ViewController = Depends(get_view_controller)) -> UploadStatusResponse:
	handle = view.active_upload
	if handle is None:
		raise NotFoundError("No upload in progress")
	return _upload_status(handle)


@router.delete("/uploads/active", response_model=SimpleMessage, summary="Abort the running upload")
async def abort_upload(view: ViewController = Depends(get_view_controller)) -> SimpleMessage:
	if not view.abort_upload():
		raise NotFoundError("No upload in progress")
	return SimpleMessage(success=True, message="Upload abort requested")


@router.post(
	"/downloads",
	response_model=SimpleMessage,
	status_code=status.HTTP_202_ACCEPTED,
	summary="Queue a server-side download into the current path",
)
async def queue_download(
	payload: RemoteDownloadRequest,
	view: ViewController = Depends(get_view_controller),
) -> SimpleMessage:
	try:
		await view.remote_download(payload.url)
	except ValueError as exc:
		raise BadRequestError(str(exc)) from exc
	return SimpleMessage(success=True, message="Download queued")


@router.post("/files/save", response_model=SaveFileResponse, summary="Save a stored file locally")
async def save_file(
	payload: SaveFileRequest,
	view: ViewController = Depends(get_view_controller),
) -> SaveFileResponse:
	if "/" in payload.name:
		raise BadRequestError("File name must not contain '/'")
	try:
		written = await view.save_file(payload.name, payload.destination)
	except StorageClientError as exc:
		raise normalize_client_error(exc) from exc
	except OSError as exc:
		raise BadRequestError(f"Cannot write {payload.destination}: {exc.strerror or exc}") from exc
	return SaveFileResponse(name=payload.name, destination=payload.destination, bytes_written=written)
