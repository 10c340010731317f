"""View navigation endpoints."""
from fastapi import APIRouter, Depends

from storage_client.api.dependencies import get_view_controller
from storage_client.core.exceptions import StorageClientError, normalize_client_error
from storage_client.models import ViewState
from storage_client.schemas import NavigateRequest, SimpleMessage, SortRequest, SortResponse
from storage_client.services.view_controller import ViewController

router = APIRouter()


@router.get("/view", response_model=ViewState, summary="Current view snapshot")
async def get_view(view: ViewController = Depends(get_view_controller)) -> ViewState:
    return view.snapshot()


@router.post("/navigate", response_model=ViewState, summary="Open a directory")
async def navigate(
    payload: NavigateRequest,
    view: ViewController = Depends(get_view_controller),
) -> ViewState:
    try:
        return await view.navigate(payload.locator)
    except StorageClientError as exc:
        raise normalize_client_error(exc) from exc


@router.post("/refresh", response_model=ViewState, summary="Reload the current directory")
async def refresh(view: ViewController = Depends(get_view_controller)) -> ViewState:
    try:
        return await view.refresh()
    except StorageClientError as exc:
        raise normalize_client_error(exc) from exc


@router.post("/sort", response_model=SortResponse, summary="Toggle listing order")
async def toggle_sort(
    payload: SortRequest,
    view: ViewController = Depends(get_view_controller),
) -> SortResponse:
    sort = await view.toggle_sort(payload.column)
    return SortResponse(sort=sort, entry_count=len(view.context.entries))


@router.post("/toasts/{toast_id}/dismiss", response_model=SimpleMessage, summary="Dismiss a toast")
async def dismiss_toast(
    toast_id: str,
    view: ViewController = Depends(get_view_controller),
) -> SimpleMessage:
    dismissed = await view.dismiss_toast(toast_id)
    return SimpleMessage(success=dismissed, message="Dismissed" if dismissed else "Already gone")
