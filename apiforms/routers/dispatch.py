import httpx
from fastapi import APIRouter, Depends, HTTPException

from apiforms.dependencies import get_auth_store, get_http_client, get_workspace
from apiforms.models import ApiResponse, SendRequest
from apiforms.services.auth_service import AuthStore
from apiforms.services.dispatch_service import send_request
from apiforms.services.workspace import Workspace

router = APIRouter(prefix="/api/requests", tags=["requests"])


@router.post("/send", response_model=ApiResponse)
async def send(
    body: SendRequest,
    workspace: Workspace = Depends(get_workspace),
    auth_store: AuthStore = Depends(get_auth_store),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    session = workspace.session(body.endpoint_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Endpoint not found")

    value = body.value if body.value is not None else session.value
    result = await send_request(
        session.endpoint,
        value,
        auth_store.config,
        http_client,
        workspace.base_url,
    )
    session.last_response = result
    return result


@router.get("/last", response_model=ApiResponse)
async def last_response(endpoint_id: str, workspace: Workspace = Depends(get_workspace)):
    session = workspace.session(endpoint_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Endpoint not found")
    if session.last_response is None:
        raise HTTPException(status_code=404, detail="No request sent yet")
    return session.last_response
