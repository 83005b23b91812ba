import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException

import apiforms.config as _config
from apiforms.dependencies import get_http_client, get_workspace
from apiforms.models import Endpoint, LoadedSpec, SpecLoadRequest
from apiforms.services.spec_service import (
    SpecFetchError,
    SpecParseError,
    enumerate_endpoints,
    load_spec,
)
from apiforms.services.workspace import Workspace

logger = logging.getLogger("apiforms.spec")

router = APIRouter(prefix="/api/spec", tags=["spec"])


def _loaded_spec(workspace: Workspace) -> LoadedSpec:
    return LoadedSpec(
        **workspace.spec.model_dump(exclude={"raw"}),
        endpoints=workspace.endpoints,
    )


@router.post("/load", response_model=LoadedSpec)
async def load_spec_endpoint(
    body: SpecLoadRequest,
    workspace: Workspace = Depends(get_workspace),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    url = body.url or _config.DEFAULT_SPEC_URL
    try:
        document = await load_spec(url, http_client)
    except SpecFetchError as exc:
        workspace.clear()
        logger.warning("spec_fetch_failed url=%s error=%s", url, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    except SpecParseError as exc:
        workspace.clear()
        logger.warning("spec_parse_failed url=%s error=%s", url, exc)
        raise HTTPException(status_code=422, detail=str(exc))

    if body.base_url:
        document = document.model_copy(update={"base_url": body.base_url})
    workspace.replace(document, enumerate_endpoints(document.raw))
    logger.info("spec_loaded url=%s endpoints=%d", url, len(workspace.endpoints))
    return _loaded_spec(workspace)


@router.get("")
async def get_spec(workspace: Workspace = Depends(get_workspace)):
    if workspace.spec is None:
        return {"loaded": False}
    return _loaded_spec(workspace)


@router.delete("")
async def clear_spec(workspace: Workspace = Depends(get_workspace)):
    workspace.clear()
    return {"cleared": True}


@router.get("/endpoints", response_model=list[Endpoint])
async def list_endpoints(workspace: Workspace = Depends(get_workspace)):
    return workspace.endpoints
