from fastapi import APIRouter, Depends, HTTPException

from apiforms.dependencies import get_workspace
from apiforms.models import (
    AddFieldRequest,
    EndpointRef,
    FieldUpdateRequest,
    FormView,
    RenameFieldRequest,
    SessionJsonRequest,
    TemplateApplyRequest,
)
from apiforms.services.workspace import FormSession, TemplateNotFoundError, Workspace

router = APIRouter(prefix="/api/forms", tags=["forms"])


def _session(workspace: Workspace, endpoint_id: str) -> FormSession:
    session = workspace.session(endpoint_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Endpoint not found")
    return session


@router.get("", response_model=FormView)
async def get_form(endpoint_id: str, workspace: Workspace = Depends(get_workspace)):
    return _session(workspace, endpoint_id).view()


@router.post("/field", response_model=FormView)
async def update_field(
    body: FieldUpdateRequest,
    workspace: Workspace = Depends(get_workspace),
):
    session = _session(workspace, body.endpoint_id)
    session.edit_field(body.key, body.value)
    return session.view()


@router.post("/fields", response_model=FormView)
async def add_field(
    body: AddFieldRequest,
    workspace: Workspace = Depends(get_workspace),
):
    session = _session(workspace, body.endpoint_id)
    try:
        session.add_field(body.key, body.kind)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return session.view()


@router.patch("/fields", response_model=FormView)
async def rename_field(
    body: RenameFieldRequest,
    workspace: Workspace = Depends(get_workspace),
):
    session = _session(workspace, body.endpoint_id)
    try:
        session.rename_field(body.old_key, body.new_key)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return session.view()


@router.delete("/fields", response_model=FormView)
async def remove_field(
    endpoint_id: str,
    key: str,
    workspace: Workspace = Depends(get_workspace),
):
    session = _session(workspace, endpoint_id)
    session.remove_field(key)
    return session.view()


@router.post("/json", response_model=FormView)
async def edit_json(
    body: SessionJsonRequest,
    workspace: Workspace = Depends(get_workspace),
):
    session = _session(workspace, body.endpoint_id)
    session.edit_text(body.text)
    return session.view()


@router.post("/json/format", response_model=FormView)
async def format_json(body: EndpointRef, workspace: Workspace = Depends(get_workspace)):
    session = _session(workspace, body.endpoint_id)
    session.format_text()
    return session.view()


@router.post("/template", response_model=FormView)
async def apply_template(
    body: TemplateApplyRequest,
    workspace: Workspace = Depends(get_workspace),
):
    session = _session(workspace, body.endpoint_id)
    try:
        session.apply_template(body.name)
    except TemplateNotFoundError:
        raise HTTPException(status_code=404, detail=f"Template not found: {body.name}")
    return session.view()


@router.post("/reset", response_model=FormView)
async def reset_form(body: EndpointRef, workspace: Workspace = Depends(get_workspace)):
    session = _session(workspace, body.endpoint_id)
    session.reset()
    return session.view()
