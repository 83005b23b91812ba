import httpx
from fastapi import Request

from apiforms.services.auth_service import AuthStore
from apiforms.services.workspace import Workspace


def get_workspace(request: Request) -> Workspace:
    return request.app.state.workspace


def get_auth_store(request: Request) -> AuthStore:
    return request.app.state.auth_store


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client
