from fastapi import APIRouter, Depends

from apiforms.dependencies import get_auth_store
from apiforms.models import AuthConfigPayload, AuthConfigPublic
from apiforms.services.auth_service import AuthStore

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("", response_model=AuthConfigPublic)
async def get_auth(store: AuthStore = Depends(get_auth_store)):
    return AuthConfigPublic.from_config(store.config)


@router.put("", response_model=AuthConfigPublic)
async def update_auth(
    body: AuthConfigPayload,
    store: AuthStore = Depends(get_auth_store),
):
    config = await store.set(body.root)
    return AuthConfigPublic.from_config(config)


@router.delete("", response_model=AuthConfigPublic)
async def clear_auth(store: AuthStore = Depends(get_auth_store)):
    config = await store.clear()
    return AuthConfigPublic.from_config(config)
