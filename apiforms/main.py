import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

import apiforms.config as _config
from apiforms import __version__
from apiforms.routers import auth, dispatch, forms, json_editor, spec
from apiforms.services.auth_service import AuthStore
from apiforms.services.store import JsonFileStore
from apiforms.services.workspace import Workspace

logger = logging.getLogger("apiforms.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=_config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    storage = JsonFileStore(_config.DATA_DIR / "storage.json")
    await storage.load()
    app.state.auth_store = AuthStore(storage)
    await app.state.auth_store.load()
    app.state.workspace = Workspace()
    app.state.http_client = httpx.AsyncClient(timeout=_config.HTTP_TIMEOUT)
    logger.info("startup_complete data_dir=%s", _config.DATA_DIR)
    yield
    await app.state.http_client.aclose()


app = FastAPI(title="API Forms", version=__version__, lifespan=lifespan)

app.include_router(spec.router)
app.include_router(auth.router)
app.include_router(json_editor.router)
app.include_router(forms.router)
app.include_router(dispatch.router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/info")
def info():
    return {"message": "API Forms", "version": __version__}
