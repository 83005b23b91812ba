import base64
import logging

from pydantic import BaseModel, ValidationError

import apiforms.config as _config
from apiforms.models import (
    ApiKeyAuth,
    AuthConfigPayload,
    BasicAuth,
    BearerAuth,
    NoAuth,
)
from apiforms.services.store import KeyValueStore

logger = logging.getLogger("apiforms.auth")


def parse_auth_config(payload: str) -> BaseModel:
    return AuthConfigPayload.model_validate_json(payload).root


def auth_headers(config: BaseModel) -> dict[str, str]:
    headers: dict[str, str] = {}
    if isinstance(config, BearerAuth):
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
    elif isinstance(config, ApiKeyAuth):
        if config.api_key.key and config.api_key.location == "header":
            headers[config.api_key.key] = config.api_key.value
    elif isinstance(config, BasicAuth):
        creds = f"{config.basic_auth.username}:{config.basic_auth.password}"
        encoded = base64.b64encode(creds.encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {encoded}"
    return headers


def auth_query(config: BaseModel) -> dict[str, str]:
    if (
        isinstance(config, ApiKeyAuth)
        and config.api_key.key
        and config.api_key.location == "query"
    ):
        return {config.api_key.key: config.api_key.value}
    return {}


class AuthStore:
    """Holds the active auth config and mirrors it into a key-value store.

    Storage failures never reach the caller: a failed read leaves the config
    at ``none`` and a failed write keeps the in-memory config only.
    """

    def __init__(self, storage: KeyValueStore, key: str | None = None) -> None:
        self._storage = storage
        self._key = key or _config.AUTH_STORAGE_KEY
        self._config: BaseModel = NoAuth()

    @property
    def config(self) -> BaseModel:
        return self._config

    async def load(self) -> BaseModel:
        try:
            saved = await self._storage.get(self._key)
        except Exception as exc:
            logger.warning("auth_config_read_failed key=%s error=%s", self._key, exc)
            saved = None
        if saved:
            try:
                self._config = parse_auth_config(saved)
            except ValidationError as exc:
                logger.warning(
                    "auth_config_corrupt key=%s errors=%d", self._key, exc.error_count()
                )
                self._config = NoAuth()
        return self._config

    async def set(self, config: BaseModel) -> BaseModel:
        self._config = config
        try:
            await self._storage.set(self._key, config.model_dump_json(by_alias=True))
        except Exception as exc:
            logger.warning("auth_config_write_failed key=%s error=%s", self._key, exc)
        else:
            logger.info("auth_config_saved type=%s", config.type)
        return config

    async def clear(self) -> BaseModel:
        return await self.set(NoAuth())
