from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="APIFORMS_", case_sensitive=False, env_ignore_empty=True, extra="ignore"
    )

    data_dir: Path = Field(default=Path("./data"))
    default_spec_url: str = Field(default="http://localhost:5029/swagger/v1/swagger.json")
    # Unset means no timeout: requests complete or fail on the transport's terms.
    http_timeout: float | None = Field(default=None, gt=0)
    log_level: str = Field(default="INFO")


def get_settings() -> Settings:
    return Settings()


settings = get_settings()

AUTH_STORAGE_KEY = "openapi-auth-config"

# Module-level aliases; tests monkeypatch these.
DATA_DIR = settings.data_dir
DEFAULT_SPEC_URL = settings.default_spec_url
HTTP_TIMEOUT = settings.http_timeout
LOG_LEVEL = settings.log_level
