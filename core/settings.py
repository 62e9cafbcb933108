import json
import os
import secrets

from pathlib import Path
from typing import Any, Optional

from pydantic import PostgresDsn, field_validator
from pydantic.fields import FieldInfo, computed_field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource


class JsonConfigSettingsSource(PydanticBaseSettingsSource):
    """Read settings from the JSON file named by the CONFIG_FILE env var."""

    def _load(self) -> dict[str, Any]:
        config_file = os.getenv("CONFIG_FILE")
        if not config_file:
            return {}
        path = Path(config_file)
        if not path.is_file():
            return {}
        return json.loads(path.read_text(encoding="utf-8"))

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        field_value = self._config.get(field_name)
        return field_value, field_name, False

    def prepare_field_value(self, field_name: str, field: FieldInfo, value: Any, value_is_complex: bool) -> Any:  # noqa: ANN401
        return value

    def __call__(self) -> dict[str, Any]:  # noqa: D102
        self._config = self._load()
        d: dict[str, Any] = {}

        for field_name, field in self.settings_cls.model_fields.items():
            field_value, field_key, value_is_complex = self.get_field_value(field, field_name)
            field_value = self.prepare_field_value(field_name, field, field_value, value_is_complex)
            if field_value is not None:
                d[field_key] = field_value

        return d


class Settings(BaseSettings):

    PROJECT_NAME: str = "Pollz API"
    ENVIRONMENT: str = "development"
    API_PREFIX: str = "/api"

    SECRET_KEY: str = secrets.token_urlsafe(32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8
    ACCESS_TOKEN_COOKIE: str = "access_token"
    SERVER_ADDRESS: Optional[str] = "0.0.0.0"
    SERVER_PORT: int = int(os.getenv("PORT", 8000))
    BACKEND_CORS_ORIGINS: list[str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    raise ValueError(v) from None
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_POOL_SIZE: int = 20
    POSTGRES_MAX_OVERFLOW: int = 0
    SQLITE_FALLBACK_URL: str = "sqlite+aiosqlite:///./pollz.db"

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if "DATABASE_URL" in os.environ:
            db_url = os.environ["DATABASE_URL"]
            # Convert postgresql:// to postgresql+psycopg:// for compatibility
            if db_url.startswith("postgresql://") and "+psycopg" not in db_url:
                db_url = db_url.replace("postgresql://", "postgresql+psycopg://")
            return db_url

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_SERVER, self.POSTGRES_DB]):
            return self.SQLITE_FALLBACK_URL

        return str(
            PostgresDsn.build(
                scheme="postgresql+psycopg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_SERVER,
                path=f"{self.POSTGRES_DB or ''}",
            )
        )

    # Rate limiting for mutation requests, per client ip and path
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_REQUESTS: int = 20

    # CSRF double-submit cookie
    CSRF_ENABLED: bool = True
    CSRF_COOKIE_NAME: str = "csrf_token"
    CSRF_HEADER_NAME: str = "X-CSRF-Token"

    # Poll listing caches, in seconds
    USER_POLLS_CACHE_TTL: int = 30
    POLL_DETAIL_CACHE_TTL: int = 10

    WATCH_FILES: bool = False
    LOG_LEVEL: str = "info"  # Logging level: critical, error, warning, info, debug, trace

    class Config:
        env_file = "local.env"
        case_sensitive = True
        extra = "allow"
        env_ignore_empty = True

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, JsonConfigSettingsSource(settings_cls), dotenv_settings

settings = Settings()
