import json
from typing import Annotated, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_list(value, field_name: str) -> list[str]:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if raw.startswith("[") and raw.endswith("]"):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    raise ValueError(f"{field_name} must be a string or list of strings")


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file="../.env", env_file_encoding="utf-8", extra="ignore")

    # Application
    ENVIRONMENT: str = "development"  # development | test | production
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://cms:postgres@db:5432/cms_db"
    POSTGRES_SSLMODE: str = "disable"
    DB_AUTO_CREATE: bool = False  # create tables on start-up (no migrations)

    # JWT authentication. No default secret: the app refuses to start without one.
    JWT_SECRET_KEY: str | None = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Cookies
    AUTH_COOKIE_NAME: str = "admin-token"
    REFRESH_COOKIE_NAME: str = "refresh_token"
    COOKIE_SECURE: bool | None = None  # None -> secure only in production

    # Routing
    ADMIN_API_PREFIX: str = "/api/admin"
    PUBLIC_API_PREFIX: str = "/api/public"

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",
    ]

    # Media
    MEDIA_ROOT: str = "public/media"
    MEDIA_URL_PREFIX: str = "/media"
    MEDIA_MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    MEDIA_ALLOWED_TYPES: Annotated[List[str], NoDecode] = [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
    ]
    # Serve MEDIA_ROOT under MEDIA_URL_PREFIX from the app itself; None -> only in development.
    # Production installs are expected to let the web server in front serve MEDIA_ROOT.
    MEDIA_SERVE: bool | None = None

    # Newsletter storage: "database" or "json" (file in DATA_DIR)
    NEWSLETTER_STORAGE: str = "database"
    DATA_DIR: str = "data"

    # Analytics: serve generated sample figures when the event table cannot be queried
    ANALYTICS_MOCK_FALLBACK: bool = True

    # Optional JSON file seeded into an empty categories table on start-up
    CATEGORY_SEED_FILE: str | None = None

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _normalise_cors(cls, value):
        return _parse_list(value, "CORS_ORIGINS")

    @field_validator("MEDIA_ALLOWED_TYPES", mode="before")
    @classmethod
    def _normalise_media_types(cls, value):
        return _parse_list(value, "MEDIA_ALLOWED_TYPES")

    @field_validator("NEWSLETTER_STORAGE")
    @classmethod
    def _validate_storage(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in {"database", "json"}:
            raise ValueError("NEWSLETTER_STORAGE must be 'database' or 'json'")
        return value

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def cookie_secure(self) -> bool:
        if self.COOKIE_SECURE is not None:
            return self.COOKIE_SECURE
        return self.ENVIRONMENT.lower() == "production"

    @property
    def serve_media(self) -> bool:
        if self.MEDIA_SERVE is not None:
            return self.MEDIA_SERVE
        return self.is_development


settings = Config()
