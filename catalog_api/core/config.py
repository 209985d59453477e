# catalog_api/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required in production (.env):
      - DATABASE_URL (Postgres connection string)
      - JWT_SECRET (shared secret used to sign admin tokens)

    Optional:
      - STORAGE_BACKEND=supabase with SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY
        to keep uploaded images in a Supabase bucket instead of local disk.
    """

    PROJECT_NAME: str = "RK Industries Catalog API"
    API_V1_STR: str = "/api"

    # "production" switches image paths to the public prefix below
    ENVIRONMENT: str = "development"
    PUBLIC_PATH_PREFIX: str = "/backend"
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    DATABASE_URL: str = "sqlite:///./catalog.db"

    # Admin identity tokens (backend-side verification only)
    JWT_SECRET: str = "change-this-secret"
    JWT_ALG: str = "HS256"

    # Image storage: "local" | "supabase"
    STORAGE_BACKEND: str = "local"
    UPLOAD_DIR: str = "uploads"
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    SUPABASE_BUCKET: str = "assets"

    MAX_GALLERY_IMAGES: int = 10

    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5000"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
