from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Literal

LUMA_KEYS = ("LUMA_API_KEY",)
DRIVE_KEYS = (
    "GOOGLE_DRIVE_CLIENT_ID",
    "GOOGLE_DRIVE_CLIENT_SECRET",
    "GOOGLE_DRIVE_REDIRECT_URI",
    "GOOGLE_DRIVE_REFRESH_TOKEN",
)
FIREBASE_KEYS = (
    "FIREBASE_API_KEY",
    "FIREBASE_AUTH_DOMAIN",
    "FIREBASE_PROJECT_ID",
    "FIREBASE_STORAGE_BUCKET",
    "FIREBASE_MESSAGING_SENDER_ID",
    "FIREBASE_APP_ID",
)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    APP_NAME: str = "luma-extractor"
    ENV: Literal["local", "dev", "prod"] = "local"
    API_PREFIX: str = "/api"

    # Generation provider
    LUMA_API_KEY: str | None = None
    LUMA_BASE_URL: str = "https://api.lumalabs.ai/dream-machine/v1"

    # Backend A: Google Drive (OAuth refresh-token flow)
    GOOGLE_DRIVE_CLIENT_ID: str | None = None
    GOOGLE_DRIVE_CLIENT_SECRET: str | None = None
    GOOGLE_DRIVE_REDIRECT_URI: str | None = None
    GOOGLE_DRIVE_REFRESH_TOKEN: str | None = None
    DRIVE_DEFAULT_FOLDER: str = "Luma Labs Videos"

    # Backend B: Firebase Storage
    FIREBASE_API_KEY: str | None = None
    FIREBASE_AUTH_DOMAIN: str | None = None
    FIREBASE_PROJECT_ID: str | None = None
    FIREBASE_STORAGE_BUCKET: str | None = None
    FIREBASE_MESSAGING_SENDER_ID: str | None = None
    FIREBASE_APP_ID: str | None = None
    FIREBASE_ROOT_FOLDER: str = "luma-videos"

    # Enumeration caps
    PAGE_SIZE: int = 50
    LIST_MAX_ITEMS: int = 1000
    RESOLVE_MAX_ITEMS: int = 1000
    BULK_EXPORT_MAX_ITEMS: int = 5000

    # Request-duration guards
    ARCHIVE_MAX_ITEMS: int = 10
    CATALOG_ARCHIVE_MAX_FILES: int = 50

    # I/O bounds
    HEAD_BATCH_SIZE: int = 8
    HEAD_BATCH_PAUSE_SECONDS: float = 0.5
    DOWNLOAD_TIMEOUT_SECONDS: float = 60.0
    DOWNLOAD_CONCURRENCY: int = 1
    CATALOG_CONCURRENCY: int = 8

    @field_validator("PAGE_SIZE", "HEAD_BATCH_SIZE", "DOWNLOAD_CONCURRENCY", "CATALOG_CONCURRENCY")
    @classmethod
    def _must_be_positive(cls, v: int):
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    def missing(self, *names: str) -> list[str]:
        return [name for name in names if not getattr(self, name, None)]

settings = Settings()
