# app/core/config.py
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./app.db"

    JWT_ACCESS_SECRET: str = "change-this-secret"
    JWT_REFRESH_SECRET: str = "change-this-refresh-secret"
    JWT_ALG: str = "HS256"

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120
    REFRESH_TOKEN_EXPIRE_DAYS: int = 14
    REFRESH_COOKIE_SECURE: bool = True

    # Blob storage is optional; without it listings are created with no images
    AZURE_STORAGE_CONNECTION_STRING: str = ""
    AZURE_CONTAINER_NAME: str = ""
    MAX_LISTING_IMAGES: int = 5

    GEOCODER_ENABLED: bool = True
    GEOCODER_URL: str = "https://nominatim.openstreetmap.org/search"
    GEOCODER_TIMEOUT_SECONDS: float = 5.0

    # Statuses of their own listings an owner sees next to the public Active set
    OWNER_VISIBLE_STATUSES: List[str] = ["Pending", "Active"]
    # False: admin checks re-read the role from the users table on every request
    TRUST_SESSION_ROLE: bool = False
    BOOTSTRAP_ADMIN_EMAILS: List[str] = []

    RECORD_VIEW_INTERACTIONS: bool = True

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
