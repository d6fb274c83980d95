from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide settings, read from HEALTH_EXPORT_* env vars or .env."""

    STATE_DIR: Path = Path.home() / ".health_export"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = None
    LOG_ROTATION: str = "1 MB"
    LOG_RETENTION: int = 3

    PLATFORM: str = "android"

    ACCESS_TOKEN: Optional[str] = None
    OAUTH_CLIENT_ID: Optional[str] = None
    OAUTH_CLIENT_SECRET: Optional[str] = None
    OAUTH_REFRESH_TOKEN: Optional[str] = None
    OAUTH_TOKEN_URL: str = "https://oauth2.googleapis.com/token"

    DRIVE_API_URL: str = "https://www.googleapis.com/drive/v3/files"
    DRIVE_UPLOAD_URL: str = "https://www.googleapis.com/upload/drive/v3/files"
    SHEETS_API_URL: str = "https://sheets.googleapis.com/v4/spreadsheets"
    SHEETS_EXPORT_URL: str = "https://docs.google.com/spreadsheets/d"
    DEFAULT_FOLDER_NAME: str = "Health Export For AI Data"
    HTTP_TIMEOUT_SEC: float = 30.0

    NETWORK_PROBE_URL: str = "https://www.googleapis.com/generate_204"

    EXECUTION_TIMEOUT_SEC: float = 300.0
    BACKGROUND_EXECUTION_TIMEOUT_SEC: float = 25.0

    model_config = SettingsConfigDict(
        env_prefix="HEALTH_EXPORT_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @property
    def log_file(self) -> Path:
        return self.LOG_FILE or self.STATE_DIR / "debug.log"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
