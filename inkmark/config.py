from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Markup engine configuration loaded from environment variables."""

    # Autosave
    autosave_debounce_ms: int = 2000
    version_on_save: bool = True

    # History / versions
    history_capacity: int = 50
    version_capacity: int = 50

    # Hit-testing (screen pixels, divided by zoom)
    hit_threshold_px: float = 6.0
    note_hit_radius: float = 12.0

    # Zoom in percent
    zoom_min: int = 25
    zoom_max: int = 400
    zoom_step: int = 25

    # Identity used for createdBy / author fields
    default_user: str = "Current User"

    # Persistence
    data_dir: Optional[str] = None  # Defaults to the platform app-data dir
    api_base_url: Optional[str] = None
    api_timeout: int = 60

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="INKMARK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def autosave_debounce_seconds(self) -> float:
        return self.autosave_debounce_ms / 1000.0


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
