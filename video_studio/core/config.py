from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "Video Studio API"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite:///./video_studio.db"
    auto_create_tables: bool = True
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"])

    use_stub_adapters: bool = False
    http_timeout_seconds: float = 60.0

    openai_api_key: str = ""
    sora_default_model: str = "sora-2"

    google_application_credentials: str = ""
    google_cloud_project: str = ""
    google_cloud_location: str = "us-central1"
    veo_model: str = "veo-3.1-generate-preview"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
