"""
LynkHub Core Settings.

Video sharing + social graph backend. Every knob is overridable through
``LYNKHUB_*`` environment variables or a local ``.env`` file.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8",
        env_prefix="LYNKHUB_", case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "LynkHub"
    app_version: str = "1.2.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # Authentication happens upstream; the gateway forwards the viewer id.
    viewer_header: str = "X-User-Id"

    # ── PostgreSQL ───────────────────────────────────────────────────────
    db_host: str = "postgres"
    db_port: int = 5432
    db_user: str = "lynkhub"
    db_password: str = "lynkhub_secret"
    db_name: str = "lynkhub"
    database_url_override: Optional[str] = None
    sql_echo: bool = False

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Pagination ───────────────────────────────────────────────────────
    default_page: int = 1
    default_page_size: int = 10
    max_page_size: int = 100

    # ── Channel Dashboard ────────────────────────────────────────────────
    dashboard_top_n: int = 5
    dashboard_trend_buckets: int = 30
    audience_growth_months: int = 12

    # ── Content Rules ────────────────────────────────────────────────────
    video_title_min: int = 3
    video_title_max: int = 100
    video_description_min: int = 10
    video_description_max: int = 500
    post_max_length: int = 280
    group_min_members: int = 2

    # ── Real-time Events ─────────────────────────────────────────────────
    event_buffer_size: int = 1000

    # ── Media Storage Gateway ────────────────────────────────────────────
    storage_base_url: str = "http://media-gateway:8080"
    storage_api_key: Optional[str] = None
    storage_timeout_seconds: float = 30.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
