"""Configuration for docket-pipeline using pydantic-settings.

All settings are driven by environment variables with the DOCKET_ prefix.
Settings are resolved once at process start and handed to each component.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DOCKET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    courtlistener_base: str = "https://www.courtlistener.com/api/rest/v4"
    courtlistener_site: str = "https://www.courtlistener.com"
    courtlistener_token: Optional[str] = None

    report_backend_base: str = "http://localhost:3000"
    report_api_prefix: str = "/api"

    user_agent: str = "docket-pipeline/0.1"
    timeout_total: float = 8.0

    # Caller-side retry for the CLI resolve command; the core never retries.
    max_attempts: int = 1
    backoff_multiplier: float = 1.0
    backoff_min: float = 1.0
    backoff_max: float = 10.0

    analysis_id_aliases: List[str] = Field(
        default_factory=lambda: ["analysisId", "id", "runId", "uuid", "analysis_id"]
    )
    markdown_aliases: List[str] = Field(
        default_factory=lambda: ["markdown", "reportMarkdown", "educationMarkdown"]
    )

    authority_table_path: Optional[Path] = None

    host: str = "127.0.0.1"
    port: int = 8787

    @property
    def has_token(self) -> bool:
        return bool(self.courtlistener_token and self.courtlistener_token.strip())

    def courtlistener_url(self, endpoint: str) -> str:
        """Join an endpoint name onto the CourtListener base, e.g. 'dockets/'."""
        return f"{self.courtlistener_base.rstrip('/')}/{endpoint.lstrip('/')}"

    def backend_url(self, stage: str) -> str:
        """Build the report-backend URL for a stage such as 'audit/execute'."""
        prefix = self.report_api_prefix.strip("/")
        base = self.report_backend_base.rstrip("/")
        if prefix:
            return f"{base}/{prefix}/{stage.lstrip('/')}"
        return f"{base}/{stage.lstrip('/')}"


def get_settings() -> Settings:
    """Load settings from the environment."""
    s = Settings()
    logger.debug(
        "Loaded settings (courtlistener_base=%s, backend=%s, token=%s)",
        s.courtlistener_base,
        s.report_backend_base,
        "set" if s.has_token else "missing",
    )
    return s
