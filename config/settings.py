#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management

Values come from the environment or ``.env`` (case-insensitive). Library
code only reads these as defaults; explicit arguments always win.
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "stepdoc"
    log_level: str = "INFO"

    # ========== Export defaults ==========
    default_theme: str = "professional"  # professional | modern | corporate | minimal
    default_quality: str = "high"  # low | medium | high

    # ========== Images ==========
    image_padding: int = 10
    image_corner_radius: int = 8
    thumbnail_width: int = 320

    # ========== PDF ==========
    company_fallback: str = "stepdoc"  # footer copyright when the document has no company
    pdf_disclaimer: str = "Confidential - for internal training use only. Verify steps against current systems."

    # ========== API ==========
    export_rate_limit: str = "10/minute"
    preview_rate_limit: str = "60/minute"
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = ""  # Empty = in-memory counters
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    # CORS origins (comma-separated in env, parsed to list)
    cors_origins: str = ""  # Empty = use default dev origins

    # ========== Directories ==========
    output_dir: Path = BASE_DIR / "data" / "output"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._validate_export_defaults()

    def _validate_export_defaults(self):
        """Reject unknown theme / quality names at startup rather than at first export."""
        from stepdoc.models.options import Quality
        from stepdoc.pdf.themes import THEMES

        errors = []
        if self.default_theme.lower() not in THEMES:
            errors.append(
                f"DEFAULT_THEME '{self.default_theme}' is not one of: {', '.join(sorted(THEMES))}"
            )
        if self.default_quality.lower() not in {q.value for q in Quality}:
            errors.append(
                f"DEFAULT_QUALITY '{self.default_quality}' is not one of: {', '.join(q.value for q in Quality)}"
            )
        if self.image_padding < 0:
            errors.append("IMAGE_PADDING must be >= 0")
        if self.thumbnail_width <= 0:
            errors.append("THUMBNAIL_WIDTH must be > 0")

        if errors:
            raise ValueError(
                "Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors)
            )

    def get_cors_origins(self) -> List[str]:
        """Get CORS origins as a list. Falls back to dev defaults if empty."""
        if self.cors_origins:
            return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        # Dev defaults
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8000",
            "http://127.0.0.1:8000",
        ]


# Global settings instance
settings = Settings()
