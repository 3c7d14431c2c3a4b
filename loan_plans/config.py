"""Configuration management for loan plans."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Runtime settings for the CLI and the web app."""

    storage: str = "data/plans.json"  # JSON file path or SQLAlchemy URL
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origin: str = "*"
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            storage=os.getenv("LOAN_PLANS_STORAGE", "data/plans.json"),
            host=os.getenv("LOAN_PLANS_HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            cors_origin=os.getenv("LOAN_PLANS_CORS_ORIGIN", "*"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
