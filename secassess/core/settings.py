"""Application settings with environment validation."""

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings with environment validation."""

    def __init__(self) -> None:
        # Storage
        self.database_url = os.getenv(
            "SECASSESS_DATABASE_URL", "sqlite:///secassess.db"
        )
        self.storage_backend = self._parse_backend(
            os.getenv("SECASSESS_STORAGE", "sql")
        )

        # Application
        self.environment = os.getenv("ENV", "development")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        # Catalog
        self.required_assessment_types = self._parse_list(
            os.getenv("REQUIRED_ASSESSMENT_TYPES", "")
        )

        # Diagnostics
        self.sql_debug = self._parse_bool(os.getenv("SQL_DEBUG", "false"))

    def _parse_backend(self, v: str) -> str:
        v = v.strip().lower()
        if v not in ("sql", "memory"):
            raise ValueError(f"SECASSESS_STORAGE must be 'sql' or 'memory', got {v!r}")
        return v

    def _parse_list(self, v: str) -> List[str]:
        return [item.strip() for item in v.split(",") if item.strip()]

    def _parse_bool(self, v: str) -> bool:
        return v.lower() in ("true", "1", "yes", "on")

    @property
    def is_production(self) -> bool:  # convenience flag
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:  # convenience flag
        return self.environment.lower() == "development"


settings = Settings()
