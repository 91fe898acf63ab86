"""
Configuration management for the CRM test-data cleanup.

Loads settings from environment variables (and a project-root .env file)
with sensible defaults.
"""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


class CleanupSettings(BaseSettings):
    """Cleanup settings loaded from environment variables."""

    # Supabase exposes the Postgres connection string under either name
    DATABASE_URL: str = Field(
        default='',
        validation_alias=AliasChoices('DATABASE_URL', 'SUPABASE_DB_URL'),
    )

    LOG_LEVEL: str = 'INFO'
    LOG_JSON: bool = False

    # 0 sends every id of a table in a single DELETE
    DELETE_BATCH_SIZE: int = Field(default=0, ge=0)
    OLDER_THAN_DAYS: int = Field(default=7, ge=0)
    BACKUP_DIR: str | None = None

    def validate_required(self) -> list[str]:
        """
        Validate that required configuration is present.

        Returns:
            List of missing required configuration keys
        """
        missing = []
        if not self.DATABASE_URL:
            missing.append('DATABASE_URL')
        return missing


@lru_cache
def get_settings() -> CleanupSettings:
    """Cached settings singleton."""
    return CleanupSettings()
