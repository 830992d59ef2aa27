"""Configuration management for taskledger."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/taskledger.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    environment: str = Field(default="development", description="Deployment environment name")

    # Daily reset / due-today boundaries
    day_boundary_timezone: str = Field(
        default="UTC",
        description="IANA timezone whose midnight starts a new day for daily resets and due-today counts",
    )

    # Transport
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_BAD_REQUEST: int = 400
    HTTP_NOT_FOUND: int = 404
    HTTP_SERVER_ERROR: int = 500

    # Store paging
    LIST_CHUNK_SIZE: int = 200  # Page size used when draining a filtered list from the store

    # Priority ordering (higher rank sorts first when listing by priority)
    PRIORITY_RANKS: dict[str, int] = {"low": 0, "medium": 1, "high": 2, "urgent": 3}  # noqa: RUF012

    # Category display colors (presentation metadata only)
    CATEGORY_COLORS: dict[str, str] = {  # noqa: RUF012
        "personal": "#4CAF50",
        "work": "#2196F3",
        "shopping": "#FF9800",
        "health": "#f44336",
        "education": "#9C27B0",
        "other": "#607D8B",
    }
    DEFAULT_CATEGORY_COLOR: str = "#607D8B"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
