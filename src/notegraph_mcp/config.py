"""Configuration module for the Notegraph MCP server."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from notegraph_mcp import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, shared by every checkout
_USER_ENV = Path.home() / ".notegraph" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NotebookConfig(BaseModel):
    """Configuration for the notebook server."""

    # Base directory for the project
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTEGRAPH_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTEGRAPH_DATABASE_PATH", "data/db/notebook.db")
        )
    )
    # When True, the note store lives in a shared in-memory SQLite connection
    # (used by tests and throwaway sessions; contents are lost on exit).
    in_memory_db: bool = Field(
        default_factory=lambda: _env_flag("NOTEGRAPH_IN_MEMORY_DB", "false")
    )
    # Server configuration
    server_name: str = Field(
        default_factory=lambda: os.getenv("NOTEGRAPH_SERVER_NAME", "notegraph-mcp")
    )
    server_version: str = Field(default=__version__)
    # Logging configuration
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTEGRAPH_LOG_DIR"))
            if os.getenv("NOTEGRAPH_LOG_DIR")
            else None
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTEGRAPH_LOG_LEVEL", "INFO").upper()
    )
    # Input limits enforced at the server boundary
    max_title_length: int = Field(
        default_factory=lambda: int(os.getenv("NOTEGRAPH_MAX_TITLE_LENGTH", "500"))
    )
    max_content_length: int = Field(
        default_factory=lambda: int(
            os.getenv("NOTEGRAPH_MAX_CONTENT_LENGTH", "1000000")
        )
    )

    @model_validator(mode="after")
    def _validate_limits(self) -> "NotebookConfig":
        """Reject non-positive input limits."""
        if self.max_title_length < 1:
            raise ValueError("max_title_length must be >= 1")
        if self.max_content_length < 1:
            raise ValueError("max_content_length must be >= 1")
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        if self.in_memory_db:
            return "sqlite:///:memory:"
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# Create a global config instance
config = NotebookConfig()
