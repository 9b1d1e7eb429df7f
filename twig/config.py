"""
Configuration management for twig.

This module provides centralized configuration for all system components:
- Repository storage layout
- Default branch naming
- Logging settings
"""

import os
from pathlib import Path
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class StorageConfig(BaseModel):
    """Configuration for the on-disk repository layout."""

    repo_dir: str = Field(
        default=".twig",
        description="Name of the metadata directory inside the working tree",
    )
    default_branch: str = Field(
        default="master", min_length=1, description="Branch created by init"
    )

    def repo_path(self, root: Path) -> Path:
        """Get the metadata directory for a working tree rooted at root."""
        return Path(root) / self.repo_dir


class LogConfig(BaseModel):
    """Configuration for logging system."""

    level: LogLevel = Field(default="WARNING", description="Logging level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[component]}</cyan> - "
        "<level>{message}</level>",
        description="Log message format",
    )
    rotation: str = Field(default="10 MB", description="Log file rotation size")
    retention: str = Field(default="1 week", description="Log file retention period")
    log_dir: str = Field(default="logs", description="Directory for log files")
    enable_file_logging: bool = Field(
        default=False, description="Whether to enable file logging"
    )
    enable_console_logging: bool = Field(
        default=True, description="Whether to enable console logging"
    )


class Config(BaseModel):
    """Main configuration object for twig."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls(
            storage=StorageConfig(
                repo_dir=os.getenv("TWIG_DIR", ".twig"),
                default_branch=os.getenv("TWIG_DEFAULT_BRANCH", "master"),
            ),
            logging=LogConfig(
                level=cast(LogLevel, os.getenv("TWIG_LOG_LEVEL", "WARNING")),
                log_dir=os.getenv("TWIG_LOG_DIR", "logs"),
                enable_file_logging=os.getenv("TWIG_LOG_TO_FILE", "false").lower()
                in ("1", "true", "yes"),
            ),
        )


# Global configuration instance
config = Config.from_env()
