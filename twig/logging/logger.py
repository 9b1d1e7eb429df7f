"""
Logging infrastructure for twig.

Provides structured logging with:
- Component-specific loggers (storage, staging, graph, worktree, merge)
- Optional rotating file output
- Repository operation tracking
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from loguru import logger


class TwigLogger:
    """
    Logger setup for twig.

    Replaces loguru's default handler with a console handler (and optionally a
    rotating file handler) whose records carry the emitting component.
    """

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        rotation: str = "10 MB",
        retention: str = "1 week",
        level: str = "WARNING",
        format_string: Optional[str] = None,
        enable_file_logging: bool = False,
        enable_console_logging: bool = True,
    ):
        """
        Initialize the twig logger.

        Args:
            log_dir: Directory for log files
            rotation: When to rotate log files
            retention: How long to keep old logs
            level: Default log level
            format_string: Custom format string
            enable_file_logging: Whether to log to files
            enable_console_logging: Whether to log to console
        """
        self.log_dir = log_dir or Path("logs")
        self.rotation = rotation
        self.retention = retention
        self.level = level

        self.format_string = format_string or (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        # Records logged through the bare loguru logger still need a component
        logger.configure(extra={"component": "system"})
        logger.remove()

        if enable_console_logging:
            logger.add(
                sys.stderr,
                format=self.format_string,
                level=level,
                colorize=True,
            )

        if enable_file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            logger.add(
                self.log_dir / "twig.log",
                format=self.format_string,
                level=level,
                rotation=self.rotation,
                retention=self.retention,
                compression="zip",
            )

        self.logger = logger.bind(component="system")

    def get_logger(self, component: str) -> Any:
        """
        Get a logger bound to a specific component.

        Args:
            component: Component name (e.g., "storage", "merge")

        Returns:
            Logger instance bound to the component
        """
        return logger.bind(component=component)


def get_twig_logger(component: str = "system") -> Any:
    """
    Get a component-specific logger.

    Example:
        >>> log = get_twig_logger("storage")
        >>> log.debug("Stored blob", digest="3b18e5...")
    """
    return logger.bind(component=component)


def log_repository_operation(
    logger_instance: Any, operation: str, **kwargs: Any
) -> None:
    """
    Log a repository operation.

    Args:
        logger_instance: Logger to use
        operation: Operation name (e.g., "commit", "merge_complete")
        **kwargs: Additional context
    """
    logger_instance.debug(
        f"Repository operation: {operation}",
        operation=operation,
        timestamp=datetime.now(timezone.utc).isoformat(),
        **kwargs,
    )


# Global logger instance
_twig_logger: Optional[TwigLogger] = None


def initialize_logging(
    log_dir: Optional[Path] = None, level: str = "WARNING", **kwargs: Any
) -> TwigLogger:
    """
    Initialize the twig logging system.

    This should be called once at application startup.

    Args:
        log_dir: Directory for log files
        level: Default log level
        **kwargs: Additional configuration for TwigLogger

    Returns:
        Configured TwigLogger instance
    """
    global _twig_logger
    _twig_logger = TwigLogger(log_dir=log_dir, level=level, **kwargs)
    return _twig_logger


def get_logger_instance() -> Optional[TwigLogger]:
    """Get the global logger instance."""
    return _twig_logger
