"""Logging infrastructure with session context."""
import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


class SessionContextFilter(logging.Filter):
    """Add session context to log records."""

    def __init__(self):
        super().__init__()
        self.session_id: Optional[str] = None

    def filter(self, record):
        """Add session_id to record."""
        record.session_id = self.session_id or "system"
        return True


def default_home() -> Path:
    """Base directory for Hormiwita runtime files."""
    return Path(os.getenv("HORMIWITA_HOME", str(Path.home() / ".hormiwita")))


class HormiwitaLogger:
    """Centralized logging manager."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        max_file_size_mb: int = 10,
        backup_count: int = 30
    ):
        self.log_dir = log_dir or default_home() / "logs"
        self.log_file = self.log_dir / "hormiwita.log"
        self.session_filter = SessionContextFilter()

        # Configure package logger
        self.logger = logging.getLogger("hormiwita")
        self.logger.setLevel(getattr(logging, log_level.upper()))
        self.logger.propagate = False

        # Remove existing handlers
        self.logger.handlers.clear()

        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [session:%(session_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(self.session_filter)
        self.logger.addHandler(console_handler)

        # File handler with rotation
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                self.log_file,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8"
            )
        except OSError as e:
            self.logger.warning(f"File logging disabled, cannot write to {self.log_dir}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(self.session_filter)
            self.logger.addHandler(file_handler)

    def set_session_context(self, session_id: Optional[str]):
        """Set current session context for logging."""
        self.session_filter.session_id = session_id

    def get_logger(self) -> logging.Logger:
        """Get the configured logger."""
        return self.logger


# Global logger instance
_logger_instance: Optional[HormiwitaLogger] = None


def get_logger(log_level: Optional[str] = None) -> logging.Logger:
    """Get or create global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        level = log_level or os.getenv("HORMIWITA_LOG_LEVEL", "INFO")
        _logger_instance = HormiwitaLogger(level)
    return _logger_instance.get_logger()


def configure_logging(log_level: str, log_dir: Path, max_file_size_mb: int, backup_count: int) -> logging.Logger:
    """Rebuild the global logger from explicit settings."""
    global _logger_instance
    _logger_instance = HormiwitaLogger(log_level, log_dir, max_file_size_mb, backup_count)
    return _logger_instance.get_logger()


def set_session_context(session_id: Optional[str]):
    """Set session context for logging."""
    global _logger_instance
    if _logger_instance:
        _logger_instance.set_session_context(session_id)
