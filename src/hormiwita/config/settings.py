"""Application settings loader from YAML configuration."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..utils.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "resources" / "config.yaml"


@dataclass(frozen=True)
class AppSettings:
    """Application-wide settings loaded from config.yaml."""

    # App info
    app_name: str
    app_version: str

    # Logging
    log_level: str
    log_dir: Optional[str]
    log_max_file_size_mb: int
    log_backup_count: int

    # LLM
    llm_model_name: str
    llm_temperature: float
    llm_max_retries: int
    llm_initial_delay_seconds: float
    llm_backoff_factor: float

    # Provider matching
    provider_fuzzy_threshold: int

    # Conversation
    history_window: int
    language: str

    # Upload
    upload_max_file_size_mb: int

    @property
    def upload_max_bytes(self) -> int:
        return self.upload_max_file_size_mb * 1024 * 1024

    @property
    def gemini_api_key(self) -> Optional[str]:
        """API key is never stored in the YAML file."""
        return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")

    @classmethod
    def load(cls, config_path: Path = None) -> "AppSettings":
        """Load settings from YAML file."""
        if config_path is None:
            env_path = os.getenv("HORMIWITA_CONFIG")
            config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        return cls.from_dict(config)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "AppSettings":
        """Build settings from a parsed YAML mapping."""
        try:
            return cls(
                app_name=config["app"]["name"],
                app_version=str(config["app"]["version"]),
                log_level=config["logging"]["level"],
                log_dir=config["logging"].get("dir"),
                log_max_file_size_mb=int(config["logging"]["max_file_size_mb"]),
                log_backup_count=int(config["logging"]["backup_count"]),
                llm_model_name=config["llm"]["model_name"],
                llm_temperature=float(config["llm"]["temperature"]),
                llm_max_retries=int(config["llm"]["max_retries"]),
                llm_initial_delay_seconds=float(config["llm"]["initial_delay_seconds"]),
                llm_backoff_factor=float(config["llm"]["backoff_factor"]),
                provider_fuzzy_threshold=int(config["provider_matching"]["fuzzy_match_threshold"]),
                history_window=int(config["conversation"]["history_window"]),
                language=config["conversation"]["language"],
                upload_max_file_size_mb=int(config["upload"]["max_file_size_mb"])
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}")

    def validate(self) -> tuple[bool, str]:
        """Validate configuration values."""
        if self.history_window < 1:
            return False, "History window must hold at least one message"

        if self.llm_max_retries < 1:
            return False, "LLM max retries must be at least 1"

        if self.upload_max_file_size_mb < 1:
            return False, "Upload limit must be at least 1 MB"

        if self.provider_fuzzy_threshold < 0:
            return False, "Fuzzy match threshold cannot be negative"

        return True, "Configuration is valid"


# Global settings instance
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings.load()
    return _settings
