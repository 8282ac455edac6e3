"""Configuration settings for keyhaven."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class BackendConfig:
    """Configuration for the record store."""

    kind: str = "yaml"  # yaml, rest, memory
    data_dir: Path = field(default_factory=lambda: Path.home() / ".local" / "share" / "keyhaven")
    rest_url: Optional[str] = None
    rest_api_key: Optional[str] = None
    rest_token: Optional[str] = None
    timeout: float = 30.0


@dataclass
class Settings:
    """Main settings container."""

    backend: BackendConfig = field(default_factory=BackendConfig)

    # Identity the local auth provider signs in as
    user_id: str = field(default_factory=lambda: os.getenv("USER") or "local")

    # Logging
    log_level: str = "WARNING"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        settings = cls()

        if kind := os.getenv("KEYHAVEN_BACKEND"):
            settings.backend.kind = kind.lower()

        if data_dir := os.getenv("KEYHAVEN_DATA_DIR"):
            settings.backend.data_dir = Path(data_dir)

        if url := os.getenv("KEYHAVEN_REST_URL"):
            settings.backend.rest_url = url

        if api_key := os.getenv("KEYHAVEN_REST_API_KEY"):
            settings.backend.rest_api_key = api_key

        if token := os.getenv("KEYHAVEN_REST_TOKEN"):
            settings.backend.rest_token = token

        if timeout := os.getenv("KEYHAVEN_REST_TIMEOUT"):
            settings.backend.timeout = float(timeout)

        if user_id := os.getenv("KEYHAVEN_USER"):
            settings.user_id = user_id

        if log_level := os.getenv("LOG_LEVEL"):
            settings.log_level = log_level

        if log_file := os.getenv("KEYHAVEN_LOG_FILE"):
            settings.log_file = Path(log_file)

        return settings


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def configure(settings: Optional[Settings]) -> None:
    """Set the global settings instance (None reloads from the environment)."""
    global _settings
    _settings = settings
