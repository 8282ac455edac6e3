"""Vault configuration for the keyhaven credential vault."""

import os
from dataclasses import dataclass


@dataclass
class VaultConfig:
    """Configuration for vault encryption and session handling."""

    # Key derivation
    pbkdf2_iterations: int = 480_000  # OWASP 2023 recommendation

    # Session management
    session_timeout_minutes: int = 30  # 0 = no timeout

    # Views
    recent_window_days: int = 7
    default_group_icon: str = "📁"

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            KEYHAVEN_PBKDF2_ITERATIONS: PBKDF2 iteration count for new ciphertexts
            KEYHAVEN_SESSION_TIMEOUT: Idle timeout in minutes (default: 30)
            KEYHAVEN_RECENT_DAYS: Window for the "recent" view (default: 7)
        """
        config = cls()

        if iterations := os.getenv("KEYHAVEN_PBKDF2_ITERATIONS"):
            config.pbkdf2_iterations = int(iterations)

        if timeout := os.getenv("KEYHAVEN_SESSION_TIMEOUT"):
            config.session_timeout_minutes = int(timeout)

        if days := os.getenv("KEYHAVEN_RECENT_DAYS"):
            config.recent_window_days = int(days)

        return config


# Global configuration instance
_config: VaultConfig | None = None


def get_vault_config() -> VaultConfig:
    """Get the global vault configuration."""
    global _config
    if _config is None:
        _config = VaultConfig.from_env()
    return _config


def set_vault_config(config: VaultConfig | None) -> None:
    """Set the global vault configuration (None reloads from the environment)."""
    global _config
    _config = config
