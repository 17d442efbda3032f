"""
Embedded-Redis Configuration Settings

All tunables live here. Defaults can be overridden through environment
variables so the server can be configured without code changes.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Server configuration settings."""

    # Network settings
    HOST: str = os.environ.get("EMBEDDED_REDIS_HOST", "127.0.0.1")
    PORT: int = int(os.environ.get("EMBEDDED_REDIS_PORT", "6379"))

    # Expiration settings
    CLEANUP_INTERVAL: float = float(os.environ.get("EMBEDDED_REDIS_CLEANUP_INTERVAL", "60"))

    # Connection settings
    READ_BUFFER_SIZE: int = 65536

    # Protocol limits
    MAX_BULK_LENGTH: int = 512 * 1024 * 1024
    MAX_INLINE_LENGTH: int = 64 * 1024
    MAX_ARRAY_LENGTH: int = 1024 * 1024

    # Logging settings
    DEBUG: bool = os.environ.get("EMBEDDED_REDIS_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("EMBEDDED_REDIS_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
