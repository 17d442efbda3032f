"""Configuration module for Embedded-Redis."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
