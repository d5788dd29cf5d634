"""Configuration for the question generation service."""

from .config import Settings, settings

__all__ = ["Settings", "settings"]
