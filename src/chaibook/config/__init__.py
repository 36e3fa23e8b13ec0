"""Configuration for chaibook."""

from chaibook.config.settings import Settings, get_settings
from chaibook.config.logging import configure_logging, get_logger

__all__ = ["Settings", "get_settings", "configure_logging", "get_logger"]
