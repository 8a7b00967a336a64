"""Environment-driven settings and logging setup."""

from scraperis_agent.config.log_setup import configure_logging
from scraperis_agent.config.settings import Settings, get_settings

__all__ = ["Settings", "configure_logging", "get_settings"]
