"""
Configuration module - Centralized settings management.

This module provides type-safe configuration management using Pydantic,
supporting environment variables, YAML or JSON files, and explicit overrides.

Usage:
    from web_relocator.config import get_settings, load_config
    
    # Get global settings (loaded once)
    settings = get_settings()
    
    # Or load fresh settings with overrides
    settings = load_config(resolver={"timeout_ms": 4000})

Environment Variables:
    WEB_RELOCATOR__RESOLVER__TIMEOUT_MS=8000
    WEB_RELOCATOR__RESOLVER__RETRIES=3
    WEB_RELOCATOR__BROWSER__HEADLESS=false
    WEB_RELOCATOR_CONFIG=path/to/relocator.yaml
"""

from pathlib import Path
from typing import Optional, Union

from web_relocator.config.settings import (
    Settings,
    ResolverSettings,
    BrowserSettings,
    LoggingSettings,
)
from web_relocator.config.loader import CONFIG_PATH_ENV, ConfigLoader, load_config

# Global settings singleton
_settings: Settings | None = None


def get_settings(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Get the global settings instance (singleton).
    
    Settings are loaded once from environment variables and config files.
    Passing ``config_path`` reloads them from that file; call
    reset_settings() to reload from the default locations.
    
    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None or config_path is not None:
        _settings = load_config(config_path=config_path)
    return _settings


def reset_settings() -> None:
    """Reset the global settings (forces reload on next get_settings())."""
    global _settings
    _settings = None


__all__ = [
    "Settings",
    "ResolverSettings",
    "BrowserSettings",
    "LoggingSettings",
    "ConfigLoader",
    "CONFIG_PATH_ENV",
    "load_config",
    "get_settings",
    "reset_settings",
]
