"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

Example:
    >>> from web_relocator.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.resolver.timeout_ms)
    8000
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResolverSettings(BaseModel):
    """
    Target resolution settings.
    
    Attributes:
        timeout_ms: Wall-clock budget for one resolve call
        retries: Extra attempts after the first one
        stability_cap_ms: Upper bound for each stability wait
        quiet_window_ms: Mutation-free window that counts as stable
        backoff_step_ms: Linear backoff step between attempts
        accept_threshold: Minimum score for a candidate to be accepted
        confidence_weight: Multiplier applied to a locator's confidence
        default_confidence: Confidence used when a locator carries none
        ancestor_confidence: Confidence of the ancestor-trail fallback
        text_fallback_confidence: Confidence of the fingerprint-text fallback
        identity_attributes: Attributes that identify a record uniquely
        test_id_attributes: Attributes placed for test automation
    """
    timeout_ms: int = Field(default=8000, ge=0, le=600000)
    retries: int = Field(default=3, ge=0, le=20)
    stability_cap_ms: int = Field(default=1500, ge=0, le=60000)
    quiet_window_ms: int = Field(default=300, ge=10, le=10000)
    backoff_step_ms: int = Field(default=200, ge=0, le=10000)
    accept_threshold: float = Field(default=2.0, ge=0.0)
    confidence_weight: float = Field(default=2.0, ge=0.0, le=10.0)
    default_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    ancestor_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    text_fallback_confidence: float = Field(default=0.2, ge=0.0, le=1.0)
    identity_attributes: List[str] = Field(
        default_factory=lambda: ["data-card-id", "data-list-id"]
    )
    test_id_attributes: List[str] = Field(
        default_factory=lambda: ["data-testid", "data-test-id", "data-qa"]
    )


class BrowserSettings(BaseModel):
    """
    Browser settings used by the CLI when resolving against a live URL.
    
    Attributes:
        headless: Run browser in headless mode
        browser_type: Playwright browser engine
        navigation_timeout_ms: Timeout for the initial page load
    """
    headless: bool = True
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    navigation_timeout_ms: int = Field(default=30000, ge=1000, le=300000)


class LoggingSettings(BaseModel):
    """
    Logging configuration.
    
    Attributes:
        level: Log level
        format: Log format string
        file: Log file path (None for console only)
        json_format: Use JSON format for logs
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.
    
    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Environment variables (prefixed with WEB_RELOCATOR__)
    3. Config file (YAML)
    4. Default values
    
    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(resolver=ResolverSettings(retries=1))  # Override
    """
    
    model_config = SettingsConfigDict(
        env_prefix="WEB_RELOCATOR__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
    
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    
    debug: bool = False
    
    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.
        
        Args:
            overrides: Dictionary of values to override
            
        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()
        
        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base
        
        merged = deep_merge(current, overrides)
        return Settings(**merged)
