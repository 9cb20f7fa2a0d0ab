"""
Config Loader - Resolver settings from files, the environment and overrides.

Config files may be YAML or JSON (recorders and guides already speak JSON).
The file is picked from, in order:
1. An explicit path (``load_config(config_path=...)`` or ``--config``)
2. The ``WEB_RELOCATOR_CONFIG`` environment variable
3. The first existing default location

An explicit or environment-supplied path that does not exist is an error
rather than a silent fallback to defaults.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from web_relocator.config.settings import Settings
from web_relocator.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


CONFIG_PATH_ENV = "WEB_RELOCATOR_CONFIG"


class ConfigLoader:
    """
    Merges settings from every source.

    Priority order (highest to lowest):
    1. Explicit overrides passed to load()
    2. Environment variables (``WEB_RELOCATOR__RESOLVER__RETRIES=1``)
    3. Config file
    4. Default values

    After ``load()``, ``source`` holds the file that was read, if any.
    """

    DEFAULT_CONFIG_PATHS = [
        Path("web-relocator.yaml"),
        Path("config.yaml"),
        Path("config.yml"),
        Path("config.json"),
        Path.home() / ".config" / "web-relocator" / "config.yaml",
    ]

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path else None
        self.source: Optional[Path] = None

    def find_config_file(self) -> Optional[Path]:
        """
        Pick the configuration file to read.

        Raises:
            ConfigurationError: If a requested file does not exist
        """
        requested = self.config_path
        if requested is None and os.environ.get(CONFIG_PATH_ENV):
            requested = Path(os.environ[CONFIG_PATH_ENV])
        if requested is not None:
            if not requested.is_file():
                raise ConfigurationError(f"Config file not found: {requested}", {"path": str(requested)})
            return requested

        return next((path for path in self.DEFAULT_CONFIG_PATHS if path.is_file()), None)

    def read_config_file(self, path: Path) -> Dict[str, Any]:
        """
        Parse a YAML or JSON config file into a mapping.

        Raises:
            ConfigurationError: If the file is malformed or not a mapping
        """
        text = path.read_text(encoding="utf-8")
        try:
            if path.suffix.lower() == ".json":
                config = json.loads(text) if text.strip() else None
            else:
                config = yaml.safe_load(text)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot parse {path}", {"error": str(e)}) from e
        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return config

    def load(
        self,
        env_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Settings:
        """
        Load settings from all sources.

        Args:
            env_file: .env file to read (default: ``.env`` or ``.env.local``)
            overrides: Nested values that beat every other source

        Raises:
            ConfigurationError: If a file is missing or malformed, or a
                value fails validation
        """
        if env_file:
            load_dotenv(env_file)
        else:
            for env_path in [Path(".env"), Path(".env.local")]:
                if env_path.exists():
                    load_dotenv(env_path)
                    break

        file_config: Dict[str, Any] = {}
        self.source = self.find_config_file()
        if self.source is not None:
            file_config = self.read_config_file(self.source)
            logger.debug(f"Loaded config from {self.source}")

        try:
            # Pydantic fills in anything the file leaves out from env vars
            settings = Settings(**file_config)
            if overrides:
                settings = settings.merge_with(overrides)
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid configuration",
                {"source": str(self.source) if self.source else None, "errors": e.errors()},
            ) from e

        return settings


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env_file: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> Settings:
    """
    Load settings in one call.

    Example:
        >>> settings = load_config()
        >>> settings = load_config(config_path="relocator.json")
        >>> settings = load_config(resolver={"retries": 1})
    """
    loader = ConfigLoader(config_path)
    return loader.load(env_file=env_file, overrides=overrides if overrides else None)
