import os
import yaml
from pathlib import Path
from string import Template
from typing import Optional
from dotenv import load_dotenv
import structlog
from pydantic import ValidationError

from casecoach.models.config import AppConfig, ProviderCredentials

logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Configuration validation failed"""

    pass


class ConfigManager:
    """Loads application configuration and provider credentials"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self.env_loaded = False
        self._config: Optional[AppConfig] = None

    def _load_env(self) -> None:
        if not self.env_loaded:  # pragma: no cover
            load_dotenv()
            self.env_loaded = True

    def load_config(self) -> AppConfig:
        """Load and validate configuration

        Without a config path the built-in defaults are used. An explicit
        path that does not exist is an error.
        """
        if self._config:
            return self._config

        self._load_env()

        if self.config_path is None:
            self._config = AppConfig()
            logger.info("config_defaults_used", policies=len(self._config.policies))
            return self._config

        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path) as f:
                raw_content = f.read()
        except OSError as e:
            raise ConfigValidationError(f"Failed to read config file: {e}")

        # ${VAR} placeholders come from the environment (.env included)
        try:
            template = Template(raw_content)
            substituted_content = template.safe_substitute(os.environ)
            config_data = yaml.safe_load(substituted_content) or {}
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigValidationError(
                f"Failed to parse YAML or substitute variables: {e}"
            )

        if not isinstance(config_data, dict):
            raise ConfigValidationError("Configuration root must be a mapping")

        try:
            self._config = AppConfig(**config_data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}")

        logger.info(
            "config_loaded",
            path=str(self.config_path),
            policies=sorted(self._config.policies),
        )
        return self._config

    def load_credentials(self) -> ProviderCredentials:
        """Read provider API keys from the environment"""
        self._load_env()
        credentials = ProviderCredentials(
            groq_api_key=os.environ.get("GROQ_API_KEY"),
            gemini_api_key=os.environ.get("GEMINI_API_KEY"),
        )
        if not credentials.configured_providers:
            logger.warning("no_provider_credentials")
        return credentials
