# savvy/config/settings.py
import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from savvy.exceptions.config import ConfigurationError

logger = logging.getLogger("Settings")

SUPPORTED_PROVIDERS = ("openai", "anthropic", "ollama")


class Settings(BaseSettings):
    # === Environment Variables (CLEAN NAMES) ===
    llm_provider: str = "openai"
    llm_model: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None

    anthropic_api_key: Optional[str] = None
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"

    ollama_host: str = "http://localhost:11434"
    ollama_api_key: Optional[str] = None

    # Transport timeout in seconds, applied by each provider client.
    request_timeout: float = Field(default=60.0, gt=0)

    # === Router / Classifier tuning ===
    cache_size: int = Field(default=50, ge=1)
    cache_include_system_prompt: bool = False
    history_limit: int = Field(default=50, ge=1)
    segmenter_language: str = "en"

    # === Pydantic V2 Configuration ===
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # NO prefix - clean names match exactly
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_and_normalize(self) -> "Settings":
        """Validate and normalize derived fields."""

        # 1. Validate log level
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise ConfigurationError(f"Invalid log level: {self.log_level}")
        self.log_level = self.log_level.upper()

        # 2. Validate provider selection
        normalized_provider = (self.llm_provider or "openai").strip().lower()
        if normalized_provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                "Invalid llm_provider value. Expected one of "
                f"{', '.join(SUPPORTED_PROVIDERS)}. Got: {self.llm_provider}"
            )
        self.llm_provider = normalized_provider

        if self.llm_model is not None and not self.llm_model.strip():
            self.llm_model = None

        return self


def load_settings(**overrides) -> Settings:
    """Build settings from the environment / .env, applying explicit overrides."""
    settings = Settings(**overrides)
    logger.debug(
        "Settings loaded: provider=%s model=%s cache_size=%s",
        settings.llm_provider,
        settings.llm_model or "<provider default>",
        settings.cache_size,
    )
    return settings
