"""Configuration management for Briefly."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidModelFormatError, ModelNotConfiguredError

DEFAULT_SHORTCUT_PHRASES = (
    "generate image",
    "generate an image",
    "generate a picture",
    "create image",
    "create an image",
    "make an image",
    "draw a picture",
    "draw an image",
)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="BRIEFLY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model provider
    model: str | None = Field(default=None, description="Model in provider:model form, e.g. 'openai:gpt-4o-mini'")
    api_key: str | None = Field(default=None, description="API key for the model provider")
    api_base: str | None = Field(default=None, description="Optional API base URL")
    max_tokens: int = Field(default=2048, description="Maximum tokens for one model answer")
    model_timeout_seconds: float = Field(default=60.0, gt=0, description="Timeout for one model call")
    max_tool_rounds: int = Field(default=5, ge=1, description="Maximum model/tool rounds per turn")

    # Conversation shaping
    history_window: int = Field(default=11, ge=1, description="Maximum turns sent to the model")
    system_prompt: str | None = Field(default=None, description="Replaces the baseline persona when set")
    shortcut_enabled: bool = Field(default=True, description="Route explicit image requests straight to the tool")
    shortcut_phrases: list[str] = Field(default_factory=lambda: list(DEFAULT_SHORTCUT_PHRASES))

    # Tools
    web_fetch_timeout_seconds: float = Field(default=5.0, gt=0)
    web_fetch_max_chars: int = Field(default=8000, ge=1)
    image_model: str = Field(default="gpt-image-1")
    image_api_base: str | None = Field(default=None)
    image_api_key: str | None = Field(default=None)
    image_timeout_seconds: float = Field(default=120.0, gt=0)

    # Long-term memory
    memory_enabled: bool = Field(default=True)
    memory_top_k: int = Field(default=3, ge=1)
    embedding_model: str = Field(default="text-embedding-3-small")
    embedding_api_base: str | None = Field(default=None)
    embedding_api_key: str | None = Field(default=None)
    embedding_timeout_seconds: float = Field(default=15.0, gt=0)

    # Runtime
    home: Path = Field(default_factory=lambda: Path.home() / ".briefly")
    log_level: str = Field(default="INFO")

    @property
    def resolved_api_key(self) -> str | None:
        if self.api_key:
            return self.api_key
        provider = self.provider
        if provider is None:
            return None
        return os.getenv(f"{provider.upper()}_API_KEY")

    @property
    def provider(self) -> str | None:
        if not self.model or ":" not in self.model:
            return None
        return self.model.split(":", 1)[0]

    def require_model(self) -> str:
        """Return the configured model string or raise a configuration error."""
        if not self.model:
            raise ModelNotConfiguredError("Model not configured. Set BRIEFLY_MODEL (e.g., 'openai:gpt-4o-mini').")
        provider, separator, name = self.model.partition(":")
        if not separator or not provider or not name:
            raise InvalidModelFormatError(f"Invalid model format: {self.model!r}. Expected provider:model.")
        return self.model

    def resolve_home(self) -> Path:
        home = self.home.expanduser()
        home.mkdir(parents=True, exist_ok=True)
        return home


def get_settings() -> Settings:
    """Get application settings from the environment and ``.env``."""
    return Settings()
