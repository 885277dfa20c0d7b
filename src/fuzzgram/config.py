from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from fuzzgram.exceptions import ConfigurationError
from fuzzgram.tokens.tokenizer import FuzzyDefaults


class AppConfig(BaseModel):
    """Application-specific configuration values."""

    name: str = "fuzzgram"
    env: str = "development"
    debug: bool = True
    port: int = 8000
    log_level: str = "INFO"
    # Transport settings for FastMCP: "stdio" (default), "http", or "sse"
    transport: Literal["stdio", "http", "sse"] = "stdio"
    host: str = "127.0.0.1"


class DatabaseConfig(BaseModel):
    """Database configuration values."""

    url: str = "sqlite:///fuzzgram.db"
    echo: bool = False


class SearchConfig(BaseModel):
    """Text index location and fallback token parameters."""

    index_dir: Optional[str] = None  # None keeps indexes in RAM, rebuilt at startup
    min_size: int = Field(default=2, gt=0)
    prefix_only: bool = False

    def defaults(self) -> FuzzyDefaults:
        return FuzzyDefaults(min_size=self.min_size, prefix_only=self.prefix_only)


class CollectionConfig(BaseModel):
    """Fuzzy search options of one collection, as passed to ``fuzzy_searching``."""

    fields: List[Union[str, Dict[str, Any]]]
    language_override: Optional[str] = None


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only."""

    model_config = SettingsConfigDict(
        env_prefix="FUZZGRAM_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    database: DatabaseConfig = DatabaseConfig()
    search: SearchConfig = SearchConfig()
    # e.g. FUZZGRAM_COLLECTIONS='{"books": {"fields": ["title", {"name": "tags", "keys": ["label"]}]}}'
    collections: Dict[str, CollectionConfig] = {}


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
