"""
Configuration for the repo_context selection and context engine.

Uses Pydantic BaseSettings to load from environment variables with sensible defaults.
Token limits mirror a 128K-window chat model; cache TTLs are in seconds.
"""
from typing import Optional
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, ValidationError, field_validator, model_validator
from .errors import ConfigurationError


class Settings(BaseSettings):
    """Configuration settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Cache Settings
    SELECTION_CACHE_TTL_S: int = Field(default=86400, description="Query selection cache TTL (24h)")
    CONTENT_CACHE_TTL_S: int = Field(default=3600, description="File content cache TTL (1h)")
    METADATA_CACHE_TTL_S: int = Field(default=900, description="File tree / repo metadata cache TTL (15min)")
    CACHE_SWEEP_INTERVAL: int = Field(default=256, description="Operations between full expiry sweeps")

    # Selection Parameters
    MAX_SELECTED_FILES: int = Field(default=30, description="Max files in a scored selection")
    MAX_BYPASS_FILES: int = Field(default=10, description="Max files when the query names files explicitly")
    MAX_SCORED_CANDIDATES: int = Field(default=30, description="Raw candidates kept by the scorer")
    MIN_SCORE: int = Field(default=10, description="Minimum score for a candidate to seed expansion")
    MAX_EXPANSION_SEEDS: int = Field(default=20, description="Max candidates passed to neighbor expansion")

    # Token Budget
    MODEL_CONTEXT_WINDOW: int = Field(default=128000, description="Hard token window of the target model")
    RESERVED_TOKENS: int = Field(default=18000, description="System prompt + question + history + response buffer")
    SYSTEM_PROMPT_TOKENS: int = Field(default=2000, description="Estimated system prompt size")
    SAFETY_BUFFER_TOKENS: int = Field(default=5000, description="Headroom kept when re-truncating the prompt")
    TOKEN_ENCODING: str = Field(default="cl100k_base", description="tiktoken encoding name")

    # Local Repository
    REPOS_DIR: str = Field(default=".repos", description="Directory holding local checkouts (owner/repo)")

    @field_validator(
        "SELECTION_CACHE_TTL_S",
        "CONTENT_CACHE_TTL_S",
        "METADATA_CACHE_TTL_S",
        "CACHE_SWEEP_INTERVAL",
        "MAX_SELECTED_FILES",
        "MAX_BYPASS_FILES",
        "MAX_SCORED_CANDIDATES",
        "MAX_EXPANSION_SEEDS",
        "MODEL_CONTEXT_WINDOW",
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("MIN_SCORE", "RESERVED_TOKENS", "SYSTEM_PROMPT_TOKENS", "SAFETY_BUFFER_TOKENS")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @model_validator(mode="after")
    def validate_budget(self):
        if self.RESERVED_TOKENS >= self.MODEL_CONTEXT_WINDOW:
            raise ValueError("RESERVED_TOKENS must be smaller than MODEL_CONTEXT_WINDOW")
        return self

    @property
    def context_budget(self) -> int:
        """Token budget left for the assembled file context."""
        return self.MODEL_CONTEXT_WINDOW - self.RESERVED_TOKENS


def _build_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid repo_context settings: {e}") from e


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create settings singleton."""
    global _settings
    if _settings is None:
        # Load from .env if present
        load_dotenv()
        _settings = _build_settings()
    return _settings


def reload_settings() -> Settings:
    """Force reload settings (useful for testing)."""
    global _settings
    load_dotenv(override=True)
    _settings = _build_settings()
    return _settings
