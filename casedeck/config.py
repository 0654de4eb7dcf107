from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings leveraging environment overrides.
    """

    app_name: str = "CaseDeck"
    environment: str = Field("local", validation_alias="ENVIRONMENT")
    allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    max_payload_bytes: int = Field(256 * 1024, ge=1024)

    # Case text and deck bounds
    input_min_chars: int = Field(50, ge=1)
    input_max_chars: int = Field(3000, ge=1)
    min_slides: int = Field(3, ge=1)
    max_slides: int = Field(8, ge=1)
    max_text_points: int = Field(6, ge=1)

    # Quality gate
    quality_threshold: int = Field(60, ge=0, le=100)
    retry_temperature_floor: float = Field(0.3, ge=0.0, le=2.0)
    retry_temperature_step: float = Field(0.2, ge=0.0, le=2.0)

    # Deck cache
    cache_enabled: bool = True
    cache_namespace: str = "slide_gen_cache_"
    cache_schema_version: str = "v1"
    cache_ttl_seconds: int = Field(24 * 60 * 60, ge=1)
    cache_max_entries: int = Field(20, ge=1)
    cache_dir: Optional[str] = Field(None, description="Persist cache records here")

    templates_dir: Optional[str] = Field(
        None, description="Override for the bundled template directory"
    )

    # LLM settings
    llm_provider: str = Field(
        "none", description="LLM provider: none, openai, anthropic, ollama"
    )
    llm_model: Optional[str] = Field(None, description="Model name for LLM provider")
    openai_api_key: Optional[str] = Field(None, validation_alias="OPENAI_API_KEY")
    anthropic_api_key: Optional[str] = Field(None, validation_alias="ANTHROPIC_API_KEY")
    llm_base_url: Optional[str] = Field(None, validation_alias="LLM_BASE_URL")
    llm_max_tokens: int = Field(3000, ge=100, le=8000)
    llm_temperature: float = Field(0.7, ge=0.0, le=2.0)
    llm_timeout_seconds: float = Field(60.0, gt=0)
    daily_request_limit: int = Field(50, ge=1)
    requests_per_minute: int = Field(30, ge=1)
    transport_retry_attempts: int = Field(2, ge=1, le=5)
    transport_retry_backoff_seconds: float = Field(1.0, ge=0.0)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()
