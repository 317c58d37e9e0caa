import os
import json
from typing import Annotated, Optional, List, Dict, Any
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator
import logging

class Settings(BaseSettings):
    """
    SysArch Simulator application configuration
    Manages all environment variables with validation and type safety
    """

    # Basic application settings
    APP_NAME: str = "SysArch Simulator"
    APP_VERSION: str = "2.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API settings
    API_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins (comma-separated or JSON list)"
    )

    # Tick driver
    TICK_INTERVAL_SECONDS: float = Field(
        default=1.0,
        gt=0.0,
        description="Wall-clock seconds between simulation ticks"
    )
    SIMULATION_AUTOSTART: bool = Field(
        default=True,
        description="Start the tick driver playing on application startup"
    )
    SIMULATION_SEED: Optional[int] = Field(
        default=None,
        description="Seed for the traffic noise source (random when unset)"
    )

    # Advisor LLM configuration
    LLM_API_KEY: Optional[str] = Field(
        default=None,
        repr=False,
        description="LLM API key (auto-detects provider from key format)"
    )
    LLM_PROVIDER: Optional[str] = Field(
        default=None,
        description="Explicit LLM provider (openai|anthropic|google|fallback)"
    )
    LLM_MODEL: Optional[str] = Field(
        default=None,
        description="LLM model (auto-selects default if not specified)"
    )
    LLM_TEMPERATURE: float = Field(
        default=0.2,
        ge=0.0, le=2.0,
        description="LLM temperature for advisor reports"
    )
    LLM_MAX_TOKENS: int = Field(
        default=512,
        description="Maximum tokens for LLM responses"
    )
    LLM_TIMEOUT: int = Field(
        default=30,
        description="LLM request timeout in seconds"
    )

    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

    @property
    def advisor_configured(self) -> bool:
        return bool(self.LLM_API_KEY) or (self.LLM_PROVIDER or "").lower() in ("fallback", "mock")

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level

    @field_validator('LLM_API_KEY')
    @classmethod
    def validate_llm_api_key(cls, v):
        if not v:
            return None

        from .llm_providers import detect_provider, ProviderType
        provider_type = detect_provider(v)
        if provider_type == ProviderType.FALLBACK and not v.startswith("mock"):
            logging.warning("API key format not recognized, using fallback provider")

        return v

    @field_validator('LLM_PROVIDER')
    @classmethod
    def validate_llm_provider(cls, v):
        if v:
            valid_providers = ["openai", "anthropic", "claude", "google", "gemini", "fallback", "mock"]
            if v.lower() not in valid_providers:
                raise ValueError(f"Invalid LLM provider: {v}. Must be one of: {valid_providers}")
        return v

    @field_validator('LLM_TEMPERATURE')
    @classmethod
    def validate_llm_temperature(cls, v):
        return round(v, 2)

    def get_llm_config(self) -> Dict[str, Any]:
        """Get LLM configuration for provider creation"""
        return {
            "api_key": self.LLM_API_KEY or "",
            "provider_name": self.LLM_PROVIDER,
            "model": self.LLM_MODEL,
            "temperature": self.LLM_TEMPERATURE,
            "max_tokens": self.LLM_MAX_TOKENS,
            "timeout": self.LLM_TIMEOUT
        }


# Global settings instance
settings = Settings()
