"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # PRICE LIST FILES
    # ===================
    media_root: str = Field(
        default="media",
        description="Directory that media paths are resolved against"
    )
    default_start_row: int = Field(
        default=2,
        ge=1,
        description="First data row when a template does not set start_row"
    )

    # ===================
    # PRICING
    # ===================
    default_currency: str = Field(
        default="UAH",
        min_length=3,
        max_length=3,
        description="Currency used for price types the template leaves unset"
    )
    base_currency: str = Field(
        default="EUR",
        min_length=3,
        max_length=3,
        description="Catalog base currency (factor 1.0)"
    )

    # ===================
    # MATCHING
    # ===================
    duplicate_code_policy: str = Field(
        default="first_wins",
        pattern="^(first_wins|reject)$",
        description="How duplicate supplier codes inside one file are handled"
    )
    auto_match_threshold: float = Field(
        default=0.6,
        ge=0,
        le=1,
        description="Fuzzy similarity a candidate must exceed to be proposed"
    )
    auto_match_high_threshold: float = Field(
        default=0.8,
        ge=0,
        le=1,
        description="Fuzzy similarity above which a candidate is labelled high"
    )

    # ===================
    # BATCH LIMITS
    # ===================
    product_scan_limit: int = Field(
        default=10000,
        ge=1,
        description="Maximum candidate products loaded for one template"
    )
    recalculation_limit: int = Field(
        default=5000,
        ge=1,
        description="Default maximum products scanned by a recalculation sweep"
    )
    write_batch_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Products per catalog write in the recalculation sweep"
    )
    stock_sweep_batch_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Products per catalog write when zeroing missing stock"
    )
    restock_quantity: int = Field(
        default=1000,
        ge=0,
        description="Stock written by the set_1000 availability action"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Origins allowed to call the API"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
