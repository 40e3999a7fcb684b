"""
Configuration Management for Finance Assistant

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
User-facing defaults (labels, durations, limits) live next to the
credentials for the language model so they can be tuned per deployment.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=800,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per request before giving up"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    Every field has a default, so the core runs without any environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Command interpreter defaults
    expense_description_prefix: str = Field(
        default="Expense: ",
        description="Prefix for descriptions of transactions created by command"
    )
    default_goal_name: str = Field(
        default="Savings Goal",
        min_length=1,
        description="Name given to goals created by command"
    )
    default_goal_duration_days: int = Field(
        default=30,
        ge=0,
        le=3650,
        description="Days between start and end of a goal created by command"
    )
    min_account_name_length: int = Field(
        default=2,
        ge=1,
        description="Minimum length of an account name after trimming"
    )

    # Installments
    max_installments: int = Field(
        default=24,
        ge=2,
        le=120,
        description="Maximum number of installments for one purchase"
    )

    # Display
    currency_symbol: str = Field(
        default="R$",
        description="Currency marker used when formatting amounts"
    )

    @field_validator('expense_description_prefix')
    @classmethod
    def keep_prefix_spacing(cls, v: str) -> str:
        """Prefix is used verbatim, only reject a blank one."""
        if not v.strip():
            raise ValueError("expense_description_prefix cannot be blank")
        return v


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.gemini
        results["gemini"] = True
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
