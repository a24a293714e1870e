"""
Application configuration using Pydantic settings.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_name: str = "Budgetmatch"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./data/db.sqlite"

    # Transaction matching
    match_tolerance_days: int = 14
    amount_tolerance: Decimal = Decimal("0.01")
    min_match_confidence: float = 60.0

    # Budget defaults for users without saved settings
    default_savings_percentage: Decimal = Decimal("20")
    default_debt_payoff_percentage: Decimal = Decimal("5")

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


# Global settings instance
settings = Settings()
