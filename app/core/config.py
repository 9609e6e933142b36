"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "placement_user"
    postgres_password: str = "password"
    postgres_db: str = "placement_tracker"

    # Full SQLAlchemy URL, overrides the postgres_* parts when set
    database_url: Optional[str] = None

    # MongoDB (raw + parsed resume documents)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "placement_docs"

    # Resume parsing model (any OpenAI-compatible endpoint)
    ai_api_key: str = ""
    ai_base_url: str = "https://api.deepseek.com/v1"
    ai_model: str = "deepseek-chat"

    # JWT (token issuance lives outside this service)
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"

    # Placement rules. Clients may override both per contract.
    guarantee_period_days: int = 90
    default_fee_percentage: Decimal = Decimal("8.33")

    # Concurrency
    conflict_retry_attempts: int = 3

    # Guarantee expiry sweep
    guarantee_sweep_enabled: bool = True
    guarantee_sweep_interval_seconds: int = 3600

    # Dashboards
    at_risk_default_limit: int = 50

    # App
    debug: bool = True
    allowed_origins: str = "*"

    @property
    def sqlalchemy_url(self) -> str:
        """Construct SQLAlchemy connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def allowed_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
