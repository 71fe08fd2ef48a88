"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Dict, List
from pydantic_settings import BaseSettings, SettingsConfigDict


# Values that ship as placeholders and must be overridden outside development
INSECURE_DEFAULTS = {
    "jwt_secret_key": "change-this-secret",
    "postgres_password": "password",
}


class Settings(BaseSettings):
    # PostgreSQL (identity accounts)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "fct_user"
    postgres_password: str = "password"
    postgres_db: str = "fct_identity"

    # MongoDB (documents)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "fct_admin"
    mongodb_timeout_ms: int = 5000
    mongodb_use_transactions: bool = False  # needs a replica set

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Identity provider behaviour
    identity_password_signin_enabled: bool = True
    identity_min_password_length: int = 6
    identity_max_failed_attempts: int = 5
    identity_lockout_minutes: int = 15

    # App
    debug: bool = True
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    def missing_values(self) -> Dict[str, str]:
        """
        Report connection parameters that are empty or still on a placeholder.

        Used by the diagnostics endpoint; nothing here raises, a misconfigured
        deployment starts in a degraded state instead.
        """
        problems = {}
        for name in ("mongodb_uri", "mongodb_db", "postgres_host", "postgres_db", "jwt_secret_key"):
            if not getattr(self, name):
                problems[name] = "missing"
        for name, placeholder in INSECURE_DEFAULTS.items():
            if getattr(self, name) == placeholder:
                problems.setdefault(name, "default")
        return problems

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
