"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Relational store (PostgreSQL). DATABASE_URL wins when set.
    database_url: str = ""
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "placement_user"
    postgres_password: str = ""
    postgres_db: str = "placement_db"

    # MongoDB - optional, holds raw model responses
    mongodb_uri: str = ""
    mongodb_db: str = "placement_docs"

    # Generative model (OpenAI-compatible)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o"
    llm_timeout_seconds: float = 60.0

    # App
    debug: bool = True
    sql_echo: bool = False
    log_level: str = "INFO"

    @property
    def sqlalchemy_url(self) -> str:
        """Construct the store connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    def missing_required(self) -> List[str]:
        """Names of settings the service cannot start without."""
        missing = []
        if not self.database_url and not self.postgres_password:
            missing.append("DATABASE_URL or POSTGRES_PASSWORD")
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        return missing

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
