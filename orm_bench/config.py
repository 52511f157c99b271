"""
Configuration settings for the ORM bulk update benchmark.

Uses Pydantic Settings to load environment variables for database connections,
logging, and benchmark defaults.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    db_driver: str = Field("postgresql+psycopg", alias="DB_DRIVER")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("orm_bench", alias="DB_NAME")
    db_echo: bool = Field(False, alias="DB_ECHO")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Benchmark defaults
    benchmark_rows: int = Field(20_000, alias="BENCHMARK_ROWS")
    # Largest IN-list the target database accepts in one statement.
    benchmark_max_in_clause: int = Field(1_000, alias="BENCHMARK_MAX_IN_CLAUSE")
    benchmark_concurrency: int = Field(4, alias="BENCHMARK_CONCURRENCY")
    benchmark_results_dir: str = Field("results", alias="BENCHMARK_RESULTS_DIR")
    benchmark_failure_policy: Literal["tolerant", "strict"] = Field(
        "tolerant", alias="BENCHMARK_FAILURE_POLICY"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def sqlalchemy_url(self) -> str:
        """Effective SQLAlchemy URL; DATABASE_URL wins over the composed parts."""
        if self.database_url:
            return self.database_url
        return (
            f"{self.db_driver}://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
