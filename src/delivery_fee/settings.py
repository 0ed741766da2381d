from __future__ import annotations
import logging
from pydantic_settings import BaseSettings
from pydantic import Field
from urllib.parse import quote_plus, urlparse

logger = logging.getLogger("delivery-fee")

DEFAULT_SQLITE_URL = "sqlite:///./delivery_fee.db"

class Settings(BaseSettings):
    # Prefer a full DATABASE_URL; or supply PG* parts and we'll build it.
    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    pg_host: str | None = Field(default=None, alias="PGHOST")
    pg_port: int = Field(default=5432, alias="PGPORT")
    pg_user: str | None = Field(default=None, alias="PGUSER")
    pg_password: str | None = Field(default=None, alias="PGPASSWORD")
    pg_db: str | None = Field(default=None, alias="PGDATABASE")

    weather_api_url: str = Field(
        default="https://www.ilmateenistus.ee/ilma_andmed/xml/observations.php",
        alias="WEATHER_API_URL",
    )
    request_timeout: int = Field(default=30, alias="REQUEST_TIMEOUT")

    cache_ttl_seconds: int = Field(default=300, alias="CACHE_TTL_SECONDS")
    forecast_cache_bucket_seconds: int = Field(default=60, alias="FORECAST_CACHE_BUCKET_SECONDS")
    base_fee_code: str = Field(default="rbf", alias="BASE_FEE_CODE")

    seed_reference_data: bool = Field(default=True, alias="SEED_REFERENCE_DATA")
    ingest_on_startup: bool = Field(default=False, alias="INGEST_ON_STARTUP")

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            parsed = urlparse(self.database_url)
            if parsed.scheme.startswith("sqlite"):
                return self.database_url

            logger.info(f"DB target → user={parsed.username} host={parsed.hostname} port={parsed.port} db={parsed.path.lstrip('/')}")
            logger.info("DB config source → DATABASE_URL")

            # Re-encode the password to handle special characters
            if parsed.password:
                encoded_password = quote_plus(parsed.password)
                fixed_url = f"{parsed.scheme}://{parsed.username}:{encoded_password}@{parsed.hostname}:{parsed.port}{parsed.path}"
                if parsed.query:
                    fixed_url = f"{fixed_url}?{parsed.query}"
                return fixed_url

            return self.database_url

        if self.pg_host and self.pg_user and self.pg_password and self.pg_db:
            logger.info(f"DB target → user={self.pg_user} host={self.pg_host} port={self.pg_port} db={self.pg_db}")
            logger.info("DB config source → PG* environment variables")

            encoded_password = quote_plus(self.pg_password)
            encoded_user = quote_plus(self.pg_user)

            return (
                f"postgresql+psycopg://{encoded_user}:{encoded_password}"
                f"@{self.pg_host}:{self.pg_port}/{self.pg_db}?sslmode=require"
            )

        logger.info("DB config source → local SQLite fallback")
        return DEFAULT_SQLITE_URL

settings = Settings()
