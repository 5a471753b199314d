"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Database - either use DATABASE_URL or build from components
    database_url: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "gym"
    postgres_password: str = "password"
    postgres_db: str = "gymdb"
    db_echo: bool = False

    @property
    def db_url(self) -> str:
        """Get database URL - use DATABASE_URL if set, otherwise build from components."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Auth
    secret_key: str = "change-me"
    token_ttl_minutes: int = 60 * 24
    bcrypt_rounds: int = 10

    # Web App
    webapp_host: str = "0.0.0.0"
    webapp_port: int = 8080

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
