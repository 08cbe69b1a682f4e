#control_panel\infrastructure\postgres\config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # PostgreSQL connection
    postgres_user: str = "panel"
    postgres_password: str = "panel"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "control_panel"

    # Full URL override (e.g. sqlite:// for tests)
    database_url: Optional[str] = None

    # Connection pool
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 3600

    # SQLAlchemy
    echo_sql: bool = False

    @property
    def url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


settings = DatabaseSettings()
