from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator


def _parse_bool(v):
    if isinstance(v, str):
        return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
    return bool(v)


class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'ferreteria_user'
    POSTGRES_PASSWORD: str = 'ferreteria_pass'
    POSTGRES_DB: str = 'ferreteria_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432

    # Overrides the Postgres settings when set (e.g. sqlite:///./ferreteria.db)
    DATABASE_URL: Optional[str] = None

    # JWT settings
    APP_SECRET_STRING: str = 'change-this-secret-in-production'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Sale transactions
    SALE_TRANSACTION_TIMEOUT_SECONDS: float = 10.0
    SALE_TRANSACTION_MAX_RETRIES: int = 2
    SALE_TRANSACTION_ISOLATION_LEVEL: Optional[str] = "REPEATABLE READ"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    SQL_ECHO: bool = False

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", "SQL_ECHO", mode="before")
    @classmethod
    def parse_flags(cls, v):
        return _parse_bool(v)

    @field_validator("SALE_TRANSACTION_ISOLATION_LEVEL", mode="before")
    @classmethod
    def parse_isolation_level(cls, v):
        if isinstance(v, str):
            cleaned = v.strip().upper()
            return cleaned or None
        return v


settings = Settings()
