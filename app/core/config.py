from typing import List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# libpq options that asyncpg does not understand; SSL is configured via connect_args
_LIBPQ_ONLY_OPTIONS = {"sslmode", "channel_binding"}


class Settings(BaseSettings):
    DATABASE_URL: str
    DB_SSL_REQUIRED: bool = True

    GROQ_API_KEY: Optional[str] = None
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    GROQ_SQL_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_SUMMARY_MODEL: str = "llama-3.1-8b-instant"
    LLM_TIMEOUT_SECONDS: float = 60.0

    SQL_MAX_ATTEMPTS: int = 3
    SQL_RETRY_DELAY_SECONDS: float = 2.0
    SUMMARY_MAX_ATTEMPTS: int = 2
    SUMMARY_RETRY_DELAY_SECONDS: float = 1.0
    SUMMARY_SAMPLE_ROWS: int = 50

    SESSION_TIMEZONE: str = "America/Los_Angeles"
    SESSION_LOCAL_HOUR: int = 9

    PORT: int = 3001
    CORS_ORIGINS: List[str] = ["*"]
    RUN_MIGRATIONS_ON_STARTUP: bool = True

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("DATABASE_URL")
    @classmethod
    def use_asyncpg_driver(cls, value: str) -> str:
        """
        Hosted Postgres providers hand out "postgres://...?sslmode=require" URLs.
        Rewrite them for the async driver.
        """
        parts = urlsplit(value)
        if parts.scheme not in ("postgres", "postgresql"):
            return value

        query = [
            (key, val)
            for key, val in parse_qsl(parts.query)
            if key not in _LIBPQ_ONLY_OPTIONS
        ]
        return urlunsplit(
            ("postgresql+asyncpg", parts.netloc, parts.path, urlencode(query), parts.fragment)
        )


# Create a single instance of the settings to use everywhere
settings = Settings()
