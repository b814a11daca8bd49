import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load variables from a local .env, real environment wins
load_dotenv()


def _default_database_url() -> str:
    host = os.getenv("POSTGRES_HOST")
    if not host:
        return "sqlite:///./chat.db"
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    name = os.getenv("POSTGRES_DB", "chat")
    port = os.getenv("POSTGRES_PORT", "5432")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


class Settings(BaseModel):
    GRPC_HOST: str = os.getenv("GRPC_HOST", "[::]")
    GRPC_PORT: int = int(os.getenv("GRPC_PORT", "9090"))
    GRPC_MAX_WORKERS: int = int(os.getenv("GRPC_MAX_WORKERS", "10"))
    GRPC_GRACE_SECONDS: float = float(os.getenv("GRPC_GRACE_SECONDS", "5"))

    DATABASE_URL: str = os.getenv("DATABASE_URL") or _default_database_url()
    SQL_ECHO: bool = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def bind_address(self) -> str:
        return f"{self.GRPC_HOST}:{self.GRPC_PORT}"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def configure(overrides: Optional[dict] = None) -> Settings:
    """Build settings from the environment with explicit overrides applied."""
    base = get_settings()
    if not overrides:
        return base
    return base.model_copy(update=overrides)
