from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300
    DB_ECHO: bool = False

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "ticket-chat.fanout"

    # "local" keeps fan-out in-process; "redis" relays it across instances.
    CHAT_FANOUT_MODE: Literal["local", "redis"] = "local"

    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str | None = "kyaari-oms"
    JWT_AUDIENCE: str | None = "kyaari-oms-client"
    JWKS_URL: str | None = None

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    WS_HEARTBEAT_SECONDS: int = 30

    CHAT_HISTORY_LIMIT: int = 50
    CHAT_MAX_PAGE_SIZE: int = 100
    CHAT_MAX_MESSAGE_LENGTH: int = 5000

    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
