from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ticket_chat.api.deps import get_verifier
from ticket_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from ticket_chat.api.v1.routers import chat, health, ws
from ticket_chat.application.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ticket_chat.application.ports.fanout import TopicFanout
from ticket_chat.config import settings
from ticket_chat.infrastructure.bus.redis_pubsub import RedisFanout
from ticket_chat.infrastructure.db.uow import open_uow
from ticket_chat.infrastructure.ws.manager import ConnectionManager
from ticket_chat.services.chat_gateway import ChatGateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    relay: RedisFanout | None = getattr(app.state, "redis_fanout", None)
    if relay is not None:
        await relay.start()

    yield

    app.state.gateway.shutdown()
    if relay is not None:
        await relay.stop()
    redis: aioredis.Redis | None = getattr(app.state, "redis", None)
    if redis is not None:
        await redis.aclose()
        logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ticket Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _wire_gateway(app)
    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(ws.router)

    return app


def _wire_gateway(app: FastAPI) -> None:
    manager = ConnectionManager()
    fanout: TopicFanout = manager
    app.state.redis = None
    app.state.redis_fanout = None

    if settings.CHAT_FANOUT_MODE == "redis":
        # from_url connects lazily; the relay subscribes on startup.
        app.state.redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        relay = RedisFanout(app.state.redis, settings.REDIS_PUBSUB_CHANNEL, manager)
        app.state.redis_fanout = relay
        fanout = relay
        logger.info("Chat fan-out via Redis channel=%s", settings.REDIS_PUBSUB_CHANNEL)

    app.state.ws_manager = manager
    app.state.gateway = ChatGateway(
        fanout,
        get_verifier(),
        open_uow,
        history_limit=settings.CHAT_HISTORY_LIMIT,
        max_message_length=settings.CHAT_MAX_MESSAGE_LENGTH,
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthenticationError)
    async def _unauthenticated(_req: Request, exc: AuthenticationError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(AccessDeniedError)
    async def _forbidden(_req: Request, exc: AccessDeniedError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(PersistenceError)
    async def _unavailable(_req: Request, exc: PersistenceError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})
