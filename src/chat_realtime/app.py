from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_realtime.api.deps import get_verifier
from chat_realtime.api.middleware.correlation_id import CorrelationIdMiddleware
from chat_realtime.api.v1.actions import ACTIONS
from chat_realtime.api.v1.routers import health, ws
from chat_realtime.application.ports.auth import TokenVerifier
from chat_realtime.application.uow import UnitOfWorkFactory
from chat_realtime.config import settings
from chat_realtime.infrastructure.bus.redis_pubsub import (
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
)
from chat_realtime.infrastructure.db.session import dispose_engine
from chat_realtime.infrastructure.db.uow import open_uow
from chat_realtime.infrastructure.ws.hub import RealtimeHub

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    hub: RealtimeHub = app.state.hub
    subscriber: RedisPubSubSubscriber | None = None

    if settings.FANOUT_MODE == "redis":
        app.state.redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        logger.info("Redis connection pool created")

        hub.dispatcher.use_publisher(
            RedisPubSubPublisher(app.state.redis),
            settings.REDIS_PUBSUB_CHANNEL,
        )
        subscriber = RedisPubSubSubscriber(
            app.state.redis,
            settings.REDIS_PUBSUB_CHANNEL,
            hub.dispatcher.deliver_local,
            reconnect_delay=settings.REDIS_RECONNECT_SECONDS,
        )
        await subscriber.start()

    yield

    await hub.shutdown()
    if subscriber is not None:
        await subscriber.stop()
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")
    await dispose_engine()


def create_app(
    uow_factory: UnitOfWorkFactory | None = None,
    verifier: TokenVerifier | None = None,
) -> FastAPI:
    app = FastAPI(
        title="Chat Realtime Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.hub = RealtimeHub(
        uow_factory or open_uow,
        ACTIONS,
        send_timeout=settings.WS_SEND_TIMEOUT_SECONDS,
    )
    app.state.verifier = verifier or get_verifier()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(health.router)
    app.include_router(ws.router)

    return app
