"""Entrypoint: python -m chat_realtime"""
from __future__ import annotations

import logging

import uvicorn

from chat_realtime.api.middleware.correlation_id import CorrelationIdFilter
from chat_realtime.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), handlers=[handler], force=True)


def main() -> None:
    configure_logging()
    uvicorn.run(
        "chat_realtime.app:create_app",
        factory=True,
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
