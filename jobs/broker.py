"""
Dramatiq broker for commission jobs.

Importing this module installs the Redis broker as the dramatiq default,
so it must be imported before any actor is declared.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import (
    AgeLimit,
    CurrentMessage,
    Retries,
    ShutdownNotifications,
    TimeLimit,
)
from loguru import logger

from app.config.settings import settings

COMMISSION_QUEUE = "commissions"


def create_broker() -> RedisBroker:
    """
    Build the Redis broker from settings.

    Redelivery is safe: commission processing is idempotent per
    (order, beneficiary, level).
    """
    return RedisBroker(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password or None,
        db=settings.redis_db,
        middleware=[
            AgeLimit(),
            TimeLimit(),
            ShutdownNotifications(),
            CurrentMessage(),
            Retries(
                max_retries=3,
                min_backoff=1000,  # 1 second
                max_backoff=60000,  # 1 minute
            ),
        ],
    )


broker = create_broker()
dramatiq.set_broker(broker)

logger.info(
    "Commission job broker ready",
    extra={
        "redis": f"{settings.redis_host}:{settings.redis_port}/{settings.redis_db}",
        "queue": COMMISSION_QUEUE,
    },
)
