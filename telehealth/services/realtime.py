"""
Realtime event publishing over Redis pub/sub
Clients subscribe to conversation-<id> and user-<id> channels
"""
import json
import logging
import os
from typing import Any, Optional

import redis

from ..config import REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get or create Redis client
    Supports both a REDIS_URL and individual host/port settings
    """
    global redis_client

    if redis_client is not None:
        return redis_client

    redis_host = os.getenv("REDIS_HOST")
    if not REDIS_URL and not redis_host:
        logger.debug("Redis not configured, realtime events disabled")
        return None

    logger.info("🔄 Initializing Redis connection for realtime events...")
    if REDIS_URL:
        client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=15,
            socket_timeout=30,
            retry_on_timeout=True,
            health_check_interval=30,
            max_connections=20,
        )
    else:
        client = redis.Redis(
            host=redis_host,
            port=int(os.getenv("REDIS_PORT", "6379")),
            password=os.getenv("REDIS_PASSWORD", None),
            db=int(os.getenv("REDIS_DB", "0")),
            ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
            decode_responses=True,
            socket_connect_timeout=15,
            socket_timeout=30,
            retry_on_timeout=True,
            health_check_interval=30,
            max_connections=20,
        )
    client.ping()
    logger.info("Redis connected successfully")
    redis_client = client
    return redis_client


def publish(channel: str, event: str, payload: Any) -> bool:
    """
    Publish an event to a channel
    Failures are logged and never raised; delivery is best effort
    """
    try:
        client = get_redis_client()
        if client is None:
            return False
        client.publish(channel, json.dumps({"event": event, "data": payload}, default=str))
        logger.debug(f"📡 Published {event} on {channel}")
        return True
    except Exception as e:
        logger.error(f"❌ Realtime publish error on {channel}: {e}")
        return False
