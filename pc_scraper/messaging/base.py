"""Message envelope and Redis connection shared by the publisher and consumer."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis

from pc_scraper.ingest.base import Product

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json"


class QueueError(RuntimeError):
    """Raised when a queue operation fails."""


class QueueConnectionError(QueueError):
    """Raised when the queue server cannot be reached."""


def processing_key(queue_name: str) -> str:
    """Name of the list holding messages taken but not yet acknowledged."""
    return f"{queue_name}:processing"


def encode_message(product: Product, timestamp: Optional[datetime] = None) -> str:
    """Wrap a product in a persistent JSON envelope."""
    timestamp = timestamp or datetime.now(timezone.utc)
    return json.dumps({
        "content_type": CONTENT_TYPE,
        "delivery_mode": "persistent",
        "timestamp": timestamp.isoformat(),
        "body": product.to_dict(),
    }, ensure_ascii=False)


def decode_message(raw: str | bytes) -> Product:
    """
    Unwrap an envelope back into a product.

    Raises:
        ValueError: If the envelope or the product in it is malformed
    """
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid message JSON: {exc}") from exc

    if not isinstance(envelope, dict) or "body" not in envelope:
        raise ValueError("Message has no body")
    return Product.from_dict(envelope["body"])


async def connect(redis_url: str) -> redis.Redis:
    """
    Open a Redis connection and check that it answers.

    Raises:
        QueueConnectionError: If the server cannot be reached
    """
    client = redis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except redis.RedisError as e:
        await client.aclose()
        raise QueueConnectionError(f"Failed to connect to Redis: {e}") from e
    return client
