"""Publishes scraped products onto the durable product queue."""

import logging
from typing import Optional

import redis.asyncio as redis

from pc_scraper.config import settings
from pc_scraper.ingest.base import Product
from pc_scraper.messaging.base import QueueError, connect, encode_message

logger = logging.getLogger(__name__)


class ProductPublisher:
    """Pushes one message per product onto a Redis list."""

    def __init__(
        self,
        queue_name: Optional[str] = None,
        redis_url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
    ):
        self.queue_name = queue_name or settings.queue_name
        self.redis_url = redis_url or settings.redis_url
        self._redis = client

    async def connect(self) -> None:
        """
        Connect to Redis.

        Raises:
            QueueConnectionError: If Redis is unreachable
        """
        if self._redis is None:
            self._redis = await connect(self.redis_url)
        logger.info(
            f"Publisher connected to queue {self.queue_name}",
            extra={"queue": self.queue_name},
        )

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def publish(self, product: Product) -> None:
        """
        Enqueue a product.

        Raises:
            QueueError: If the publisher is not connected or the push fails
        """
        if self._redis is None:
            raise QueueError("Publisher is not connected")

        try:
            await self._redis.lpush(self.queue_name, encode_message(product))
        except redis.RedisError as e:
            raise QueueError(f"Failed to publish message: {e}") from e

        logger.debug(
            f"Published {product.title} ({product.price:.2f})",
            extra={"title": product.title, "price": product.price},
        )
