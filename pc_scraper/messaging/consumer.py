"""Consumes the product queue with ack / requeue semantics.

Each message is moved atomically from the queue to a processing list, so a
message is never lost if the consumer dies mid-way: messages found in the
processing list at startup are put back on the queue. Successful handling
acknowledges (removes) the message; any failure puts it back to be delivered
again. Delivery is at-least-once and there is no dead-letter list.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis

from pc_scraper.config import settings
from pc_scraper.ingest.base import Product
from pc_scraper.messaging.base import QueueError, connect, decode_message, processing_key
from pc_scraper import metrics

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Product], Awaitable[None]]

# Seconds a blocking read waits before the stop event is checked again
POLL_TIMEOUT_SECONDS = 1


class ProductConsumer:
    """Takes one message at a time and hands the product to a handler."""

    def __init__(
        self,
        handler: MessageHandler,
        queue_name: Optional[str] = None,
        redis_url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
    ):
        self.handler = handler
        self.queue_name = queue_name or settings.queue_name
        self.processing_name = processing_key(self.queue_name)
        self.redis_url = redis_url or settings.redis_url
        self._redis = client

    async def connect(self) -> None:
        """
        Connect to Redis and requeue messages left unacknowledged by a previous run.

        Raises:
            QueueConnectionError: If Redis is unreachable
        """
        if self._redis is None:
            self._redis = await connect(self.redis_url)

        recovered = await self.recover_unacked()
        logger.info(
            f"Consumer connected to queue {self.queue_name}",
            extra={"queue": self.queue_name, "recovered": recovered},
        )

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def recover_unacked(self) -> int:
        """Move every message stranded in the processing list back onto the queue."""
        recovered = 0
        while await self._redis.lmove(self.processing_name, self.queue_name, "RIGHT", "RIGHT"):
            recovered += 1
        if recovered:
            logger.warning(f"Requeued {recovered} unacknowledged messages")
        return recovered

    async def start(self, stop_event: asyncio.Event) -> None:
        """
        Process messages until stop_event is set.

        Raises:
            QueueError: If Redis fails while waiting for or settling a message
        """
        if self._redis is None:
            raise QueueError("Consumer is not connected")

        logger.info(f"Waiting for messages on {self.queue_name}", extra={"queue": self.queue_name})

        while not stop_event.is_set():
            try:
                raw = await self._redis.blmove(
                    self.queue_name,
                    self.processing_name,
                    POLL_TIMEOUT_SECONDS,
                    "RIGHT",
                    "LEFT",
                )
                if raw is None:
                    continue

                await self.process_message(raw)
                metrics.queue_depth.set(await self._redis.llen(self.queue_name))
            except redis.RedisError as e:
                raise QueueError(f"Queue connection failed: {e}") from e

        logger.info("Consumer stopped")

    async def process_message(self, raw: str) -> bool:
        """
        Decode and handle one message taken from the queue, then settle it.

        Returns:
            True if acknowledged, False if requeued
        """
        try:
            product = decode_message(raw)
            logger.info(
                f"Processing {product.title} ({product.price:.2f}, {product.category})",
                extra={"title": product.title, "price": product.price, "category": product.category},
            )
            await self.handler(product)
        except Exception as e:
            logger.error(
                f"Failed to process message, requeueing: {e}",
                extra={"body": raw},
            )
            await self._nack(raw)
            return False

        await self._ack(raw)
        return True

    async def _ack(self, raw: str) -> None:
        await self._redis.lrem(self.processing_name, 1, raw)

    async def _nack(self, raw: str) -> None:
        """Return a message to the consuming end of the queue."""
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.lrem(self.processing_name, 1, raw)
            pipe.rpush(self.queue_name, raw)
            await pipe.execute()
