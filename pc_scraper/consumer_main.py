"""Consumer process: persist every queued product."""

import asyncio
import signal
import sys
import time
from typing import Optional

from pc_scraper.config import Settings, settings
from pc_scraper.db.repository import ProductRepository, RepositoryError
from pc_scraper.db.session import create_engine_and_sessionmaker, init_db
from pc_scraper.ingest.base import Product
from pc_scraper.logging_config import get_logger, setup_logging
from pc_scraper.messaging.base import QueueConnectionError, QueueError
from pc_scraper.messaging.consumer import MessageHandler, ProductConsumer
from pc_scraper import metrics

logger = get_logger(__name__, component="consumer")


def make_handler(repository: ProductRepository) -> MessageHandler:
    """Build the message handler: save the product and record metrics."""

    async def handle(product: Product) -> None:
        start_time = time.monotonic()
        try:
            await repository.save(product)
        except RepositoryError:
            metrics.record_message_processed(False, time.monotonic() - start_time)
            raise
        metrics.record_message_processed(True, time.monotonic() - start_time)

    return handle


async def run(source: Optional[Settings] = None) -> int:
    """
    Consume until SIGINT/SIGTERM.

    Returns:
        Process exit code
    """
    source = source or settings
    logger.info(f"Starting consumer on queue {source.queue_name}", extra={"queue": source.queue_name})

    engine, session_factory = create_engine_and_sessionmaker(source.database_url)
    repository = ProductRepository(session_factory)
    try:
        await repository.ping()
        await init_db(engine)
    except RepositoryError:
        logger.exception("Failed to connect to the database")
        await engine.dispose()
        return 1

    consumer = ProductConsumer(
        make_handler(repository),
        queue_name=source.queue_name,
        redis_url=source.redis_url,
    )
    try:
        await consumer.connect()
    except QueueConnectionError:
        logger.exception("Failed to connect to the queue")
        await engine.dispose()
        return 1

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    exit_code = 0
    try:
        await consumer.start(stop_event)
    except QueueError:
        logger.exception("Consumer loop failed")
        exit_code = 1
    finally:
        await consumer.close()
        await engine.dispose()

    if exit_code == 0:
        logger.info("Consumer shut down cleanly")
    return exit_code


def main():
    setup_logging("consumer", json_console=True)
    metrics.start_metrics_server(settings.consumer_metrics_port)
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
