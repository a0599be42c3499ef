"""Scraper process: scrape the catalog, publish every product, export a CSV."""

import asyncio
import signal
import sys
from typing import Optional

from pc_scraper.config import ScrapeConfig, Settings, settings
from pc_scraper.export.csv_export import ExportError, export_to_csv
from pc_scraper.ingest.base import CancelToken, Product, ScraperError
from pc_scraper.ingest.scraper import scrape_pichau
from pc_scraper.logging_config import get_logger, setup_logging
from pc_scraper.messaging.base import QueueConnectionError, QueueError
from pc_scraper.messaging.publisher import ProductPublisher
from pc_scraper import metrics

logger = get_logger(__name__, component="scraper")


def install_signal_handlers(cancel: CancelToken) -> None:
    """Turn SIGINT/SIGTERM into a cooperative cancellation of the run."""
    loop = asyncio.get_running_loop()

    def _on_signal(sig: signal.Signals):
        logger.info(f"Received {sig.name}, finishing the current page and stopping")
        cancel.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass


async def publish_all(publisher: ProductPublisher, products: list[Product]) -> int:
    """Publish products one by one; failures are logged and skipped."""
    published = 0
    for product in products:
        try:
            await publisher.publish(product)
        except QueueError as e:
            logger.error(
                f"Failed to publish {product.title}: {e}",
                extra={"product_key": product.unique_key},
            )
            continue
        published += 1

    logger.info(
        f"Publishing finished: {published} published, {len(products) - published} failed",
        extra={"total_published": published, "failed": len(products) - published},
    )
    return published


async def run(source: Optional[Settings] = None) -> int:
    """
    Run one scrape-and-publish cycle.

    Returns:
        Process exit code
    """
    source = source or settings
    config = ScrapeConfig.from_settings(source)

    logger.info(
        f"Starting scraper (max_pages={config.max_pages}, headless={config.headless}, "
        f"queue={source.queue_name})",
        extra={"max_pages": config.max_pages, "headless": config.headless, "queue": source.queue_name},
    )

    publisher = ProductPublisher(queue_name=source.queue_name, redis_url=source.redis_url)
    try:
        await publisher.connect()
    except QueueConnectionError:
        logger.exception("Failed to connect to the queue")
        return 1

    cancel = CancelToken.with_timeout(source.scrape_timeout_minutes * 60)
    install_signal_handlers(cancel)

    try:
        try:
            products = await scrape_pichau(config, cancel)
        except ScraperError:
            logger.exception("Scraper failed")
            return 1

        logger.info(
            f"Scraping finished with {len(products)} products",
            extra={"total_products_found": len(products), "cancelled": cancel.cancelled},
        )

        await publish_all(publisher, products)
    finally:
        await publisher.close()

    logger.info("Generating CSV export")
    try:
        export_to_csv(products, source.export_dir)
    except ExportError as e:
        logger.error(f"CSV export failed: {e}")

    return 0


def main():
    setup_logging("scraper")
    metrics.start_metrics_server(settings.scraper_metrics_port)
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
