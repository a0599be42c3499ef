"""Prometheus metrics for the scraper and the consumer."""

import logging

from prometheus_client import Counter, Gauge, Histogram, Info, start_http_server

logger = logging.getLogger(__name__)

# Application info
app_info = Info("pc_scraper", "PC price scraper application info")
app_info.info({"version": "0.1.0", "name": "pc-scraper"})

# Scraper metrics
products_scraped_total = Counter(
    "scraper_products_scraped_total",
    "Total number of products scraped",
    ["category"],
)

pages_processed_total = Counter(
    "scraper_pages_processed_total",
    "Total number of pages processed",
    ["category", "status"],
)

page_duration_seconds = Histogram(
    "scraper_page_duration_seconds",
    "Time taken to scrape a page",
    ["category"],
)

cloudflare_detections_total = Counter(
    "scraper_cloudflare_detections_total",
    "Total number of Cloudflare challenges detected",
)

duplicates_skipped_total = Counter(
    "scraper_duplicates_skipped_total",
    "Total number of duplicate products skipped",
    ["category"],
)

# Consumer metrics
messages_processed_total = Counter(
    "consumer_messages_processed_total",
    "Total number of messages processed",
    ["status"],
)

message_processing_duration_seconds = Histogram(
    "consumer_message_processing_duration_seconds",
    "Time taken to process a message",
)

database_inserts_total = Counter(
    "consumer_database_inserts_total",
    "Total number of database inserts",
    ["status"],
)

queue_depth = Gauge(
    "consumer_queue_depth",
    "Current depth of the product queue",
)


def record_page_success(category: str, duration: float, products: int, duplicates: int):
    """Record a page that yielded product cards."""
    page_duration_seconds.labels(category=category).observe(duration)
    pages_processed_total.labels(category=category, status="success").inc()
    products_scraped_total.labels(category=category).inc(products)
    duplicates_skipped_total.labels(category=category).inc(duplicates)


def record_page_empty(category: str):
    pages_processed_total.labels(category=category, status="empty").inc()


def record_page_error(category: str):
    pages_processed_total.labels(category=category, status="error").inc()


def record_cloudflare_detection():
    cloudflare_detections_total.inc()


def record_message_processed(success: bool, duration: float):
    """Record one consumed message and the database insert behind it."""
    status = "success" if success else "error"
    message_processing_duration_seconds.observe(duration)
    messages_processed_total.labels(status=status).inc()
    database_inserts_total.labels(status=status).inc()


def start_metrics_server(port: int) -> None:
    """Expose /metrics on a background thread."""
    logger.info(f"Starting metrics server on port {port}", extra={"port": port})
    start_http_server(port)
