"""Paginated walk over one catalog category."""

import asyncio
import logging
import random
import time
from typing import Optional

from playwright.async_api import Error as PlaywrightError, Page

from pc_scraper.config import CategoryConfig, ScrapeConfig
from pc_scraper.ingest.base import CancelToken, Product
from pc_scraper.ingest.page_extractor import CARD_SELECTOR, PageExtractor
from pc_scraper.ingest.stealth_browser import (
    InterstitialPredicate,
    SleepFunc,
    StealthBrowser,
    is_cloudflare_interstitial,
)
from pc_scraper import metrics

logger = logging.getLogger(__name__)


def build_page_url(base_url: str, page_number: int) -> str:
    return f"{base_url}?page={page_number}"


class CategoryWalker:
    """
    Walks the listing pages of a category until there is nothing left to read.

    Each page goes through navigation, an interstitial check, a human-like
    scroll, card counting, extraction and a randomized wait. The walk stops
    at ``max_pages``, on the first empty page, on a navigation error, or when
    the cancel token fires (checked before each page). All of these return
    the products collected so far.
    """

    def __init__(
        self,
        config: ScrapeConfig,
        extractor: PageExtractor,
        stealth: Optional[StealthBrowser] = None,
        is_interstitial: InterstitialPredicate = is_cloudflare_interstitial,
        sleep: Optional[SleepFunc] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.extractor = extractor
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()
        self.stealth = stealth or StealthBrowser(rng=self._rng, sleep=self._sleep)
        self.is_interstitial = is_interstitial

    def random_wait_time(self) -> float:
        """Seconds to wait before the next page, uniform in [min, max]."""
        return self._rng.uniform(self.config.wait_time_min, self.config.wait_time_max)

    async def walk(
        self,
        page: Page,
        category: CategoryConfig,
        cancel: Optional[CancelToken] = None,
    ) -> list[Product]:
        """
        Collect the products of every page of a category.

        Args:
            page: Playwright page to drive
            category: Category to walk
            cancel: Optional cancellation token

        Returns:
            Products in page and card order
        """
        products: list[Product] = []

        for page_number in range(1, self.config.max_pages + 1):
            if cancel is not None and cancel.cancelled:
                logger.info(
                    f"Cancelled before page {page_number} of {category.name}, "
                    f"returning {len(products)} products",
                    extra={"category": category.name, "page": page_number},
                )
                break

            start_time = time.monotonic()
            url = build_page_url(category.url, page_number)
            logger.info(
                f"Opening {category.name} page {page_number}: {url}",
                extra={"category": category.name, "page": page_number, "url": url},
            )

            try:
                await self._navigate(page, url)
            except PlaywrightError as e:
                logger.error(
                    f"Navigation failed for {category.name} page {page_number}: {e}",
                    extra={"category": category.name, "page": page_number},
                )
                metrics.record_page_error(category.name)
                break

            await self._wait_out_interstitial(page, category)

            await self.stealth.simulate_human_behavior(page)

            cards = page.locator(CARD_SELECTOR)
            try:
                count = await self._count_cards(cards)
            except PlaywrightError as e:
                logger.error(f"Failed to count product cards on page {page_number}: {e}")
                continue

            if count == 0:
                logger.warning(
                    f"Empty or blocked page {page_number} for {category.name}, stopping",
                    extra={"category": category.name, "page": page_number},
                )
                metrics.record_page_empty(category.name)
                break

            try:
                items = await cards.all()
            except PlaywrightError as e:
                logger.error(f"Failed to list product cards on page {page_number}: {e}")
                items = []

            page_products, duplicates = await self.extractor.extract(items, category, page_number)
            products.extend(page_products)

            duration = time.monotonic() - start_time
            metrics.record_page_success(category.name, duration, len(page_products), duplicates)

            logger.info(
                f"{category.name} page {page_number}: {len(page_products)} new, "
                f"{duplicates} duplicates (total: {len(products)}) in {duration:.2f}s",
                extra={
                    "category": category.name,
                    "page": page_number,
                    "new_products": len(page_products),
                    "duplicates": duplicates,
                    "total": len(products),
                    "duration_seconds": round(duration, 2),
                },
            )

            # A cancelled run stops at the top of the next iteration without waiting
            if cancel is None or not cancel.cancelled:
                wait_time = self.random_wait_time()
                logger.debug(f"Waiting {wait_time:.1f}s before next page")
                await self._sleep(wait_time)

        return products

    async def _navigate(self, page: Page, url: str) -> None:
        await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self.config.navigation_timeout_ms,
        )

    async def _wait_out_interstitial(self, page: Page, category: CategoryConfig) -> None:
        """Pause once for the configured time when a challenge page is showing."""
        try:
            title = await page.title()
        except PlaywrightError as e:
            logger.debug(f"Could not read page title: {e}")
            return

        if self.is_interstitial(title):
            logger.warning(
                f"Anti-bot interstitial detected on {category.name}, "
                f"waiting {self.config.cloudflare_wait:.0f}s for it to clear",
                extra={"category": category.name, "page_title": title},
            )
            metrics.record_cloudflare_detection()
            await self._sleep(self.config.cloudflare_wait)

    async def _count_cards(self, cards) -> int:
        """Count cards, recounting once after a short delay if none are rendered yet."""
        count = await cards.count()
        if count == 0:
            logger.warning("No product cards found, retrying once")
            await self._sleep(self.config.empty_retry_delay)
            try:
                count = await cards.count()
            except PlaywrightError as e:
                logger.debug(f"Recount failed: {e}")
                count = 0
        return count
