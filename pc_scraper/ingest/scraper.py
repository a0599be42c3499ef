"""Pichau catalog scraper: browser lifecycle and category orchestration."""

import asyncio
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError, Page, async_playwright

from pc_scraper.config import ScrapeConfig
from pc_scraper.ingest.base import BaseScraper, CancelToken, Product, ScraperError
from pc_scraper.ingest.category_walker import CategoryWalker
from pc_scraper.ingest.dedupe import DedupLedger
from pc_scraper.ingest.page_extractor import PageExtractor
from pc_scraper.ingest.stealth_browser import STEALTH_ARGS, SleepFunc, StealthBrowser

logger = logging.getLogger(__name__)


class PichauScraper(BaseScraper):
    """
    Scrapes every configured category with a single browser page.

    Categories are walked one after another with a fixed pause between
    them. The dedup ledger lives as long as the scraper, so duplicates are
    suppressed across categories too.
    """

    def __init__(
        self,
        config: ScrapeConfig,
        walker: Optional[CategoryWalker] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        self.config = config
        self._sleep = sleep or asyncio.sleep
        if walker is None:
            walker = CategoryWalker(config, PageExtractor(DedupLedger()), sleep=self._sleep)
        self.walker = walker
        self.ledger = walker.extractor.ledger
        self.stealth = self.walker.stealth

    async def scrape(self, cancel: Optional[CancelToken] = None) -> list[Product]:
        """
        Launch Chromium and walk all categories.

        Raises:
            ScraperError: If Playwright, the browser or the page cannot be started
        """
        try:
            playwright = await async_playwright().start()
        except PlaywrightError as e:
            raise ScraperError(f"Failed to start Playwright: {e}") from e

        try:
            try:
                browser = await playwright.chromium.launch(
                    headless=self.config.headless,
                    args=STEALTH_ARGS,
                )
            except PlaywrightError as e:
                raise ScraperError(f"Failed to launch browser: {e}") from e

            try:
                context = await browser.new_context(
                    **self.stealth.get_stealth_context_options(self.config.user_agent)
                )
                page = await context.new_page()
            except PlaywrightError as e:
                await browser.close()
                raise ScraperError(f"Failed to open browser page: {e}") from e

            try:
                await self.stealth.inject_stealth_scripts(page)
                return await self.scrape_categories(page, cancel)
            finally:
                await browser.close()
        finally:
            await playwright.stop()

    async def scrape_categories(
        self,
        page: Page,
        cancel: Optional[CancelToken] = None,
    ) -> list[Product]:
        """
        Walk each configured category in order on an already open page.

        Args:
            page: Playwright page to drive
            cancel: Optional cancellation token

        Returns:
            All products, in category, page and card order
        """
        all_products: list[Product] = []
        categories = self.config.categories

        for index, category in enumerate(categories):
            if cancel is not None and cancel.cancelled:
                logger.info(f"Run cancelled, skipping remaining categories from {category.name}")
                break

            logger.info(f"Starting category {category.name}", extra={"category": category.name})

            try:
                products = await self.walker.walk(page, category, cancel)
            except Exception:
                logger.exception(
                    f"Error scraping category {category.name}",
                    extra={"category": category.name},
                )
                products = []

            all_products.extend(products)

            is_last = index == len(categories) - 1
            if not is_last and (cancel is None or not cancel.cancelled):
                logger.info(
                    f"Pausing {self.config.category_delay:.0f}s between categories",
                    extra={"duration_seconds": self.config.category_delay},
                )
                await self._sleep(self.config.category_delay)

        return all_products


async def scrape_pichau(
    config: ScrapeConfig,
    cancel: Optional[CancelToken] = None,
) -> list[Product]:
    """Run a full scrape with a fresh scraper (and dedup ledger)."""
    scraper = PichauScraper(config)
    return await scraper.scrape(cancel)
