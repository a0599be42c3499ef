"""Extraction of product records from the cards of a rendered listing page."""

import logging
from typing import Iterable, Optional, Tuple

from playwright.async_api import Error as PlaywrightError, Locator

from pc_scraper.config import CategoryConfig
from pc_scraper.ingest.base import Product
from pc_scraper.ingest.brands import extract_brand
from pc_scraper.ingest.dedupe import DedupLedger
from pc_scraper.ingest.price_parser import parse_price

logger = logging.getLogger(__name__)

CARD_SELECTOR = ".MuiCard-root"
TITLE_SELECTOR = "h2"
TITLE_FALLBACK_SELECTOR = ".MuiTypography-root"
PRICE_SELECTOR = "text=/R\\$/"

# Elements are already rendered when cards are read; never wait the
# Playwright default (30s) on a card that lacks one.
TEXT_TIMEOUT_MS = 2000


async def _first_text(card: Locator, selector: str) -> str:
    """Text content of the first element matching selector inside card, or ""."""
    locator = card.locator(selector).first
    if await locator.count() == 0:
        return ""
    text = await locator.text_content(timeout=TEXT_TIMEOUT_MS)
    return text or ""


def matches_targets(title_lower: str, targets: Iterable[str]) -> bool:
    """True if the lowercased title contains at least one non-blank target."""
    for target in targets:
        clean_target = target.strip().lower()
        if clean_target and clean_target in title_lower:
            return True
    return False


class PageExtractor:
    """Turns product cards into validated, deduplicated Product records."""

    def __init__(self, ledger: DedupLedger):
        self.ledger = ledger

    async def extract(
        self,
        cards: Iterable[Locator],
        category: CategoryConfig,
        page_number: int,
    ) -> Tuple[list[Product], int]:
        """
        Extract the products of one page, in render order.

        Args:
            cards: Product card locators of the page
            category: Category being walked
            page_number: 1-based page number

        Returns:
            Tuple of (new products, number of duplicates skipped)
        """
        products: list[Product] = []
        duplicates = 0

        for index, card in enumerate(cards):
            try:
                product, is_duplicate = await self._extract_card(card, category, page_number)
            except PlaywrightError as e:
                logger.debug(f"Skipping card {index} on page {page_number}: {e}")
                continue

            if is_duplicate:
                duplicates += 1
                continue
            if product is not None:
                products.append(product)

        return products, duplicates

    async def _extract_card(
        self,
        card: Locator,
        category: CategoryConfig,
        page_number: int,
    ) -> Tuple[Optional[Product], bool]:
        title_text = await _first_text(card, TITLE_SELECTOR)
        if not title_text:
            title_text = await _first_text(card, TITLE_FALLBACK_SELECTOR)

        title_lower = title_text.lower()

        if category.targets and not matches_targets(title_lower, category.targets):
            return None, False

        price_text = await _first_text(card, PRICE_SELECTOR)
        if not title_text.strip() or not price_text.strip():
            return None, False

        if category.filter not in title_lower:
            return None, False

        price = parse_price(price_text)
        if price <= 0:
            return None, False

        title_clean = title_text.strip()
        key = DedupLedger.fingerprint(title_clean, price)
        if self.ledger.seen(key):
            return None, True

        self.ledger.mark(key)

        return Product(
            title=title_clean,
            brand=extract_brand(title_clean),
            price=price,
            raw_price=price_text.strip(),
            page=page_number,
            category=category.name,
        ), False
