"""Stealth helpers for Playwright.

Implements automation-flag hiding, anti-bot interstitial detection and
human-like scroll simulation.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional

from playwright.async_api import Error as PlaywrightError, Page

logger = logging.getLogger(__name__)

# Chromium launch flags
STEALTH_ARGS = [
    "--disable-blink-features=AutomationControlled",
]

# Page title fragments shown by anti-bot challenge pages (case-sensitive)
INTERSTITIAL_TITLE_MARKERS = ("Just a moment", "Cloudflare")

InterstitialPredicate = Callable[[str], bool]
SleepFunc = Callable[[float], Awaitable[Any]]


def is_cloudflare_interstitial(title: str) -> bool:
    """Detect a Cloudflare challenge from the page title."""
    if not title:
        return False
    return any(marker in title for marker in INTERSTITIAL_TITLE_MARKERS)


class StealthBrowser:
    """
    Enhances Playwright pages with stealth techniques.

    Features:
    - WebDriver property hiding
    - Randomized scroll and pause before reading a page
    - Fixed user agent context options
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep

    async def inject_stealth_scripts(self, page: Page) -> None:
        """Hide the webdriver flag before any page script runs."""
        try:
            await page.add_init_script(
                """
                Object.defineProperty(navigator, 'webdriver', {
                    get: () => false
                });
                """
            )
        except PlaywrightError as e:
            logger.debug(f"Error injecting stealth script: {e}")

    async def simulate_human_behavior(self, page: Page) -> None:
        """
        Scroll a random amount and pause before the page is read.

        Args:
            page: Playwright page object
        """
        scroll_amount = self._rng.randint(300, 799)
        try:
            await page.mouse.wheel(0, scroll_amount)
        except PlaywrightError as e:
            logger.debug(f"Error simulating human behavior: {e}")

        await self._sleep(self._rng.uniform(1.0, 3.0))

    def get_stealth_context_options(self, user_agent: str) -> Dict[str, Any]:
        """
        Get Playwright context options.

        Args:
            user_agent: User agent string presented by every request

        Returns:
            Dict of context options
        """
        return {
            "user_agent": user_agent,
            "locale": "pt-BR",
            "timezone_id": "America/Sao_Paulo",
        }
