"""Core scraping types: the product record, cancellation and the scraper interface."""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Optional


class ScraperError(RuntimeError):
    """Raised when a scraper cannot start or run at all."""


@dataclass(frozen=True)
class Product:
    """A product listing scraped from a category page."""

    title: str
    brand: str
    price: float
    raw_price: str
    page: int
    category: str

    @property
    def unique_key(self) -> str:
        return f"{self.title}|{self.category}"

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        """
        Build a product from a decoded message body.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        try:
            title = data["title"]
            brand = data["brand"]
            price = data["price"]
            raw_price = data["raw_price"]
            page = data["page"]
            category = data["category"]
        except KeyError as exc:
            raise ValueError(f"Missing product field: {exc.args[0]}") from exc

        for name, value in (("title", title), ("brand", brand), ("raw_price", raw_price), ("category", category)):
            if not isinstance(value, str):
                raise ValueError(f"Field '{name}' must be a string")
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise ValueError("Field 'price' must be a number")
        if isinstance(page, bool) or not isinstance(page, int):
            raise ValueError("Field 'page' must be an integer")

        return cls(
            title=title,
            brand=brand,
            price=float(price),
            raw_price=raw_price,
            page=page,
            category=category,
        )

    @classmethod
    def from_json(cls, payload: str | bytes) -> "Product":
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid product JSON: {exc}") from exc
        return cls.from_dict(data)


class CancelToken:
    """
    Cooperative cancellation signal for a scraping run.

    Fires when ``cancel()`` is called or when the optional deadline passes.
    Walkers poll ``cancelled`` between iterations; nothing in flight is
    interrupted.
    """

    def __init__(self, deadline: Optional[float] = None):
        self._event = asyncio.Event()
        self._deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelToken":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._event.set()

    @property
    def timed_out(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.timed_out


class BaseScraper(ABC):
    """Abstract base class for catalog scrapers."""

    @abstractmethod
    async def scrape(self, cancel: Optional[CancelToken] = None) -> list[Product]:
        """
        Walk every configured category and return the products found.

        Args:
            cancel: Optional cancellation token checked between pages

        Returns:
            Products in category, page and card order

        Raises:
            ScraperError: If the browser cannot be started
        """
        pass
