"""Persistence and price-comparison queries for scraped products."""

import logging
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pc_scraper.db.models import ProductRecord
from pc_scraper.ingest.base import Product

logger = logging.getLogger(__name__)

DEFAULT_BEST_PRICES_LIMIT = 20


class RepositoryError(RuntimeError):
    """Raised when the database cannot be reached or a statement fails."""


class ProductRepository:
    """Stores products and answers price-comparison queries."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def ping(self) -> None:
        """
        Check that the database answers.

        Raises:
            RepositoryError: If the connection fails
        """
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryError(f"Failed to connect to database: {e}") from e
        logger.info("Connected to database")

    async def save(self, product: Product) -> int:
        """
        Insert a product observation.

        Args:
            product: Product to store

        Returns:
            ID of the new row

        Raises:
            RepositoryError: If the insert fails
        """
        record = ProductRecord(
            title=product.title,
            brand=product.brand,
            price=Decimal(f"{product.price:.2f}"),
            raw_price=product.raw_price,
            page_number=product.page,
            category=product.category,
        )
        try:
            async with self.session_factory() as session:
                session.add(record)
                await session.commit()
                record_id = record.id
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryError(f"Failed to insert product: {e}") from e

        logger.info(
            f"Saved product {record_id}: {product.title} ({product.price:.2f})",
            extra={"id": record_id, "title": product.title, "price": product.price},
        )
        return record_id

    async def find_best_prices(
        self,
        category: str,
        limit: int = DEFAULT_BEST_PRICES_LIMIT,
    ) -> List[Product]:
        """
        Lowest observed price of each title in a category, cheapest first.

        Args:
            category: Category label (e.g. "GPU")
            limit: Maximum number of titles returned

        Returns:
            Products ordered by ascending price
        """
        lowest = (
            select(
                ProductRecord.title.label("title"),
                func.min(ProductRecord.price).label("min_price"),
            )
            .where(ProductRecord.category == category)
            .group_by(ProductRecord.title)
            .subquery()
        )
        query = (
            select(ProductRecord)
            .join(
                lowest,
                (ProductRecord.title == lowest.c.title)
                & (ProductRecord.price == lowest.c.min_price),
            )
            .where(ProductRecord.category == category)
            .order_by(ProductRecord.price.asc(), ProductRecord.scraped_at.desc())
        )

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                records = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryError(f"Failed to query best prices: {e}") from e

        products: List[Product] = []
        seen_titles: set[str] = set()
        for record in records:
            # Ties on the minimum price return one row per observation
            if record.title in seen_titles:
                continue
            seen_titles.add(record.title)
            products.append(_to_product(record))
            if len(products) >= limit:
                break
        return products

    async def get_stats(self) -> Dict[str, Any]:
        """Aggregate counts and prices over every stored product."""
        query = select(
            func.count(ProductRecord.id),
            func.count(func.distinct(ProductRecord.category)),
            func.min(ProductRecord.price),
            func.max(ProductRecord.price),
            func.avg(ProductRecord.price),
        )
        try:
            async with self.session_factory() as session:
                row = (await session.execute(query)).one()
        except (SQLAlchemyError, OSError) as e:
            raise RepositoryError(f"Failed to query stats: {e}") from e

        total, categories, min_price, max_price, avg_price = row
        return {
            "total_products": total or 0,
            "categories": categories or 0,
            "min_price": float(min_price or 0),
            "max_price": float(max_price or 0),
            "avg_price": float(avg_price or 0),
        }


def _to_product(record: ProductRecord) -> Product:
    return Product(
        title=record.title,
        brand=record.brand,
        price=float(record.price),
        raw_price=record.raw_price,
        page=record.page_number,
        category=record.category,
    )
