"""FastAPI dependencies."""

from pc_scraper.db.repository import ProductRepository
from pc_scraper.db.session import AsyncSessionLocal


async def get_repository() -> ProductRepository:
    """Dependency for the product repository."""
    return ProductRepository(AsyncSessionLocal)
