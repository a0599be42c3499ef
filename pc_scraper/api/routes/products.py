"""Price-comparison routes."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from pc_scraper.api.deps import get_repository
from pc_scraper.db.repository import ProductRepository, RepositoryError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])


class ProductResponse(BaseModel):
    title: str
    brand: str
    price: float
    raw_price: str
    page: int
    category: str


class StatsResponse(BaseModel):
    total_products: int
    categories: int
    min_price: float
    max_price: float
    avg_price: float


@router.get("/best-prices/{category}", response_model=List[ProductResponse])
async def best_prices(
    category: str,
    limit: int = Query(20, ge=1, le=100),
    repository: ProductRepository = Depends(get_repository),
):
    """Cheapest observed price of each product in a category."""
    try:
        products = await repository.find_best_prices(category.upper(), limit=limit)
    except RepositoryError as e:
        logger.error(f"Best prices query failed: {e}")
        raise HTTPException(status_code=503, detail="Database unavailable")
    return [p.to_dict() for p in products]


@router.get("/stats", response_model=StatsResponse)
async def stats(repository: ProductRepository = Depends(get_repository)):
    """Counts and price range over all stored products."""
    try:
        return await repository.get_stats()
    except RepositoryError as e:
        logger.error(f"Stats query failed: {e}")
        raise HTTPException(status_code=503, detail="Database unavailable")
