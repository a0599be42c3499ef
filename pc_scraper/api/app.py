"""Read-only HTTP API over the stored prices."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from pc_scraper.api.routes import products
from pc_scraper.config import settings
from pc_scraper.db.session import engine, init_db
from pc_scraper.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting price API...")
    await init_db()

    yield

    logger.info("Shutting down...")
    await engine.dispose()


app = FastAPI(
    title="PC Price Scraper",
    description="Price comparison over scraped hardware listings",
    version="0.1.0",
    lifespan=lifespan,
)

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health"],
)
instrumentator.instrument(app).expose(app, include_in_schema=True, tags=["monitoring"])

app.include_router(products.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    setup_logging("api")
    uvicorn.run(
        "pc_scraper.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
