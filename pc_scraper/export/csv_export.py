"""CSV export of a scraping run."""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from pc_scraper.ingest.base import Product

logger = logging.getLogger(__name__)

CSV_HEADER = ["Categoria", "Marca", "Título", "Preço", "Preço Raw", "Página"]


class ExportError(RuntimeError):
    """Raised when the CSV file cannot be written."""


def sort_for_export(products: Iterable[Product]) -> List[Product]:
    """Order products by category, then ascending price."""
    return sorted(products, key=lambda p: (p.category, p.price))


def export_to_csv(
    products: List[Product],
    output_dir: str | Path = "exports",
    now: Optional[datetime] = None,
) -> Path:
    """
    Write products to ``<output_dir>/products_YYYYMMDD_HHMMSS.csv``.

    The file is UTF-8 with a byte-order mark so spreadsheet tools pick up
    the accented header.

    Args:
        products: Products to write
        output_dir: Directory for the file (created if missing)
        now: Timestamp used in the file name

    Returns:
        Path of the written file

    Raises:
        ExportError: If there are no products or the file cannot be written
    """
    if not products:
        raise ExportError("No products to export")

    output_path = Path(output_dir)
    try:
        output_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExportError(f"Failed to create export directory {output_path}: {e}") from e

    filename = f"products_{(now or datetime.now()).strftime('%Y%m%d_%H%M%S')}.csv"
    filepath = output_path / filename

    try:
        with open(filepath, "w", encoding="utf-8-sig", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADER)
            for p in sort_for_export(products):
                writer.writerow([
                    p.category,
                    p.brand,
                    p.title,
                    f"{p.price:.2f}",
                    p.raw_price,
                    str(p.page),
                ])
    except OSError as e:
        raise ExportError(f"Failed to write {filepath}: {e}") from e

    logger.info(
        f"Exported {len(products)} products to {filepath}",
        extra={"filepath": str(filepath), "total_products": len(products)},
    )
    return filepath
