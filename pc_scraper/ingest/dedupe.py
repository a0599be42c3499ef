"""In-run deduplication of scraped products."""


class DedupLedger:
    """
    Set of product fingerprints already emitted during one scraping run.

    The ledger is owned by the scraper and shared by every category walk, so
    the same title and price listed under two categories is only emitted
    once. Categories are walked sequentially, which is why there is no
    locking here; walking them in parallel would need a guarded structure.
    """

    def __init__(self):
        self._seen: set[str] = set()

    @staticmethod
    def fingerprint(title: str, price: float) -> str:
        """
        Build the dedup key for a product.

        Args:
            title: Product title (trimmed before use)
            price: Parsed price, formatted with two decimals

        Returns:
            Key string of the form ``"<title>|<price>"``
        """
        return f"{title.strip()}|{price:.2f}"

    def seen(self, fingerprint: str) -> bool:
        return fingerprint in self._seen

    def mark(self, fingerprint: str) -> None:
        self._seen.add(fingerprint)

    def __len__(self) -> int:
        return len(self._seen)
