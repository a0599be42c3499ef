"""Parsing of Brazilian-formatted price strings."""

import re

# Leftover bytes from UTF-8 text decoded as Latin-1 (the NBSP after "R$").
MOJIBAKE_ARTIFACTS = ("Â",)

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


def parse_price(raw: str) -> float:
    """
    Convert a price such as ``"R$ 1.234,56"`` into ``1234.56``.

    Thousands are separated by ``.`` and decimals by ``,``. When anything
    other than a number is left after cleaning, the last whitespace
    separated token is used.

    Returns:
        The price, or 0.0 when the text holds no usable number
    """
    if not raw:
        return 0.0

    cleaned = raw.replace("R$", "")
    for artifact in MOJIBAKE_ARTIFACTS:
        cleaned = cleaned.replace(artifact, "")
    cleaned = cleaned.replace(".", "").replace(",", ".").strip()

    tokens = cleaned.split()
    if tokens:
        cleaned = tokens[-1]

    if not _NUMBER_RE.fullmatch(cleaned):
        return 0.0
    return float(cleaned)
