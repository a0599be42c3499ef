"""Brand classification by title substring."""

UNKNOWN_BRAND = "OUTROS"

# Checked in order, first match wins.
COMMON_BRANDS = [
    "ASUS", "MSI", "GIGABYTE", "ASROCK", "GALAX", "PNY",
    "INTEL", "AMD", "CORSAIR", "KINGSTON", "XPG", "LOGITECH",
    "RAZER", "REDRAGON", "SAMSUNG", "LG", "AOC", "HUSKY",
    "MANCER", "PICHAU", "NVIDIA", "ZOTAC", "COLORFUL", "GAINWARD",
    "SAPPHIRE", "POWERCOLOR", "XFX", "INNO3D",
]


def extract_brand(title: str) -> str:
    """Return the first known brand contained in the title, or UNKNOWN_BRAND."""
    title_upper = (title or "").upper()
    for brand in COMMON_BRANDS:
        if brand in title_upper:
            return brand
    return UNKNOWN_BRAND
