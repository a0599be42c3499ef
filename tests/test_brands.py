"""Tests for brand classification."""

from pc_scraper.ingest.brands import COMMON_BRANDS, UNKNOWN_BRAND, extract_brand


def test_brand_is_case_insensitive():
    assert extract_brand("Placa de Video ASUS Dual RTX 4060") == "ASUS"
    assert extract_brand("placa de video asus tuf rx 7600") == "ASUS"


def test_unknown_brand():
    assert extract_brand("Placa de Video Generica 8GB") == UNKNOWN_BRAND
    assert extract_brand("") == UNKNOWN_BRAND


def test_first_listed_brand_wins():
    # ASUS precedes NVIDIA in the list
    assert COMMON_BRANDS.index("ASUS") < COMMON_BRANDS.index("NVIDIA")
    assert extract_brand("NVIDIA GeForce RTX 4070 ASUS ProArt") == "ASUS"
