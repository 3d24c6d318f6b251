"""Store identification from product and wishlist URLs."""

from __future__ import annotations

import urllib.parse

# Ordered: the first substring found in the hostname wins.
_STORE_NAMES: tuple[tuple[str, str], ...] = (
    ("amazon", "Amazon"),
    ("etsy", "Etsy"),
    ("target", "Target"),
    ("walmart", "Walmart"),
    ("bestbuy", "Best Buy"),
    ("ebay", "eBay"),
    ("pinterest", "Pinterest"),
    ("shein", "Shein"),
    ("asos", "ASOS"),
    ("zara", "Zara"),
    ("hm.com", "H&M"),
    ("uniqlo", "Uniqlo"),
    ("forever21", "Forever 21"),
    ("gap", "Gap"),
    ("nordstrom", "Nordstrom"),
    ("sephora", "Sephora"),
    ("ulta", "Ulta"),
    ("ikea", "IKEA"),
    ("wayfair", "Wayfair"),
    ("homedepot", "Home Depot"),
    ("lowes", "Lowe's"),
)


def _hostname(url: str) -> str:
    return (urllib.parse.urlsplit(url.strip()).hostname or "").lower()


def source_domain(url: str | None) -> str | None:
    """Lower-cased hostname of url, or None when it has none."""
    if not url:
        return None
    try:
        return _hostname(url) or None
    except ValueError:
        return None


def detect_store_name(url: str) -> str:
    """Human-readable store name for an already-validated URL.

    Known retailers come from the lookup table; anything else is the first
    label of the hostname with its first letter capitalized.
    """
    hostname = _hostname(url)
    for needle, name in _STORE_NAMES:
        if needle in hostname:
            return name
    root = hostname.removeprefix("www.").split(".")[0]
    return root[:1].upper() + root[1:]
