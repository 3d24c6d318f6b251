"""Auto-grouping of import items into named buckets.

Store and price buckets are computed locally; category, person and occasion
labels come from a Classifier. Whatever the mode, every tempId lands in
exactly one bucket.
"""

from __future__ import annotations

import structlog

from wishlist_api.models.contracts import AutoGroupResult, GroupableItem, GroupingMode
from wishlist_api.services.classifiers import Classifier

log = structlog.get_logger("wishlist.grouping")

OTHER_STORES = "Other Stores"

FALLBACK_LABELS: dict[str, str] = {
    "category": "Uncategorized",
    "person": "General",
    "occasion": "General/Self",
}

# (exclusive upper bound, label); prices are in the item's own currency unit.
PRICE_BANDS: tuple[tuple[float, str], ...] = (
    (25, "Under $25"),
    (50, "$25 - $50"),
    (100, "$50 - $100"),
    (250, "$100 - $250"),
)
TOP_PRICE_BAND = "Over $250"

SINGLETON_CONFIDENCE = 0.95
GROUP_CONFIDENCE = 0.85


def default_mode(items: list[GroupableItem]) -> GroupingMode:
    domains = {item.source_domain.lower() for item in items if item.source_domain}
    return "store" if len(domains) > 1 else "category"


def price_band(price: float | None) -> str:
    value = price or 0
    for upper, label in PRICE_BANDS:
        if value < upper:
            return label
    return TOP_PRICE_BAND


def _bucket(items: list[GroupableItem], labels: dict[str, str]) -> list[AutoGroupResult]:
    buckets: dict[str, list[str]] = {}
    for item in items:
        buckets.setdefault(labels[item.temp_id], []).append(item.temp_id)
    return [
        AutoGroupResult(
            group_name=name,
            member_temp_ids=members,
            confidence=SINGLETON_CONFIDENCE if len(members) == 1 else GROUP_CONFIDENCE,
        )
        for name, members in buckets.items()
    ]


async def auto_group(
    items: list[GroupableItem],
    mode: GroupingMode | None,
    classifier: Classifier,
) -> tuple[list[AutoGroupResult], GroupingMode]:
    """Partition items by mode (or the default mode) and return the buckets."""
    resolved: GroupingMode = mode or default_mode(items)
    if not items:
        return [], resolved

    labels: dict[str, str]
    if resolved == "store":
        labels = {
            item.temp_id: (item.source_domain or "").lower() or OTHER_STORES for item in items
        }
    elif resolved == "price":
        labels = {item.temp_id: price_band(item.price) for item in items}
    else:
        mapping = await classifier.classify(items, resolved)
        fallback = FALLBACK_LABELS[resolved]
        labels = {item.temp_id: mapping.get(item.temp_id) or fallback for item in items}

    groups = _bucket(items, labels)
    log.info(
        "auto_group_completed",
        mode=resolved,
        explicit_mode=mode is not None,
        item_count=len(items),
        group_count=len(groups),
    )
    return groups, resolved
