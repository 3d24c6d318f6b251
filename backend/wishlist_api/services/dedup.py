"""Duplicate detection across a batch of items about to be imported.

The model proposes groups of tempIds that look like the same product; this
module only trusts groups that survive a strict post-filter.
"""

from __future__ import annotations

import json
import time
from typing import Any

import structlog

from wishlist_api.models.contracts import DuplicateCandidate, DuplicateGroup
from wishlist_api.services.extraction import ExtractionEngine
from wishlist_api.utils.json_extract import ParseOk

log = structlog.get_logger("wishlist.dedup")

MIN_GROUP_SIZE = 2
MIN_CONFIDENCE = 0.7

DEDUP_PROMPT = """\
You are analyzing a list of imported items to find duplicates. Items with the same or very similar product are likely duplicates.

Items to analyze:
{items}

For each group of duplicate items:
1. Group items that are clearly the same product (same title, similar images, same URL, or a clear variant of the same product)
2. Only create groups with HIGH confidence (>0.7)
3. For each group, provide:
   - members: array of tempIds that are duplicates
   - confidence: score from 0 to 1 indicating how certain the grouping is
   - canonicalTitle: the best representative title from the group
   - reason: why these are grouped (e.g. "Identical product from different stores", "Same item in different size variants")

Return ONLY valid JSON in this exact format:
{{
  "groups": [
    {{ "members": ["tempId1", "tempId2"], "confidence": 0.95, "canonicalTitle": "...", "reason": "..." }}
  ]
}}

If no clear duplicates are found, return: {{ "groups": [] }}"""


def _summaries(items: list[DuplicateCandidate]) -> list[dict[str, Any]]:
    return [
        {
            "tempId": item.temp_id,
            "title": item.title,
            "domain": item.source_domain or "unknown",
            "hasImage": bool(item.image_url),
            "url": item.product_url or "unknown",
        }
        for item in items
    ]


def clamp_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if value != value:  # NaN
        return 0.0
    return min(1.0, max(0.0, float(value)))


def _clean_members(members: Any, known: set[str]) -> list[str]:
    """Known tempIds only, first occurrence order kept."""
    if not isinstance(members, list):
        return []
    cleaned: list[str] = []
    for member in members:
        if isinstance(member, str) and member in known and member not in cleaned:
            cleaned.append(member)
    return cleaned


def filter_duplicate_groups(raw_groups: Any, known_ids: set[str]) -> list[DuplicateGroup]:
    """Build DuplicateGroups from model output, keeping only trustworthy ones."""
    if not isinstance(raw_groups, list):
        return []
    stamp = int(time.time() * 1000)
    groups: list[DuplicateGroup] = []
    for index, raw in enumerate(raw_groups):
        if not isinstance(raw, dict):
            continue
        members = _clean_members(raw.get("members"), known_ids)
        confidence = clamp_confidence(raw.get("confidence"))
        if len(members) < MIN_GROUP_SIZE or confidence <= MIN_CONFIDENCE:
            continue
        groups.append(
            DuplicateGroup(
                group_id=f"dup_{stamp}_{index}",
                members=members,
                confidence=confidence,
                canonical_title=str(raw.get("canonicalTitle") or "Unknown"),
                reason=str(raw.get("reason") or "Potential duplicate detected"),
            )
        )
    return groups


async def detect_duplicates(
    engine: ExtractionEngine, items: list[DuplicateCandidate]
) -> list[DuplicateGroup]:
    if len(items) < MIN_GROUP_SIZE:
        log.debug("dedup_skipped", item_count=len(items))
        return []

    payload = json.dumps(_summaries(items), indent=2)
    result = await engine.complete_json(
        "detect_duplicates",
        DEDUP_PROMPT.format(items=payload),
        expect="object",
        input_chars=len(payload),
    )
    if not isinstance(result, ParseOk):
        return []

    groups = filter_duplicate_groups(
        result.value.get("groups"), {item.temp_id for item in items}
    )
    log.info("dedup_completed", item_count=len(items), group_count=len(groups))
    return groups
