"""Label strategies for category / person / occasion grouping.

A Classifier maps tempIds to free-text labels. The LLM-backed strategy is the
default; the keyword strategy needs no network and only knows categories.
Missing tempIds in the returned mapping are expected: the grouping engine
puts them in the mode's fallback bucket.
"""

from __future__ import annotations

import re
from typing import Protocol

import structlog

from wishlist_api.config import settings
from wishlist_api.models.contracts import ClassificationMode, GroupableItem
from wishlist_api.services.extraction import ExtractionEngine
from wishlist_api.utils.json_extract import ParseOk

log = structlog.get_logger("wishlist.classifiers")


class Classifier(Protocol):
    async def classify(
        self, items: list[GroupableItem], mode: ClassificationMode
    ) -> dict[str, str]: ...


_MODE_GUIDANCE: dict[str, str] = {
    "category": (
        "the kind of product, using short labels such as "
        '"Electronics", "Clothing", "Home & Kitchen", "Beauty", "Books", '
        '"Toys & Games", "Sports & Outdoors", "Jewelry"'
    ),
    "person": (
        "who the item is most likely for, using labels such as "
        '"Mom", "Dad", "Partner", "Kids", "Baby", "Friend", "Coworker", "Self"'
    ),
    "occasion": (
        "the occasion the item best fits, using labels such as "
        '"Birthday", "Christmas", "Wedding", "Anniversary", "Baby Shower", '
        '"Housewarming", "Graduation", "Valentine\'s Day"'
    ),
}

CLASSIFY_PROMPT = """\
Classify these items by {guidance}.
Reuse the same label for items that belong together; keep labels short.

Items:
{items}

Return ONLY a valid JSON object mapping each tempId to its label:
{{
  "tempId1": "Label A",
  "tempId2": "Label A"
}}"""


class LLMClassifier:
    def __init__(self, engine: ExtractionEngine) -> None:
        self._engine = engine

    async def classify(
        self, items: list[GroupableItem], mode: ClassificationMode
    ) -> dict[str, str]:
        listing = "\n".join(f"- {item.temp_id}: {item.title}" for item in items)
        result = await self._engine.complete_json(
            f"classify_{mode}",
            CLASSIFY_PROMPT.format(guidance=_MODE_GUIDANCE[mode], items=listing),
            expect="object",
            input_chars=len(listing),
        )
        if not isinstance(result, ParseOk):
            return {}
        return {
            str(temp_id): label.strip()
            for temp_id, label in result.value.items()
            if isinstance(label, str) and label.strip()
        }


_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Electronics", ("headphone", "earbud", "laptop", "phone", "tablet", "camera", "speaker",
                     "charger", "monitor", "keyboard", "console", "tv", "smartwatch")),
    ("Clothing", ("shirt", "dress", "jacket", "jeans", "sweater", "hoodie", "coat", "shoe",
                  "sneaker", "boot", "skirt", "pants", "sock")),
    ("Beauty", ("lipstick", "serum", "moisturizer", "perfume", "mascara", "skincare",
                "shampoo", "palette", "cleanser")),
    ("Home & Kitchen", ("mug", "pan", "knife", "blender", "lamp", "pillow", "blanket", "vase",
                        "candle", "towel", "sofa", "chair", "table", "rug", "cookware")),
    ("Books", ("book", "novel", "hardcover", "paperback", "kindle")),
    ("Toys & Games", ("lego", "toy", "puzzle", "doll", "board game", "plush")),
    ("Sports & Outdoors", ("yoga", "tent", "bike", "dumbbell", "running", "camping", "ball")),
    ("Jewelry", ("necklace", "ring", "bracelet", "earring", "pendant")),
)


def _has_keyword(title: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}s?\b", title) is not None


class KeywordClassifier:
    """Rule-based categories from title keywords; person/occasion stay unmapped."""

    async def classify(
        self, items: list[GroupableItem], mode: ClassificationMode
    ) -> dict[str, str]:
        if mode != "category":
            return {}
        labels: dict[str, str] = {}
        for item in items:
            title = item.title.lower()
            for label, keywords in _CATEGORY_KEYWORDS:
                if any(_has_keyword(title, kw) for kw in keywords):
                    labels[item.temp_id] = label
                    break
        return labels


def classifier_from_settings(engine: ExtractionEngine) -> Classifier:
    if settings.classifier_backend == "keyword" or not engine.configured:
        log.debug("classifier_selected", backend="keyword")
        return KeywordClassifier()
    return LLMClassifier(engine)
