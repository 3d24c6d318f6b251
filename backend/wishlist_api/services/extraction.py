"""Extraction engine: prompt a hosted model and parse JSON out of its reply.

All structured-data extraction in the import pipeline goes through
ExtractionEngine.complete_json(). One call per request step, bounded by an
explicit timeout and never retried: a slow or malformed answer degrades to
a ParseError (callers substitute an empty result) instead of stalling the
request.
"""

from __future__ import annotations

import math
import re
import urllib.parse
from typing import Any

import anthropic
import structlog

from wishlist_api.config import settings
from wishlist_api.models.contracts import ImportedItem
from wishlist_api.utils import llm_cache
from wishlist_api.utils.json_extract import JsonKind, ParseError, ParseOk, ParseResult, extract_json
from wishlist_api.utils.tracing import wrap_anthropic

log = structlog.get_logger("wishlist.extraction")

_PRICE_RE = re.compile(r"-?\d[\d,]*(?:\.\d+)?|-?\.\d+")


def truncate_input(text: str, limit: int | None = None) -> str:
    """Clip oversized page bodies to the prompt budget."""
    limit = settings.extraction_max_input_chars if limit is None else limit
    return text[:limit]


class ExtractionEngine:
    """Thin wrapper around the Anthropic messages API.

    client=None means no API key is configured; every call then returns
    ParseError("llm_not_configured") so the pipeline still answers.
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self._client = client
        self.model = model or settings.extraction_model
        self.max_tokens = max_tokens or settings.extraction_max_tokens

    @classmethod
    def from_settings(cls) -> ExtractionEngine:
        if not settings.anthropic_api_key:
            return cls(None)
        client = anthropic.AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            timeout=settings.extraction_timeout_seconds,
            max_retries=0,
        )
        return cls(wrap_anthropic(client))

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def _complete(self, operation: str, prompt: str) -> str:
        assert self._client is not None
        cache_key = [self.model, prompt]
        cached = llm_cache.get_cached_text(operation, cache_key)
        if cached is not None:
            return cached

        response = await self._client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        log.info(
            "extraction_tokens",
            operation=operation,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self.model,
        )

        text = ""
        for block in response.content:
            if hasattr(block, "text"):
                text += block.text
        llm_cache.set_cached_text(operation, cache_key, text)
        return text

    async def complete_json(
        self,
        operation: str,
        prompt: str,
        *,
        expect: JsonKind,
        input_chars: int,
    ) -> ParseResult:
        """Run one prompt and parse the first JSON literal of kind `expect`."""
        if not self.configured:
            log.warning("extraction_not_configured", operation=operation, input_chars=input_chars)
            return ParseError("llm_not_configured")

        try:
            text = await self._complete(operation, prompt)
        except anthropic.APITimeoutError:
            log.warning(
                "extraction_timeout",
                operation=operation,
                input_chars=input_chars,
                timeout=settings.extraction_timeout_seconds,
            )
            return ParseError("llm_timeout")
        except anthropic.APIError as exc:
            log.warning(
                "extraction_api_error",
                operation=operation,
                input_chars=input_chars,
                error_type=type(exc).__name__,
                status=getattr(exc, "status_code", None),
            )
            return ParseError(f"llm_error:{type(exc).__name__}")

        result = extract_json(text, expect=expect)
        if isinstance(result, ParseError):
            log.warning(
                "extraction_parse_failed",
                operation=operation,
                reason=result.reason,
                input_chars=input_chars,
                response_chars=len(text),
                response_head=text[:120],
            )
        return result

    async def extract_wishlist_items(
        self, html: str, store_name: str, base_url: str
    ) -> list[ImportedItem]:
        """Pull product entries out of a store wishlist/cart page."""
        body = truncate_input(html)
        prompt = WISHLIST_ITEMS_PROMPT.format(store_name=store_name, html=body)
        result = await self.complete_json(
            "import_wishlist", prompt, expect="array", input_chars=len(html)
        )
        if not isinstance(result, ParseOk):
            return []
        items = normalize_imported_items(result.value, base_url)
        log.info(
            "wishlist_items_extracted",
            store_name=store_name,
            raw=len(result.value),
            kept=len(items),
            truncated=len(html) > len(body),
        )
        return items


WISHLIST_ITEMS_PROMPT = """\
Parse this {store_name} wishlist/cart HTML and extract ALL items you can find. For each item, extract:
- title: product/item name (string, required)
- imageUrl: best quality product image URL (string or null)
- price: numeric price if visible (number or null)
- currency: currency code (USD, EUR, GBP, etc.), null if not visible
- productUrl: full URL to the product page (string, required)

Be thorough and extract as many items as possible.

Return ONLY a valid JSON array of objects, no markdown or extra text:
[
  {{ "title": "...", "imageUrl": "...", "price": 29.99, "currency": "USD", "productUrl": "..." }}
]

If currency is not visible, use null. If price is not visible, use null.

HTML Content:
{html}"""


def parse_price(value: Any) -> float | None:
    """Coerce model output like 29.99, "29.99" or "$1,299.00" to a float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        price = float(value)
    elif isinstance(value, str):
        match = _PRICE_RE.search(value)
        if match is None:
            return None
        try:
            price = float(match.group(0).replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return price if math.isfinite(price) else None


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_imported_items(raw: Any, base_url: str = "") -> list[ImportedItem]:
    """Turn model-provided dicts into ImportedItems, dropping unusable entries.

    Missing title becomes "Unknown Item"; entries without a product URL are
    dropped. Relative product/image URLs are resolved against base_url.
    """
    if not isinstance(raw, list):
        return []
    items: list[ImportedItem] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        product_url = _optional_str(entry.get("productUrl"))
        if product_url is None:
            continue
        image_url = _optional_str(entry.get("imageUrl"))
        currency = _optional_str(entry.get("currency"))
        items.append(
            ImportedItem(
                title=_optional_str(entry.get("title")) or "Unknown Item",
                image_url=urllib.parse.urljoin(base_url, image_url) if image_url else None,
                price=parse_price(entry.get("price")),
                currency=currency.upper() if currency else None,
                product_url=urllib.parse.urljoin(base_url, product_url),
            )
        )
    return items
