"""Tests for the extraction engine: prompting, degradation and item normalization."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from wishlist_api.services.extraction import (
    ExtractionEngine,
    normalize_imported_items,
    parse_price,
    truncate_input,
)
from wishlist_api.utils import llm_cache
from wishlist_api.utils.json_extract import ParseError, ParseOk

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


@pytest.fixture(autouse=True)
def _no_cache():
    with patch.object(llm_cache, "_CACHE_DIR", None):
        yield


def _response(text: str) -> SimpleNamespace:
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=120, output_tokens=40),
    )


def _engine(reply=None, side_effect=None) -> tuple[ExtractionEngine, MagicMock]:
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=reply, side_effect=side_effect)
    return ExtractionEngine(client, model="test-model", max_tokens=256), client


class TestCompleteJson:
    async def test_parses_fenced_reply(self):
        engine, client = _engine(_response('```json\n[{"title": "Mug"}]\n```'))
        result = await engine.complete_json("op", "prompt", expect="array", input_chars=6)
        assert result == ParseOk([{"title": "Mug"}])
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["max_tokens"] == 256
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    async def test_unparseable_reply_is_parse_error(self):
        engine, _ = _engine(_response("Sorry, I can't help with that."))
        result = await engine.complete_json("op", "prompt", expect="array", input_chars=6)
        assert result == ParseError("no_json_found")

    async def test_timeout_degrades(self):
        engine, _ = _engine(side_effect=anthropic.APITimeoutError(request=_REQUEST))
        result = await engine.complete_json("op", "prompt", expect="object", input_chars=6)
        assert result == ParseError("llm_timeout")

    async def test_api_error_degrades(self):
        engine, _ = _engine(side_effect=anthropic.APIConnectionError(request=_REQUEST))
        result = await engine.complete_json("op", "prompt", expect="object", input_chars=6)
        assert result == ParseError("llm_error:APIConnectionError")

    async def test_not_configured(self):
        engine = ExtractionEngine(None)
        assert not engine.configured
        result = await engine.complete_json("op", "prompt", expect="array", input_chars=0)
        assert result == ParseError("llm_not_configured")

    async def test_cached_reply_skips_the_call(self, tmp_path):
        engine, client = _engine(_response('{"a": 1}'))
        with patch.object(llm_cache, "_CACHE_DIR", str(tmp_path)):
            first = await engine.complete_json("op", "p", expect="object", input_chars=1)
            second = await engine.complete_json("op", "p", expect="object", input_chars=1)
        assert first == second == ParseOk({"a": 1})
        assert client.messages.create.await_count == 1

    def test_from_settings_without_key(self):
        with patch("wishlist_api.services.extraction.settings.anthropic_api_key", ""):
            assert not ExtractionEngine.from_settings().configured


class TestExtractWishlistItems:
    async def test_truncates_html_and_normalizes(self):
        reply = _response(
            '[{"title": "Lamp", "price": "$1,299.00", "currency": "usd", '
            '"productUrl": "/dp/1", "imageUrl": null}]'
        )
        engine, client = _engine(reply)
        html = "<li>" + "x" * 20_000
        items = await engine.extract_wishlist_items(
            html, "Amazon", "https://www.amazon.com/hz/wishlist/ls/ABC"
        )
        prompt = client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert "Amazon" in prompt
        assert "x" * 7996 in prompt
        assert "x" * 7997 not in prompt
        assert len(items) == 1
        item = items[0]
        assert item.title == "Lamp"
        assert item.price == 1299.0
        assert item.currency == "USD"
        assert item.image_url is None
        assert item.product_url == "https://www.amazon.com/dp/1"

    async def test_parse_failure_is_empty_list(self):
        engine, _ = _engine(_response("no items here"))
        assert await engine.extract_wishlist_items("<html/>", "Etsy", "https://etsy.com") == []


class TestNormalization:
    def test_truncate_input(self):
        assert truncate_input("abcdef", 3) == "abc"
        assert truncate_input("ab", 3) == "ab"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (29.99, 29.99),
            (15, 15.0),
            ("29.99", 29.99),
            ("$1,299.00", 1299.0),
            ("free", None),
            (None, None),
            (True, None),
            (float("nan"), None),
        ],
    )
    def test_parse_price(self, raw, expected):
        assert parse_price(raw) == expected

    def test_defaults_and_drops(self):
        items = normalize_imported_items(
            [
                {"productUrl": "https://shop.com/a"},
                {"title": "No link"},
                "garbage",
                {"title": "  Vase ", "productUrl": "https://shop.com/b", "currency": "", "price": "n/a"},
            ],
            "https://shop.com/list",
        )
        assert [i.title for i in items] == ["Unknown Item", "Vase"]
        assert items[1].currency is None
        assert items[1].price is None

    def test_non_list_is_empty(self):
        assert normalize_imported_items({"items": []}) == []
