"""Tests for the page fetcher: it returns "" on every failure and never raises."""

from unittest.mock import patch

import httpx

from wishlist_api.config import settings
from wishlist_api.utils.http import fetch_page


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFetchPage:
    async def test_returns_body_and_sends_browser_identity(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers["User-Agent"]
            return httpx.Response(200, text="<html>wishlist</html>")

        async with _client(handler) as client:
            body = await fetch_page(client, "https://www.amazon.com/hz/wishlist/ls/1")
        assert body == "<html>wishlist</html>"
        assert seen["ua"] == settings.fetch_user_agent

    async def test_follows_redirects(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(302, headers={"Location": "https://shop.com/new"})
            return httpx.Response(200, text="moved here")

        async with _client(handler) as client:
            assert await fetch_page(client, "https://shop.com/old") == "moved here"

    async def test_non_success_status_is_empty(self):
        async with _client(lambda request: httpx.Response(403, text="blocked")) as client:
            assert await fetch_page(client, "https://shop.com/list") == ""

    async def test_timeout_is_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with _client(handler) as client:
            assert await fetch_page(client, "https://shop.com/list") == ""

    async def test_network_error_is_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            assert await fetch_page(client, "https://shop.com/list") == ""

    async def test_large_body_is_cut_at_byte_limit(self):
        chunk = b"<li>item</li>" * 80_000  # ~1 MiB
        served = 0

        async def body():
            nonlocal served
            for _ in range(200):
                served += 1
                yield chunk

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, headers={"Content-Type": "text/html; charset=utf-8"}, content=body()
            )

        with patch("wishlist_api.utils.http.settings.fetch_max_bytes", 64_000):
            async with _client(handler) as client:
                text = await fetch_page(client, "https://shop.com/huge")
        assert len(text) == 64_000
        assert text.startswith("<li>item</li>")
        assert served == 1

    async def test_body_under_limit_is_untouched(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="café wishlist")

        with patch("wishlist_api.utils.http.settings.fetch_max_bytes", 64_000):
            async with _client(handler) as client:
                assert await fetch_page(client, "https://shop.com/list") == "café wishlist"
