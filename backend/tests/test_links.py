"""Tests for URL canonicalization, shortener expansion and store detection."""

import httpx
import pytest

from wishlist_api.services.links import canonicalize_url, is_shortened, normalize_url
from wishlist_api.services.stores import detect_store_name, source_domain


class TestCanonicalizeUrl:
    def test_adds_scheme_and_strips_www(self):
        assert canonicalize_url("www.Example.com/Shoes") == "https://example.com/Shoes"

    def test_lowercases_scheme_and_host(self):
        assert canonicalize_url("HTTP://Shop.EXAMPLE.com/a") == "http://shop.example.com/a"

    def test_removes_tracking_and_sorts_params(self):
        url = "https://example.com/p?utm_source=ig&z=1&fbclid=abc&a=2&ref=home"
        assert canonicalize_url(url) == "https://example.com/p?a=2&z=1"

    def test_strips_trailing_slash_and_fragment(self):
        assert canonicalize_url("https://example.com/item/#reviews") == "https://example.com/item"

    def test_root_path_kept(self):
        assert canonicalize_url("https://example.com") == "https://example.com/"

    def test_port_kept(self):
        assert canonicalize_url("http://localhost:8080/x/") == "http://localhost:8080/x"

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.amazon.com/dp/B0?utm_medium=x&th=1",
            "etsy.com/listing/123/",
            "https://example.com/a%20b?q=hello+world&b=",
            "https://www.www.shop.com/p?utm_source=x&ref=y",
        ],
    )
    def test_idempotent(self, url):
        once = canonicalize_url(url)
        assert canonicalize_url(once) == once

    def test_repeated_www_prefix_is_fully_stripped(self):
        once = canonicalize_url("https://www.www.shop.com/p?utm_source=x&ref=y")
        assert once == "https://shop.com/p"
        assert canonicalize_url(once) == once

    def test_unparseable_returned_unchanged(self):
        assert canonicalize_url("http://[::1") == "http://[::1"


class TestNormalizeUrl:
    def test_shortener_detection(self):
        assert is_shortened("https://bit.ly/abc")
        assert is_shortened("amzn.to/xyz")
        assert not is_shortened("https://amazon.com/dp/1")

    async def test_regular_url_is_not_fetched(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("should not be called")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await normalize_url("https://www.target.com/p/1?utm_source=x", client)
        assert result == "https://target.com/p/1"

    async def test_shortener_expanded_and_canonicalized(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "bit.ly":
                return httpx.Response(
                    301, headers={"Location": "https://www.amazon.com/dp/B01/?tag=x&utm_source=tw"}
                )
            return httpx.Response(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await normalize_url("https://bit.ly/abc", client)
        assert result == "https://amazon.com/dp/B01?tag=x"

    async def test_expansion_failure_falls_back_to_canonical_input(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await normalize_url("https://bit.ly/abc/", client)
        assert result == "https://bit.ly/abc"


class TestStoreDetection:
    @pytest.mark.parametrize(
        ("url", "name"),
        [
            ("https://www.amazon.com/hz/wishlist/ls/ABC", "Amazon"),
            ("https://www.amazon.com/dp/123", "Amazon"),
            ("https://randomshop.example.com/x", "Randomshop"),
            ("https://www.bestbuy.com/list", "Best Buy"),
            ("https://www2.hm.com/en_us/favourites", "H&M"),
            ("https://www.lowes.com/mylists", "Lowe's"),
            ("https://www.ikea.com/us/en/favourites/", "IKEA"),
        ],
    )
    def test_known_stores(self, url, name):
        assert detect_store_name(url) == name

    def test_unknown_store_titleized_root(self):
        assert detect_store_name("https://www.mycoolshop.co.uk/list") == "Mycoolshop"

    def test_source_domain(self):
        assert source_domain("https://WWW.Etsy.com/listing/1") == "www.etsy.com"
        assert source_domain(None) is None
        assert source_domain("not a url") is None
