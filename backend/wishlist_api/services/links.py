"""Product URL normalization.

canonicalize_url() is pure and idempotent: tracking parameters, www., trailing
slashes and fragments are stripped so the same product pasted from different
places compares equal. normalize_url() additionally expands known link
shorteners by following their redirects.
"""

from __future__ import annotations

import urllib.parse

import httpx
import structlog

from wishlist_api.config import settings

log = structlog.get_logger("wishlist.links")

TRACKING_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_content",
        "utm_term",
        "fbclid",
        "gclid",
        "mc_cid",
        "mc_eid",
        "_ga",
        "_gid",
        "ref",
        "source",
        "campaign",
        "msclkid",
        "igshid",
    }
)

SHORTENER_HOSTS = frozenset(
    {
        "bit.ly",
        "tinyurl.com",
        "ow.ly",
        "short.link",
        "t.co",
        "youtu.be",
        "is.gd",
        "goo.gl",
        "buff.ly",
        "amzn.to",
    }
)

MAX_EXPANSION_DEPTH = 3


def _ensure_scheme(url: str) -> str:
    url = url.strip()
    if "://" not in url:
        return f"https://{url}"
    return url


def canonicalize_url(url: str) -> str:
    """Return the canonical form of url, or url unchanged if it can't be parsed."""
    try:
        parts = urllib.parse.urlsplit(_ensure_scheme(url))
        host = (parts.hostname or "").lower()
        port = parts.port
    except ValueError:
        log.debug("url_canonicalize_failed", url=url[:200])
        return url
    if not host:
        return url

    while host.startswith("www."):
        host = host.removeprefix("www.")
    netloc = f"{host}:{port}" if port else host

    params = [
        (key, value)
        for key, value in urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    query = urllib.parse.urlencode(sorted(params))
    path = parts.path.rstrip("/") or "/"

    return urllib.parse.urlunsplit((parts.scheme.lower(), netloc, path, query, ""))


def is_shortened(url: str) -> bool:
    try:
        host = (urllib.parse.urlsplit(_ensure_scheme(url)).hostname or "").lower()
    except ValueError:
        return False
    return host.removeprefix("www.") in SHORTENER_HOSTS


async def expand_short_url(client: httpx.AsyncClient, url: str) -> str:
    """Follow a shortener's redirects; the input comes back on any failure."""
    try:
        response = await client.head(
            url,
            follow_redirects=True,
            timeout=settings.fetch_timeout_seconds,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        log.debug("short_url_expand_failed", url=url[:200], error_type=type(exc).__name__)
        return url
    return str(response.url) or url


async def normalize_url(url: str, client: httpx.AsyncClient | None = None) -> str:
    """Canonicalize url, expanding link shorteners first."""
    current = canonicalize_url(url)
    if not is_shortened(current):
        return current

    async def _expand(http: httpx.AsyncClient) -> str:
        nonlocal current
        for _ in range(MAX_EXPANSION_DEPTH):
            expanded = canonicalize_url(await expand_short_url(http, current))
            if expanded == current:
                break
            current = expanded
            if not is_shortened(current):
                break
        return current

    if client is not None:
        return await _expand(client)
    async with httpx.AsyncClient() as http:
        return await _expand(http)
