"""Outbound page fetches for the import pipeline.

Store pages often refuse clients without a browser user agent, so every
request identifies as one. Failures are logged and reported as "" and never
raised: callers treat an empty body as "could not fetch". Bodies are read as a
stream and cut at `fetch_max_bytes`; extraction only looks at the head of a page.
"""

from __future__ import annotations

import httpx
import structlog

from wishlist_api.config import settings

log = structlog.get_logger("wishlist.http")


def browser_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.fetch_user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


async def fetch_page(client: httpx.AsyncClient, url: str) -> str:
    """GET url and return at most fetch_max_bytes of its body, or "" on any failure."""
    limit = settings.fetch_max_bytes
    chunks: list[bytes] = []
    received = 0
    try:
        async with client.stream(
            "GET",
            url,
            headers=browser_headers(),
            timeout=settings.fetch_timeout_seconds,
            follow_redirects=True,
        ) as response:
            if not response.is_success:
                log.warning("fetch_page_bad_status", url=url[:200], status=response.status_code)
                return ""
            async for chunk in response.aiter_bytes():
                chunks.append(chunk)
                received += len(chunk)
                if received >= limit:
                    log.info("fetch_page_truncated", url=url[:200], limit=limit)
                    break
            encoding = response.encoding or "utf-8"
    except httpx.TimeoutException:
        log.error("fetch_page_timeout", url=url[:200], timeout=settings.fetch_timeout_seconds)
        return ""
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        log.error("fetch_page_error", url=url[:200], error_type=type(exc).__name__)
        return ""

    return b"".join(chunks)[:limit].decode(encoding, errors="replace")


async def fetch_page_text(url: str) -> str:
    """Fetch a single page with a short-lived client."""
    async with httpx.AsyncClient() as client:
        return await fetch_page(client, url)
