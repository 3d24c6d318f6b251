"""Disk cache for model responses during local development.

Enabled by LLM_CACHE_DIR (unset in production). Keys are hashes of the model
id and prompt, so editing a prompt naturally misses the cache. Only the raw
response text is stored; parsing always runs on the way out.
"""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path

import structlog

logger = structlog.get_logger("wishlist.llm_cache")

_CACHE_DIR: str | None = os.environ.get("LLM_CACHE_DIR")


def _cache_path(namespace: str, key_parts: list[str]) -> Path | None:
    """Return the cache file for these inputs, or None when caching is off."""
    if not _CACHE_DIR:
        return None
    digest = hashlib.sha256("|".join(key_parts).encode()).hexdigest()[:20]
    cache_dir = Path(_CACHE_DIR) / namespace
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir / f"{digest}.json"


def get_cached_text(namespace: str, key_parts: list[str]) -> str | None:
    path = _cache_path(namespace, key_parts)
    if path is None or not path.exists():
        return None
    try:
        entry = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        return None
    text = entry.get("text") if isinstance(entry, dict) else None
    if isinstance(text, str):
        logger.info("llm_cache_hit", namespace=namespace)
        return text
    return None


def set_cached_text(namespace: str, key_parts: list[str], text: str) -> None:
    path = _cache_path(namespace, key_parts)
    if path is None:
        return
    try:
        path.write_text(json.dumps({"text": text}))
        logger.info("llm_cache_saved", namespace=namespace, chars=len(text))
    except OSError:
        logger.warning("llm_cache_write_failed", namespace=namespace)
