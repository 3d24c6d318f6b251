"""Optional LangSmith tracing for extraction calls.

Zero cost unless LANGSMITH_API_KEY is set. A missing or broken langsmith
install never blocks an import request; the unwrapped client is used.
"""

from __future__ import annotations

import os
from typing import Any

import structlog

_log = structlog.get_logger("wishlist.tracing")


def tracing_enabled() -> bool:
    return bool(os.environ.get("LANGSMITH_API_KEY", "").strip())


def wrap_anthropic(client: Any) -> Any:
    """Wrap an Anthropic client for auto-tracing when tracing is enabled."""
    if not tracing_enabled():
        return client
    try:
        from langsmith.wrappers import wrap_anthropic as _wrap
    except ImportError:
        _log.warning(
            "langsmith_not_installed",
            reason="LANGSMITH_API_KEY is set but langsmith is not installed; "
            "install with: pip install 'wishlist-import-api[tracing]'",
        )
        return client
    try:
        return _wrap(client)
    except Exception as exc:
        _log.error(
            "langsmith_wrap_failed",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return client
