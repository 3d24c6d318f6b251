"""Health check endpoint with a database connectivity probe.

The probe has a short timeout so a stuck database cannot hang the response.
A "disconnected" database does not change the overall status: the endpoint
always returns 200 so load balancers keep routing.
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter

from wishlist_api.config import settings

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

_CHECK_TIMEOUT = 3.0  # seconds


async def _check_postgres() -> str:
    """Ping PostgreSQL with SELECT 1 over a throwaway asyncpg connection."""
    import asyncpg

    # asyncpg wants the plain scheme, not the SQLAlchemy dialect+driver form
    url = settings.database_url.replace("postgresql+asyncpg://", "postgresql://")
    try:
        conn = await asyncio.wait_for(asyncpg.connect(url), timeout=_CHECK_TIMEOUT)
        try:
            await conn.fetchval("SELECT 1")
        finally:
            await conn.close()
        return "connected"
    except Exception as exc:
        logger.debug("health_postgres_failed", error=str(exc))
        return "disconnected"


@router.get("/health")
async def health_check() -> dict:
    return {
        "status": "ok",
        "version": "0.1.0",
        "environment": settings.environment,
        "postgres": await _check_postgres(),
    }
