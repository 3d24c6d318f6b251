"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

import secrets
from functools import lru_cache
from typing import Annotated

import structlog
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from wishlist_api.config import settings
from wishlist_api.database import get_session
from wishlist_api.repository import WishlistRepository
from wishlist_api.services.classifiers import Classifier, classifier_from_settings
from wishlist_api.services.extraction import ExtractionEngine

logger = structlog.get_logger()


class AuthError(Exception):
    """Missing, unknown or expired bearer session (HTTP 401)."""


class AdminAuthError(Exception):
    """Admin key missing or wrong (HTTP 403)."""


async def get_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> WishlistRepository:
    return WishlistRepository(session)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user_id(
    repo: Annotated[WishlistRepository, Depends(get_repository)],
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    token = _bearer_token(authorization)
    if token is None:
        raise AuthError("Missing bearer token")
    user_id = await repo.get_user_id_for_token(token)
    if user_id is None:
        logger.info("auth_rejected", reason="unknown_or_expired_session")
        raise AuthError("Invalid or expired session")
    structlog.contextvars.bind_contextvars(user_id=user_id)
    return user_id


async def require_admin(
    x_admin_key: Annotated[str | None, Header()] = None,
) -> None:
    """Gate catalog writes behind ADMIN_API_KEY; an unset key disables them."""
    expected = settings.admin_api_key
    if not expected or not x_admin_key:
        raise AdminAuthError("Admin key required")
    if not secrets.compare_digest(x_admin_key, expected):
        logger.warning("admin_key_rejected")
        raise AdminAuthError("Admin key required")


@lru_cache(maxsize=1)
def get_extraction_engine() -> ExtractionEngine:
    return ExtractionEngine.from_settings()


def get_classifier(
    engine: Annotated[ExtractionEngine, Depends(get_extraction_engine)],
) -> Classifier:
    return classifier_from_settings(engine)


CurrentUser = Annotated[str, Depends(get_current_user_id)]
Repository = Annotated[WishlistRepository, Depends(get_repository)]
Engine = Annotated[ExtractionEngine, Depends(get_extraction_engine)]
