"""Persistence gateway for the import pipeline.

Every ORM query the API needs goes through WishlistRepository so services can
be exercised against an in-memory double. Item inserts run inside a SAVEPOINT:
a rejected row rolls back alone and the surrounding batch keeps going.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from decimal import Decimal

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wishlist_api.models.db import (
    ImportTemplate,
    Store,
    StoreShippingRule,
    UserLocation,
    UserSession,
    Wishlist,
    WishlistItem,
)

log = structlog.get_logger("wishlist.repository")


@dataclass
class NewWishlistItem:
    """Column values for one wishlist_items row."""

    title: str
    image_url: str | None = None
    current_price: Decimal | None = None
    currency: str = "USD"
    original_url: str | None = None
    normalized_url: str | None = None
    source_domain: str | None = None
    notes: str | None = None


class ItemRejectedError(Exception):
    """The persistence layer refused a single item."""

    def __init__(self, title: str, reason: str) -> None:
        super().__init__(f"{title!r} rejected: {reason}")
        self.title = title
        self.reason = reason


def parse_uuid(value: str | uuid.UUID | None) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _domain_candidates(domain: str) -> list[str]:
    domain = domain.lower()
    bare = domain.removeprefix("www.")
    return [domain] if bare == domain else [domain, bare]


class WishlistRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- wishlists ---

    async def get_owned_wishlist(self, wishlist_id: str | uuid.UUID, user_id: str) -> Wishlist | None:
        """Return the wishlist only if it exists and belongs to user_id."""
        wid = parse_uuid(wishlist_id)
        if wid is None:
            return None
        wishlist = await self._session.get(Wishlist, wid)
        if wishlist is None or wishlist.user_id != user_id:
            return None
        return wishlist

    async def create_wishlist(self, user_id: str, name: str) -> Wishlist:
        wishlist = Wishlist(user_id=user_id, name=name)
        self._session.add(wishlist)
        await self._session.flush()
        log.info("wishlist_created", wishlist_id=str(wishlist.id), user_id=user_id)
        return wishlist

    async def add_item(self, wishlist_id: uuid.UUID, item: NewWishlistItem) -> WishlistItem:
        if not item.title or not item.title.strip():
            raise ItemRejectedError(item.title, "empty title")
        row = WishlistItem(wishlist_id=wishlist_id, **asdict(item))
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except SQLAlchemyError as exc:
            raise ItemRejectedError(item.title, type(exc).__name__) from exc
        return row

    # --- import templates ---

    async def list_templates(self, user_id: str) -> list[ImportTemplate]:
        result = await self._session.execute(
            select(ImportTemplate)
            .where(ImportTemplate.user_id == user_id)
            .order_by(ImportTemplate.created_at)
        )
        return list(result.scalars())

    async def get_owned_template(
        self, template_id: str | uuid.UUID, user_id: str
    ) -> ImportTemplate | None:
        tid = parse_uuid(template_id)
        if tid is None:
            return None
        template = await self._session.get(ImportTemplate, tid)
        if template is None or template.user_id != user_id:
            return None
        return template

    async def create_template(
        self,
        user_id: str,
        *,
        name: str,
        mode: str,
        grouping_mode: str,
        default_wishlist_id: uuid.UUID | None = None,
    ) -> ImportTemplate:
        template = ImportTemplate(
            user_id=user_id,
            name=name,
            mode=mode,
            grouping_mode=grouping_mode,
            default_wishlist_id=default_wishlist_id,
        )
        self._session.add(template)
        await self._session.flush()
        await self._session.refresh(template)
        return template

    async def delete_template(self, template: ImportTemplate) -> None:
        await self._session.delete(template)
        await self._session.flush()

    # --- store catalog ---

    async def get_store_by_domain(self, domain: str) -> Store | None:
        """Exact domain match first, then the domain without a leading www."""
        candidates = _domain_candidates(domain)
        result = await self._session.execute(
            select(Store)
            .where(Store.domain.in_(candidates))
            .options(selectinload(Store.shipping_rules))
        )
        stores = {store.domain: store for store in result.scalars()}
        for candidate in candidates:
            if candidate in stores:
                return stores[candidate]
        return None

    async def get_store(self, store_id: str) -> Store | None:
        sid = parse_uuid(store_id)
        if sid is None:
            return None
        return await self._session.get(Store, sid)

    async def create_store(
        self,
        *,
        name: str,
        domain: str,
        type: str,
        countries_supported: list[str],
        requires_city: bool = False,
        notes: str | None = None,
    ) -> Store:
        store = Store(
            name=name,
            domain=domain.lower(),
            type=type,
            countries_supported=[c.upper() for c in countries_supported],
            requires_city=requires_city,
            notes=notes,
        )
        self._session.add(store)
        await self._session.flush()
        return store

    async def add_shipping_rule(
        self,
        store: Store,
        *,
        country_code: str,
        city_whitelist: list[str] | None = None,
        city_blacklist: list[str] | None = None,
        ships_to_country: bool = True,
        ships_to_city: bool = True,
        delivery_methods: list[str] | None = None,
    ) -> StoreShippingRule:
        rule = StoreShippingRule(
            store_id=store.id,
            country_code=country_code.upper(),
            city_whitelist=city_whitelist,
            city_blacklist=city_blacklist,
            ships_to_country=ships_to_country,
            ships_to_city=ships_to_city,
            delivery_methods=delivery_methods,
        )
        self._session.add(rule)
        await self._session.flush()
        return rule

    # --- users ---

    async def get_user_location(self, user_id: str) -> UserLocation | None:
        result = await self._session.execute(
            select(UserLocation).where(UserLocation.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_user_id_for_token(self, token: str) -> str | None:
        """Resolve an unexpired bearer session token to its user id."""
        result = await self._session.execute(
            select(UserSession.user_id).where(
                UserSession.token == token,
                UserSession.expires_at > func.now(),
            )
        )
        return result.scalar_one_or_none()

    async def commit(self) -> None:
        await self._session.commit()
