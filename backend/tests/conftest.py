"""Shared fixtures: an in-memory repository, a scripted extraction engine, and
an HTTP client wired to both through FastAPI dependency overrides."""

from __future__ import annotations

import uuid
from dataclasses import asdict
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from wishlist_api.api.deps import get_extraction_engine, get_repository
from wishlist_api.main import app
from wishlist_api.models.db import (
    ImportTemplate,
    Store,
    StoreShippingRule,
    UserLocation,
    Wishlist,
    WishlistItem,
)
from wishlist_api.repository import ItemRejectedError, NewWishlistItem, parse_uuid
from wishlist_api.utils.json_extract import ParseError

USER_ID = "user-123"
OTHER_USER_ID = "user-456"
TOKEN = "session-token-abc"


class InMemoryRepository:
    """Dict-backed stand-in for WishlistRepository using transient ORM rows."""

    def __init__(self) -> None:
        self.wishlists: dict[uuid.UUID, Wishlist] = {}
        self.items: list[WishlistItem] = []
        self.stores: list[Store] = []
        self.templates: dict[uuid.UUID, ImportTemplate] = {}
        self.locations: dict[str, UserLocation] = {}
        self.sessions: dict[str, str] = {TOKEN: USER_ID}
        self.reject_titles: set[str] = set()
        self.commits = 0

    # --- seeding helpers ---

    def seed_wishlist(self, user_id: str = USER_ID, name: str = "Birthday") -> Wishlist:
        wishlist = Wishlist(id=uuid.uuid4(), user_id=user_id, name=name)
        self.wishlists[wishlist.id] = wishlist
        return wishlist

    def seed_store(
        self,
        domain: str,
        countries: list[str],
        *,
        requires_city: bool = False,
        rules: list[dict] | None = None,
    ) -> Store:
        store = Store(
            id=uuid.uuid4(),
            name=domain.split(".")[0].title(),
            domain=domain,
            type="website",
            countries_supported=countries,
            requires_city=requires_city,
        )
        for rule in rules or []:
            store.shipping_rules.append(self._rule(store, **rule))
        self.stores.append(store)
        return store

    def seed_location(self, user_id: str, country_code: str, city: str | None = None) -> None:
        self.locations[user_id] = UserLocation(
            id=uuid.uuid4(),
            user_id=user_id,
            country_code=country_code,
            country_name=country_code,
            city=city,
        )

    def items_in(self, wishlist_id: uuid.UUID) -> list[WishlistItem]:
        return [item for item in self.items if item.wishlist_id == wishlist_id]

    @staticmethod
    def _rule(store: Store, **fields) -> StoreShippingRule:
        fields.setdefault("ships_to_country", True)
        fields.setdefault("ships_to_city", True)
        fields["country_code"] = fields["country_code"].upper()
        return StoreShippingRule(id=uuid.uuid4(), store_id=store.id, **fields)

    # --- repository surface ---

    async def get_owned_wishlist(self, wishlist_id, user_id):
        wid = parse_uuid(wishlist_id)
        wishlist = self.wishlists.get(wid) if wid else None
        if wishlist is None or wishlist.user_id != user_id:
            return None
        return wishlist

    async def create_wishlist(self, user_id, name):
        return self.seed_wishlist(user_id, name)

    async def add_item(self, wishlist_id, item: NewWishlistItem):
        if not item.title.strip() or item.title in self.reject_titles:
            raise ItemRejectedError(item.title, "IntegrityError")
        row = WishlistItem(id=uuid.uuid4(), wishlist_id=wishlist_id, **asdict(item))
        self.items.append(row)
        return row

    async def list_templates(self, user_id):
        return [t for t in self.templates.values() if t.user_id == user_id]

    async def get_owned_template(self, template_id, user_id):
        tid = parse_uuid(template_id)
        template = self.templates.get(tid) if tid else None
        if template is None or template.user_id != user_id:
            return None
        return template

    async def create_template(self, user_id, *, name, mode, grouping_mode, default_wishlist_id=None):
        template = ImportTemplate(
            id=uuid.uuid4(),
            user_id=user_id,
            name=name,
            mode=mode,
            grouping_mode=grouping_mode,
            default_wishlist_id=default_wishlist_id,
            created_at=datetime.now(UTC),
        )
        self.templates[template.id] = template
        return template

    async def delete_template(self, template):
        self.templates.pop(template.id, None)

    async def get_store_by_domain(self, domain):
        domain = domain.lower()
        for candidate in (domain, domain.removeprefix("www.")):
            for store in self.stores:
                if store.domain == candidate:
                    return store
        return None

    async def get_store(self, store_id):
        sid = parse_uuid(store_id)
        return next((store for store in self.stores if store.id == sid), None)

    async def create_store(self, *, name, domain, type, countries_supported, requires_city=False, notes=None):
        store = self.seed_store(
            domain.lower(),
            [c.upper() for c in countries_supported],
            requires_city=requires_city,
        )
        store.name = name
        store.type = type
        store.notes = notes
        return store

    async def add_shipping_rule(self, store, **fields):
        rule = self._rule(store, **fields)
        store.shipping_rules.append(rule)
        return rule

    async def get_user_location(self, user_id):
        return self.locations.get(user_id)

    async def get_user_id_for_token(self, token):
        return self.sessions.get(token)

    async def commit(self):
        self.commits += 1


class FakeEngine:
    """Extraction engine double; set complete_json.return_value per test."""

    def __init__(self, *, configured: bool = True) -> None:
        self.configured = configured
        self.complete_json = AsyncMock(return_value=ParseError("llm_not_configured"))
        self.extract_wishlist_items = AsyncMock(return_value=[])


@pytest.fixture
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
async def client(repo, engine):
    """Authenticated client against the app with in-memory collaborators."""
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_extraction_engine] = lambda: engine
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {TOKEN}"},
    ) as c:
        yield c
    app.dependency_overrides.clear()
