"""Tests for WishlistRepository behavior that doesn't need a live database."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from wishlist_api.models.db import ImportTemplate, Wishlist
from wishlist_api.repository import (
    ItemRejectedError,
    NewWishlistItem,
    WishlistRepository,
    parse_uuid,
)


def _session() -> MagicMock:
    session = MagicMock()
    session.flush = AsyncMock()
    session.get = AsyncMock(return_value=None)
    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=savepoint)
    savepoint.__aexit__ = AsyncMock(return_value=False)
    session.begin_nested.return_value = savepoint
    return session


class TestParseUuid:
    def test_values(self):
        value = uuid.uuid4()
        assert parse_uuid(value) is value
        assert parse_uuid(str(value)) == value
        assert parse_uuid("nope") is None
        assert parse_uuid("") is None
        assert parse_uuid(None) is None


class TestOwnership:
    async def test_malformed_id_never_queries(self):
        session = _session()
        repo = WishlistRepository(session)
        assert await repo.get_owned_wishlist("123", "user-1") is None
        session.get.assert_not_awaited()

    async def test_other_owner_is_hidden(self):
        session = _session()
        session.get.return_value = Wishlist(id=uuid.uuid4(), user_id="user-2", name="x")
        repo = WishlistRepository(session)
        assert await repo.get_owned_wishlist(str(uuid.uuid4()), "user-1") is None

    async def test_owner_sees_wishlist(self):
        session = _session()
        wishlist = Wishlist(id=uuid.uuid4(), user_id="user-1", name="x")
        session.get.return_value = wishlist
        repo = WishlistRepository(session)
        assert await repo.get_owned_wishlist(wishlist.id, "user-1") is wishlist

    async def test_template_of_other_owner_is_hidden(self):
        session = _session()
        session.get.return_value = ImportTemplate(
            id=uuid.uuid4(), user_id="user-2", name="t", mode="new", grouping_mode="price"
        )
        repo = WishlistRepository(session)
        assert await repo.get_owned_template(str(uuid.uuid4()), "user-1") is None

    async def test_malformed_template_id_never_queries(self):
        session = _session()
        repo = WishlistRepository(session)
        assert await repo.get_owned_template("abc", "user-1") is None
        session.get.assert_not_awaited()


class TestAddItem:
    async def test_inserts_inside_savepoint(self):
        session = _session()
        repo = WishlistRepository(session)
        wishlist_id = uuid.uuid4()
        row = await repo.add_item(wishlist_id, NewWishlistItem(title="Mug", currency="USD"))
        assert row.wishlist_id == wishlist_id
        assert row.title == "Mug"
        session.begin_nested.assert_called_once()
        session.add.assert_called_once_with(row)

    async def test_blank_title_rejected_before_insert(self):
        session = _session()
        repo = WishlistRepository(session)
        with pytest.raises(ItemRejectedError) as excinfo:
            await repo.add_item(uuid.uuid4(), NewWishlistItem(title="   "))
        assert excinfo.value.reason == "empty title"
        session.add.assert_not_called()

    async def test_database_error_becomes_item_rejection(self):
        session = _session()
        session.flush.side_effect = IntegrityError("INSERT", {}, Exception("fk violation"))
        repo = WishlistRepository(session)
        with pytest.raises(ItemRejectedError) as excinfo:
            await repo.add_item(uuid.uuid4(), NewWishlistItem(title="Mug"))
        assert excinfo.value.reason == "IntegrityError"
        assert excinfo.value.title == "Mug"
