"""Tests for the Alembic revisions: chain structure and schema completeness."""

from __future__ import annotations

import importlib
import inspect
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    import types

from wishlist_api.models.db import Base

REVISIONS = ("001_initial_schema", "002_import_templates")


def _load(name: str) -> types.ModuleType:
    return importlib.import_module(f"migrations.versions.{name}")


@pytest.fixture
def migration() -> types.ModuleType:
    return _load("001_initial_schema")


@pytest.fixture
def templates_migration() -> types.ModuleType:
    return _load("002_import_templates")


def _all_sources(attr: str) -> str:
    return "\n".join(inspect.getsource(getattr(_load(name), attr)) for name in REVISIONS)


class TestMigrationStructure:
    def test_revision_id(self, migration: types.ModuleType) -> None:
        assert migration.revision == "001"

    def test_down_revision_is_none(self, migration: types.ModuleType) -> None:
        assert migration.down_revision is None

    def test_upgrade_and_downgrade_callable(self, migration: types.ModuleType) -> None:
        assert callable(migration.upgrade)
        assert callable(migration.downgrade)

    def test_templates_revision_follows_initial(self, templates_migration: types.ModuleType) -> None:
        assert templates_migration.revision == "002"
        assert templates_migration.down_revision == "001"


class TestMigrationCompleteness:
    def test_all_tables_created(self) -> None:
        """Every table in Base.metadata must be created by some upgrade()."""
        source = _all_sources("upgrade")
        for table_name in Base.metadata.tables:
            assert f'"{table_name}"' in source, (
                f"Table '{table_name}' exists in db.py but is missing from migrations"
            )

    def test_all_tables_dropped(self) -> None:
        source = _all_sources("downgrade")
        for table_name in Base.metadata.tables:
            assert f'op.drop_table("{table_name}")' in source

    def test_indexes_represented(self) -> None:
        source = _all_sources("upgrade")
        for table in Base.metadata.tables.values():
            for index in table.indexes:
                assert f'"{index.name}"' in source

    def test_template_checks_match_model(self, templates_migration: types.ModuleType) -> None:
        source = inspect.getsource(templates_migration.upgrade)
        assert "ck_import_templates_mode" in source
        assert "ck_import_templates_grouping_mode" in source
        assert 'ondelete="SET NULL"' in source
