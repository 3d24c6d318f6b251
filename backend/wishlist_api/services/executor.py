"""Import executor: write a resolved batch of items into wishlists.

Three destination modes:
- merge: every item goes into one existing wishlist the caller owns
- new:   a wishlist is created and receives every item
- split: each group goes into its own wishlist (existing or created)

Items are inserted one at a time. A rejected item becomes a warning and the
loop moves on; there is no batch-wide transaction, so partial success is the
normal outcome of a batch with bad rows in it.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Literal, Protocol

import structlog

from wishlist_api.models.contracts import (
    DestinationWishlist,
    ImportExecuteItem,
    ImportExecuteRequest,
    ImportExecuteResponse,
    ImportedItem,
    ImportGroupTarget,
    ItemAvailability,
    ItemWarning,
)
from wishlist_api.models.db import Store, UserLocation, Wishlist, WishlistItem
from wishlist_api.repository import ItemRejectedError, NewWishlistItem
from wishlist_api.services.availability import check_availability
from wishlist_api.services.links import canonicalize_url
from wishlist_api.services.stores import source_domain

log = structlog.get_logger("wishlist.executor")

DEFAULT_CURRENCY = "USD"
UNNAMED_GROUP = "Imported items"
UNAVAILABLE_WARNING = "May not deliver to your location"
FAILED_WARNING = "Failed to import"


class ImportValidationError(Exception):
    """A field required by the chosen mode is missing (HTTP 400)."""


class WishlistNotFoundError(Exception):
    """Target wishlist is missing or owned by someone else (HTTP 404)."""

    def __init__(self, wishlist_id: str) -> None:
        super().__init__("Wishlist not found")
        self.wishlist_id = wishlist_id


class ImportRepository(Protocol):
    async def get_owned_wishlist(self, wishlist_id: str, user_id: str) -> Wishlist | None: ...

    async def create_wishlist(self, user_id: str, name: str) -> Wishlist: ...

    async def add_item(self, wishlist_id: uuid.UUID, item: NewWishlistItem) -> WishlistItem: ...

    async def get_store_by_domain(self, domain: str) -> Store | None: ...

    async def get_user_location(self, user_id: str) -> UserLocation | None: ...


@dataclass
class ItemOutcome:
    item: ImportExecuteItem
    status: Literal["inserted", "failed"]
    reason: str | None = None

    @property
    def inserted(self) -> bool:
        return self.status == "inserted"


@dataclass
class _Destination:
    wishlist: Wishlist
    created: bool
    items: list[ImportExecuteItem]


@dataclass
class ImportReport:
    created_count: int = 0
    destinations: list[DestinationWishlist] = field(default_factory=list)
    availability: list[ItemAvailability] = field(default_factory=list)
    outcomes: list[ItemOutcome] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_response(self) -> ImportExecuteResponse:
        return ImportExecuteResponse(
            success=True,
            created_count=self.created_count,
            destination_wishlists=self.destinations,
            item_availability=self.availability,
            warnings=self.warnings,
        )


def failure_warning(title: str) -> str:
    return f'Failed to import "{title}"'


def item_domain(item: ImportExecuteItem) -> str | None:
    return item.source_domain or source_domain(item.product_url)


def to_new_item(item: ImportExecuteItem) -> NewWishlistItem:
    price: Decimal | None = None
    if item.price is not None:
        try:
            price = Decimal(str(item.price)).quantize(Decimal("0.01"))
        except InvalidOperation as exc:
            raise ItemRejectedError(item.title, "invalid price") from exc
    return NewWishlistItem(
        title=item.title,
        image_url=item.image_url or None,
        current_price=price,
        currency=(item.currency or DEFAULT_CURRENCY).upper(),
        original_url=item.product_url or None,
        normalized_url=canonicalize_url(item.product_url) if item.product_url else None,
        source_domain=item_domain(item),
        notes=item.notes or None,
    )


async def annotate_availability(
    repo: ImportRepository,
    items: list[ImportExecuteItem],
    country_code: str | None,
    city: str | None,
) -> list[ItemAvailability]:
    """One ItemAvailability per item, in input order."""
    annotations: list[ItemAvailability] = []
    for item in items:
        domain = item_domain(item)
        verdict = await check_availability(repo, domain, country_code, city)
        annotations.append(
            ItemAvailability(
                temp_id=item.temp_id,
                source_domain=domain,
                available=verdict.available,
                reason=verdict.reason,
            )
        )
    return annotations


async def insert_items(
    repo: ImportRepository,
    wishlist_id: uuid.UUID,
    items: list[ImportExecuteItem],
) -> list[ItemOutcome]:
    """Insert items sequentially; each one succeeds or fails on its own."""
    outcomes: list[ItemOutcome] = []
    for item in items:
        try:
            await repo.add_item(wishlist_id, to_new_item(item))
        except ItemRejectedError as exc:
            log.warning(
                "import_item_failed",
                wishlist_id=str(wishlist_id),
                item_title=item.title[:120],
                reason=exc.reason,
            )
            outcomes.append(ItemOutcome(item, "failed", exc.reason))
            continue
        outcomes.append(ItemOutcome(item, "inserted"))
    return outcomes


def _validate(request: ImportExecuteRequest) -> None:
    if request.mode == "merge" and not request.wishlist_id:
        raise ImportValidationError("wishlistId is required for merge mode")
    if request.mode == "new" and not (request.wishlist_name or "").strip():
        raise ImportValidationError("wishlistName is required for new mode")
    if request.mode == "split" and not request.groups:
        raise ImportValidationError("groups are required for split mode")


async def _resolve_split(
    repo: ImportRepository,
    user_id: str,
    items: list[ImportExecuteItem],
    groups: list[ImportGroupTarget],
    warnings: list[str],
) -> list[_Destination]:
    destinations: list[_Destination] = []
    claimed: set[str] = set()

    for group in groups:
        members = set(group.member_temp_ids)
        group_items = [
            item for item in items if item.temp_id in members and item.temp_id not in claimed
        ]
        claimed.update(members)
        if not group_items:
            log.debug("split_group_empty", group_name=group.group_name)
            continue

        if group.wishlist_id:
            wishlist = await repo.get_owned_wishlist(group.wishlist_id, user_id)
            if wishlist is None:
                log.warning(
                    "split_group_wishlist_not_found",
                    group_name=group.group_name,
                    wishlist_id=group.wishlist_id,
                    user_id=user_id,
                )
                warnings.append(f"Wishlist {group.group_name} not found")
                continue
            destinations.append(_Destination(wishlist, False, group_items))
        else:
            name = group.group_name.strip() or UNNAMED_GROUP
            wishlist = await repo.create_wishlist(user_id, name)
            destinations.append(_Destination(wishlist, True, group_items))

    for item in items:
        if item.temp_id is None or item.temp_id not in claimed:
            warnings.append(f'"{item.title}" was not assigned to a group')
    return destinations


async def _resolve_destinations(
    repo: ImportRepository,
    user_id: str,
    request: ImportExecuteRequest,
    warnings: list[str],
) -> list[_Destination]:
    if request.mode == "merge":
        assert request.wishlist_id is not None
        wishlist = await repo.get_owned_wishlist(request.wishlist_id, user_id)
        if wishlist is None:
            raise WishlistNotFoundError(request.wishlist_id)
        return [_Destination(wishlist, False, list(request.items))]

    if request.mode == "new":
        assert request.wishlist_name is not None
        wishlist = await repo.create_wishlist(user_id, request.wishlist_name.strip())
        return [_Destination(wishlist, True, list(request.items))]

    assert request.groups is not None
    return await _resolve_split(repo, user_id, request.items, request.groups, warnings)


async def execute_import(
    repo: ImportRepository,
    user_id: str,
    request: ImportExecuteRequest,
) -> ImportReport:
    """Run availability, destination resolution and insertion for one request.

    Raises ImportValidationError / WishlistNotFoundError before anything is
    written; every later problem is reported through warnings.
    """
    _validate(request)
    report = ImportReport()

    if request.country_code:
        report.availability = await annotate_availability(
            repo, request.items, request.country_code, request.city
        )

    destinations = await _resolve_destinations(repo, user_id, request, report.warnings)

    for destination in destinations:
        outcomes = await insert_items(repo, destination.wishlist.id, destination.items)
        inserted = sum(1 for outcome in outcomes if outcome.inserted)
        report.outcomes.extend(outcomes)
        report.warnings.extend(
            failure_warning(outcome.item.title) for outcome in outcomes if not outcome.inserted
        )
        report.created_count += inserted
        report.destinations.append(
            DestinationWishlist(
                wishlist_id=str(destination.wishlist.id),
                name=destination.wishlist.name,
                created=destination.created,
                created_count=inserted,
            )
        )

    log.info(
        "import_executed",
        user_id=user_id,
        mode=request.mode,
        item_count=len(request.items),
        created_count=report.created_count,
        destination_count=len(report.destinations),
        warning_count=len(report.warnings),
    )
    return report


def from_imported(item: ImportedItem) -> ImportExecuteItem:
    return ImportExecuteItem(
        title=item.title,
        image_url=item.image_url,
        price=item.price,
        currency=item.currency,
        product_url=item.product_url,
    )


async def save_imported_items(
    repo: ImportRepository,
    user_id: str,
    wishlist_id: uuid.UUID,
    items: list[ImportedItem],
) -> tuple[int, list[ItemWarning]]:
    """Insert scraped items into one wishlist, checked against the saved location.

    Returns (created_count, warnings) for the save / create-and-save endpoints.
    """
    batch = [from_imported(item) for item in items]
    warnings: list[ItemWarning] = []

    location = await repo.get_user_location(user_id)
    if location is not None:
        availability = await annotate_availability(
            repo, batch, location.country_code, location.city
        )
        warnings.extend(
            ItemWarning(title=item.title, warning=UNAVAILABLE_WARNING)
            for item, verdict in zip(batch, availability)
            if not verdict.available
        )

    outcomes = await insert_items(repo, wishlist_id, batch)
    warnings.extend(
        ItemWarning(title=outcome.item.title, warning=FAILED_WARNING)
        for outcome in outcomes
        if not outcome.inserted
    )
    created = sum(1 for outcome in outcomes if outcome.inserted)
    log.info(
        "imported_items_saved",
        user_id=user_id,
        wishlist_id=str(wishlist_id),
        item_count=len(items),
        created_count=created,
        warning_count=len(warnings),
    )
    return created, warnings
