"""Request/response contracts shared with the mobile client.

Python attributes are snake_case; the wire format is camelCase (the client
is a React Native app). Responses are serialized by alias.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


GroupingMode = Literal["store", "category", "person", "occasion", "price"]
ClassificationMode = Literal["category", "person", "occasion"]
ImportMode = Literal["merge", "new", "split"]


# === Errors ===


class ErrorResponse(BaseModel):
    error: str
    message: str
    retryable: bool
    detail: str | None = None


# === Wishlist import (scrape + extract) ===


class ImportedItem(CamelModel):
    """An item extracted from a store wishlist page. Never persisted as-is."""

    title: str
    image_url: str | None = None
    price: float | None = None
    currency: str | None = None
    product_url: str


class ImportWishlistRequest(CamelModel):
    wishlist_url: str = Field(min_length=1)


class ImportWishlistResponse(CamelModel):
    store_name: str
    items: list[ImportedItem] = []


class SaveImportedItemsRequest(CamelModel):
    wishlist_id: str
    items: list[ImportedItem]


class CreateAndSaveRequest(CamelModel):
    wishlist_name: str = Field(min_length=1)
    items: list[ImportedItem]


class ItemWarning(CamelModel):
    title: str
    warning: str


class SaveImportedItemsResponse(CamelModel):
    success: bool
    created_count: int
    warnings: list[ItemWarning] = []


class CreateAndSaveResponse(SaveImportedItemsResponse):
    wishlist_id: str


# === Import preview: duplicates + grouping ===


class DuplicateCandidate(CamelModel):
    temp_id: str
    title: str
    image_url: str | None = None
    product_url: str | None = None
    source_domain: str | None = None


class DetectDuplicatesRequest(CamelModel):
    items: list[DuplicateCandidate]


class DuplicateGroup(CamelModel):
    group_id: str
    members: list[str]
    confidence: float = Field(ge=0, le=1)
    canonical_title: str
    reason: str


class DetectDuplicatesResponse(CamelModel):
    groups: list[DuplicateGroup] = []


class GroupableItem(CamelModel):
    temp_id: str
    title: str
    source_domain: str | None = None
    price: float | None = None
    currency: str | None = None


class AutoGroupRequest(CamelModel):
    items: list[GroupableItem]
    mode: GroupingMode | None = None


class AutoGroupResult(CamelModel):
    group_name: str
    member_temp_ids: list[str]
    confidence: float = Field(ge=0, le=1)


class AutoGroupResponse(CamelModel):
    groups: list[AutoGroupResult] = []
    auto_mode: GroupingMode


# === Import execution ===


class ImportExecuteItem(CamelModel):
    temp_id: str | None = None
    title: str
    image_url: str | None = None
    price: float | None = None
    currency: str | None = None
    product_url: str | None = None
    source_domain: str | None = None
    notes: str | None = None


class ImportGroupTarget(CamelModel):
    """A split destination: an existing wishlist or one created from group_name."""

    group_name: str
    member_temp_ids: list[str] = []
    wishlist_id: str | None = None


class ImportExecuteRequest(CamelModel):
    mode: ImportMode
    items: list[ImportExecuteItem]
    wishlist_id: str | None = None
    wishlist_name: str | None = None
    groups: list[ImportGroupTarget] | None = None
    country_code: str | None = None
    city: str | None = None


class ItemAvailability(CamelModel):
    temp_id: str | None = None
    source_domain: str | None = None
    available: bool
    reason: str


class DestinationWishlist(CamelModel):
    wishlist_id: str
    name: str
    created: bool = False
    created_count: int = 0


class ImportExecuteResponse(CamelModel):
    success: bool
    created_count: int
    destination_wishlists: list[DestinationWishlist] = []
    item_availability: list[ItemAvailability] = []
    warnings: list[str] = []


class BatchImportRequest(CamelModel):
    wishlist_id: str
    items: list[ImportExecuteItem]


class BatchImportResponse(CamelModel):
    success: bool
    created_count: int
    warnings: list[str] = []


# === Links ===


class NormalizeUrlRequest(CamelModel):
    url: str = Field(min_length=1)


class NormalizeUrlResponse(CamelModel):
    original_url: str
    normalized_url: str


# === Import templates ===


class ImportTemplateRequest(CamelModel):
    name: str = Field(min_length=1)
    mode: ImportMode
    grouping_mode: GroupingMode
    default_wishlist_id: str | None = None


class ImportTemplateResponse(CamelModel):
    id: str
    name: str
    mode: ImportMode
    grouping_mode: GroupingMode
    default_wishlist_id: str | None = None
    created_at: str


class DeleteTemplateResponse(CamelModel):
    success: bool


# === Store catalog (admin) ===


class CreateStoreRequest(CamelModel):
    name: str = Field(min_length=1)
    domain: str = Field(min_length=1)
    type: Literal["website", "marketplace"]
    countries_supported: list[str]
    requires_city: bool = False
    notes: str | None = None


class StoreResponse(CamelModel):
    id: str
    name: str
    domain: str
    type: str
    countries_supported: list[str]
    requires_city: bool
    notes: str | None = None


class CreateShippingRuleRequest(CamelModel):
    country_code: str = Field(min_length=2, max_length=2)
    city_whitelist: list[str] | None = None
    city_blacklist: list[str] | None = None
    ships_to_country: bool = True
    ships_to_city: bool = True
    delivery_methods: list[str] | None = None


class ShippingRuleResponse(CamelModel):
    id: str
    store_id: str
    country_code: str
    city_whitelist: list[str] | None = None
    city_blacklist: list[str] | None = None
    ships_to_country: bool
    ships_to_city: bool
    delivery_methods: list[str] | None = None
