"""Store catalog administration.

The catalog drives shipping-availability checks during import. Writes are
gated by the X-Admin-Key header; there is no user-facing catalog API.
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError

from wishlist_api.api.deps import Repository, require_admin
from wishlist_api.api.errors import error_response
from wishlist_api.models.contracts import (
    CreateShippingRuleRequest,
    CreateStoreRequest,
    ErrorResponse,
    ShippingRuleResponse,
    StoreResponse,
)
from wishlist_api.models.db import Store, StoreShippingRule

logger = structlog.get_logger()

router = APIRouter(tags=["stores"], dependencies=[Depends(require_admin)])


def _store_response(store: Store) -> StoreResponse:
    return StoreResponse(
        id=str(store.id),
        name=store.name,
        domain=store.domain,
        type=store.type,
        countries_supported=list(store.countries_supported or []),
        requires_city=store.requires_city,
        notes=store.notes,
    )


def _rule_response(rule: StoreShippingRule) -> ShippingRuleResponse:
    return ShippingRuleResponse(
        id=str(rule.id),
        store_id=str(rule.store_id),
        country_code=rule.country_code,
        city_whitelist=rule.city_whitelist,
        city_blacklist=rule.city_blacklist,
        ships_to_country=rule.ships_to_country,
        ships_to_city=rule.ships_to_city,
        delivery_methods=rule.delivery_methods,
    )


@router.post(
    "/stores",
    status_code=201,
    response_model=StoreResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def create_store(body: CreateStoreRequest, repo: Repository):
    domain = body.domain.strip().lower().removeprefix("www.")
    if await repo.get_store_by_domain(domain) is not None:
        return error_response(400, "duplicate_store", f"Store {domain} already exists")
    try:
        store = await repo.create_store(
            name=body.name.strip(),
            domain=domain,
            type=body.type,
            countries_supported=body.countries_supported,
            requires_city=body.requires_city,
            notes=body.notes,
        )
        await repo.commit()
    except IntegrityError:
        logger.warning("store_create_conflict", domain=domain)
        return error_response(400, "duplicate_store", f"Store {domain} already exists")
    logger.info("store_created", store_id=str(store.id), domain=domain)
    return _store_response(store)


@router.post(
    "/stores/{store_id}/shipping-rules",
    status_code=201,
    response_model=ShippingRuleResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def add_shipping_rule(store_id: str, body: CreateShippingRuleRequest, repo: Repository):
    store = await repo.get_store(store_id)
    if store is None:
        return error_response(404, "not_found", "Store not found")
    rule = await repo.add_shipping_rule(
        store,
        country_code=body.country_code,
        city_whitelist=body.city_whitelist,
        city_blacklist=body.city_blacklist,
        ships_to_country=body.ships_to_country,
        ships_to_city=body.ships_to_city,
        delivery_methods=body.delivery_methods,
    )
    await repo.commit()
    logger.info("shipping_rule_added", store_id=store_id, country_code=rule.country_code)
    return _rule_response(rule)
