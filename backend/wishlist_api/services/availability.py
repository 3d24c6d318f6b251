"""Shipping-availability annotation for imported items.

Advisory only: the result is returned next to the import outcome and never
blocks an insert. Stores missing from the catalog are assumed to ship.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

import structlog

from wishlist_api.models.db import Store, StoreShippingRule

log = structlog.get_logger("wishlist.availability")

REASON_NO_LOCATION = "No location provided"
REASON_NO_DOMAIN = "No store information"
REASON_UNKNOWN_STORE = "Store not in catalog"
REASON_AVAILABLE = "Ships to your location"
REASON_NO_COUNTRY = "Store does not ship to this country"
REASON_CITY_REQUIRED = "City required for this store"
REASON_NO_CITY = "Store does not ship to your city"


class StoreLookup(Protocol):
    async def get_store_by_domain(self, domain: str) -> Store | None: ...


@dataclass(frozen=True)
class Availability:
    available: bool
    reason: str


def normalize_city(city: str) -> str:
    """Case-, whitespace- and punctuation-insensitive city key."""
    collapsed = re.sub(r"\s+", " ", city.strip().lower())
    return re.sub(r"[^\w\s]", "", collapsed)


def cities_match(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return normalize_city(a) == normalize_city(b)


def _rule_for(store: Store, country_code: str) -> StoreShippingRule | None:
    for rule in store.shipping_rules:
        if rule.country_code.upper() == country_code:
            return rule
    return None


def evaluate_store(store: Store, country_code: str, city: str | None) -> Availability:
    """Apply the country and city rules of one catalog store."""
    country_code = country_code.upper()
    supported = {c.upper() for c in store.countries_supported or []}
    if country_code not in supported:
        return Availability(False, REASON_NO_COUNTRY)

    rule = _rule_for(store, country_code)
    if rule is not None and not rule.ships_to_country:
        return Availability(False, REASON_NO_COUNTRY)

    if store.requires_city and rule is not None:
        if not city:
            return Availability(False, REASON_CITY_REQUIRED)
        blacklist = rule.city_blacklist or []
        if any(cities_match(city, blocked) for blocked in blacklist):
            return Availability(False, REASON_NO_CITY)
        whitelist = rule.city_whitelist or []
        if whitelist and not any(cities_match(city, allowed) for allowed in whitelist):
            return Availability(False, REASON_NO_CITY)
        if not rule.ships_to_city:
            return Availability(False, REASON_NO_CITY)

    return Availability(True, REASON_AVAILABLE)


async def check_availability(
    stores: StoreLookup,
    domain: str | None,
    country_code: str | None,
    city: str | None = None,
) -> Availability:
    if not country_code:
        return Availability(True, REASON_NO_LOCATION)
    if not domain:
        return Availability(True, REASON_NO_DOMAIN)

    store = await stores.get_store_by_domain(domain)
    if store is None:
        return Availability(True, REASON_UNKNOWN_STORE)

    verdict = evaluate_store(store, country_code, city)
    if not verdict.available:
        log.debug(
            "store_unavailable",
            domain=domain,
            country_code=country_code,
            has_city=bool(city),
            reason=verdict.reason,
        )
    return verdict
