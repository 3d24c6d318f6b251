"""Wishlist import endpoints: scrape a store page, then write items.

Scraping (`/import-wishlist`) never touches the database and needs no
session. Everything that writes verifies ownership and commits once at the
end; per-item failures are reported in the response, not raised.
"""

import urllib.parse

import structlog
from fastapi import APIRouter

from wishlist_api.api.deps import CurrentUser, Engine, Repository
from wishlist_api.api.errors import NOT_FOUND, error_response
from wishlist_api.models.contracts import (
    BatchImportRequest,
    BatchImportResponse,
    CreateAndSaveRequest,
    CreateAndSaveResponse,
    ErrorResponse,
    ImportExecuteRequest,
    ImportExecuteResponse,
    ImportWishlistRequest,
    ImportWishlistResponse,
    SaveImportedItemsRequest,
    SaveImportedItemsResponse,
)
from wishlist_api.services.executor import (
    ImportValidationError,
    WishlistNotFoundError,
    execute_import,
    failure_warning,
    insert_items,
    save_imported_items,
)
from wishlist_api.services.stores import detect_store_name
from wishlist_api.utils.http import fetch_page_text

logger = structlog.get_logger()

router = APIRouter(tags=["imports"])


def _valid_page_url(url: str) -> bool:
    try:
        parts = urllib.parse.urlsplit(url.strip())
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


@router.post(
    "/import-wishlist",
    response_model=ImportWishlistResponse,
    responses={400: {"model": ErrorResponse}},
)
async def import_wishlist(body: ImportWishlistRequest, engine: Engine):
    """Fetch a store wishlist page and extract its items. Nothing is saved."""
    url = body.wishlist_url.strip()
    if not _valid_page_url(url):
        return error_response(400, "invalid_url", "Invalid wishlist URL")

    store_name = detect_store_name(url)
    html = await fetch_page_text(url)
    if not html:
        return error_response(
            400, "fetch_failed", "Failed to fetch wishlist page", retryable=True
        )

    items = await engine.extract_wishlist_items(html, store_name, url)
    logger.info("wishlist_imported", store_name=store_name, item_count=len(items))
    return ImportWishlistResponse(store_name=store_name, items=items)


@router.post(
    "/import-wishlist/save",
    response_model=SaveImportedItemsResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def save_imported(body: SaveImportedItemsRequest, user_id: CurrentUser, repo: Repository):
    """Add scraped items to an existing wishlist the caller owns."""
    try:
        wishlist = await repo.get_owned_wishlist(body.wishlist_id, user_id)
        if wishlist is None:
            return error_response(404, *NOT_FOUND)
        created, warnings = await save_imported_items(repo, user_id, wishlist.id, body.items)
        await repo.commit()
    except Exception:
        logger.exception(
            "save_imported_failed",
            user_id=user_id,
            wishlist_id=body.wishlist_id,
            item_count=len(body.items),
        )
        return error_response(
            500, "save_failed", "Failed to save imported items", retryable=True
        )
    return SaveImportedItemsResponse(success=True, created_count=created, warnings=warnings)


@router.post(
    "/import-wishlist/create-and-save",
    response_model=CreateAndSaveResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_and_save(body: CreateAndSaveRequest, user_id: CurrentUser, repo: Repository):
    """Create a wishlist and fill it with scraped items in one call."""
    name = body.wishlist_name.strip()
    if not name:
        return error_response(400, "missing_field", "wishlistName is required")
    try:
        wishlist = await repo.create_wishlist(user_id, name)
        created, warnings = await save_imported_items(repo, user_id, wishlist.id, body.items)
        await repo.commit()
    except Exception:
        logger.exception(
            "create_and_save_failed",
            user_id=user_id,
            item_count=len(body.items),
        )
        return error_response(
            500, "save_failed", "Failed to create wishlist and save items", retryable=True
        )
    return CreateAndSaveResponse(
        success=True,
        wishlist_id=str(wishlist.id),
        created_count=created,
        warnings=warnings,
    )


@router.post(
    "/import-execute",
    response_model=ImportExecuteResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def import_execute(body: ImportExecuteRequest, user_id: CurrentUser, repo: Repository):
    """Write a reviewed import batch in merge, new or split mode."""
    try:
        report = await execute_import(repo, user_id, body)
        await repo.commit()
    except ImportValidationError as exc:
        return error_response(400, "missing_field", str(exc))
    except WishlistNotFoundError:
        return error_response(404, *NOT_FOUND)
    except Exception:
        logger.exception(
            "import_execute_failed",
            user_id=user_id,
            mode=body.mode,
            wishlist_id=body.wishlist_id,
            item_count=len(body.items),
        )
        return error_response(500, "import_failed", "Failed to import items", retryable=True)
    return report.to_response()


@router.post(
    "/import-items/batch",
    response_model=BatchImportResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def import_items_batch(body: BatchImportRequest, user_id: CurrentUser, repo: Repository):
    """Append already-normalized items to a wishlist without availability checks."""
    try:
        wishlist = await repo.get_owned_wishlist(body.wishlist_id, user_id)
        if wishlist is None:
            return error_response(404, *NOT_FOUND)
        outcomes = await insert_items(repo, wishlist.id, body.items)
        await repo.commit()
    except Exception:
        logger.exception(
            "batch_import_failed",
            user_id=user_id,
            wishlist_id=body.wishlist_id,
            item_count=len(body.items),
        )
        return error_response(500, "import_failed", "Failed to import items", retryable=True)

    return BatchImportResponse(
        success=True,
        created_count=sum(1 for outcome in outcomes if outcome.inserted),
        warnings=[failure_warning(o.item.title) for o in outcomes if not o.inserted],
    )
