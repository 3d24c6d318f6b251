"""Link utilities exposed to the client."""

from fastapi import APIRouter

from wishlist_api.api.deps import CurrentUser
from wishlist_api.models.contracts import NormalizeUrlRequest, NormalizeUrlResponse
from wishlist_api.services.links import normalize_url

router = APIRouter(tags=["links"])


@router.post("/items/normalize-url", response_model=NormalizeUrlResponse)
async def normalize_url_route(body: NormalizeUrlRequest, user_id: CurrentUser) -> NormalizeUrlResponse:
    """Expand shortened links and strip tracking noise from a product URL."""
    normalized = await normalize_url(body.url.strip())
    return NormalizeUrlResponse(original_url=body.url, normalized_url=normalized)
