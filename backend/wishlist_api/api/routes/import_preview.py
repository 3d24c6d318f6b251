"""Import preview endpoints: duplicate detection and auto-grouping.

Both are read-only suggestions for the review screen; nothing is written.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from wishlist_api.api.deps import CurrentUser, Engine, get_classifier
from wishlist_api.models.contracts import (
    AutoGroupRequest,
    AutoGroupResponse,
    DetectDuplicatesRequest,
    DetectDuplicatesResponse,
)
from wishlist_api.services.classifiers import Classifier
from wishlist_api.services.dedup import detect_duplicates
from wishlist_api.services.grouping import auto_group

logger = structlog.get_logger()

router = APIRouter(tags=["import-preview"])


@router.post("/detect-duplicates", response_model=DetectDuplicatesResponse)
async def detect_duplicates_route(
    body: DetectDuplicatesRequest, user_id: CurrentUser, engine: Engine
) -> DetectDuplicatesResponse:
    groups = await detect_duplicates(engine, body.items)
    return DetectDuplicatesResponse(groups=groups)


@router.post("/auto-group-import-items", response_model=AutoGroupResponse)
async def auto_group_route(
    body: AutoGroupRequest,
    user_id: CurrentUser,
    classifier: Annotated[Classifier, Depends(get_classifier)],
) -> AutoGroupResponse:
    """Bucket items by the requested mode, or the default one when omitted."""
    groups, mode = await auto_group(body.items, body.mode, classifier)
    return AutoGroupResponse(groups=groups, auto_mode=mode)
