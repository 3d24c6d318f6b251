"""Saved import templates: a user's preferred mode, grouping and target wishlist."""

import structlog
from fastapi import APIRouter

from wishlist_api.api.deps import CurrentUser, Repository
from wishlist_api.api.errors import error_response
from wishlist_api.models.contracts import (
    DeleteTemplateResponse,
    ErrorResponse,
    ImportTemplateRequest,
    ImportTemplateResponse,
)
from wishlist_api.models.db import ImportTemplate

logger = structlog.get_logger()

router = APIRouter(tags=["import-templates"])

TEMPLATE_NOT_FOUND = ("not_found", "Template not found")


def _template_response(template: ImportTemplate) -> ImportTemplateResponse:
    default_id = template.default_wishlist_id
    return ImportTemplateResponse(
        id=str(template.id),
        name=template.name,
        mode=template.mode,
        grouping_mode=template.grouping_mode,
        default_wishlist_id=str(default_id) if default_id else None,
        created_at=template.created_at.isoformat(),
    )


@router.get("/import-templates", response_model=list[ImportTemplateResponse])
async def list_templates(user_id: CurrentUser, repo: Repository):
    templates = await repo.list_templates(user_id)
    logger.info("import_templates_listed", user_id=user_id, count=len(templates))
    return [_template_response(t) for t in templates]


@router.post(
    "/import-templates",
    status_code=201,
    response_model=ImportTemplateResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_template(body: ImportTemplateRequest, user_id: CurrentUser, repo: Repository):
    """Save a template; a default wishlist must belong to the caller."""
    name = body.name.strip()
    if not name:
        return error_response(400, "missing_field", "name is required")

    default_wishlist_id = None
    if body.default_wishlist_id:
        wishlist = await repo.get_owned_wishlist(body.default_wishlist_id, user_id)
        if wishlist is None:
            return error_response(404, "not_found", "Default wishlist not found")
        default_wishlist_id = wishlist.id

    template = await repo.create_template(
        user_id,
        name=name,
        mode=body.mode,
        grouping_mode=body.grouping_mode,
        default_wishlist_id=default_wishlist_id,
    )
    await repo.commit()
    logger.info("import_template_created", template_id=str(template.id), mode=body.mode)
    return _template_response(template)


@router.get(
    "/import-templates/{template_id}",
    response_model=ImportTemplateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_template(template_id: str, user_id: CurrentUser, repo: Repository):
    template = await repo.get_owned_template(template_id, user_id)
    if template is None:
        return error_response(404, *TEMPLATE_NOT_FOUND)
    return _template_response(template)


@router.delete(
    "/import-templates/{template_id}",
    response_model=DeleteTemplateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_template(template_id: str, user_id: CurrentUser, repo: Repository):
    template = await repo.get_owned_template(template_id, user_id)
    if template is None:
        return error_response(404, *TEMPLATE_NOT_FOUND)
    await repo.delete_template(template)
    await repo.commit()
    logger.info("import_template_deleted", template_id=template_id)
    return DeleteTemplateResponse(success=True)
