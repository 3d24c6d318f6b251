import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wishlist_api.api.deps import AdminAuthError, AuthError
from wishlist_api.api.errors import error_response
from wishlist_api.api.routes import (
    health,
    import_preview,
    import_templates,
    imports,
    links,
    stores,
)
from wishlist_api.logging import configure_logging

configure_logging()

logger = structlog.get_logger()

app = FastAPI(
    title="Wishlist Import API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url=None,
)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", request.headers.get("X-Request-ID", ""))


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag every request with an ID that shows up in logs and the response.

    Clients may send their own X-Request-ID so a failing call can be traced
    from the app's bug report to the server log lines.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id, path=request.url.path, method=request.method
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Flatten pydantic errors into the ErrorResponse shape.

    FastAPI's default 422 body is {"detail": [...]}; clients expect one
    error shape for every failure.
    """
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    response = error_response(422, "validation_error", "; ".join(messages))
    response.headers["X-Request-ID"] = _request_id(request)
    return response


@app.exception_handler(AuthError)
async def auth_exception_handler(request: Request, exc: AuthError) -> JSONResponse:
    response = error_response(401, "unauthorized", str(exc) or "Unauthorized")
    response.headers["WWW-Authenticate"] = "Bearer"
    response.headers["X-Request-ID"] = _request_id(request)
    return response


@app.exception_handler(AdminAuthError)
async def admin_exception_handler(request: Request, exc: AdminAuthError) -> JSONResponse:
    response = error_response(403, "forbidden", str(exc) or "Forbidden")
    response.headers["X-Request-ID"] = _request_id(request)
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return ErrorResponse JSON instead of a bare 500 for anything unexpected."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    response = error_response(
        500, "internal_error", "An unexpected error occurred", retryable=True
    )
    response.headers["X-Request-ID"] = _request_id(request)
    return response


app.include_router(health.router)
app.include_router(imports.router, prefix="/api")
app.include_router(import_preview.router, prefix="/api")
app.include_router(import_templates.router, prefix="/api")
app.include_router(links.router, prefix="/api")
app.include_router(stores.router, prefix="/api")
