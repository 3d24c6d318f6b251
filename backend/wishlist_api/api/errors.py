from fastapi.responses import JSONResponse

from wishlist_api.models.contracts import ErrorResponse


def error_response(status: int, code: str, message: str, *, retryable: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=code, message=message, retryable=retryable).model_dump(
            exclude_none=True
        ),
    )


NOT_FOUND = ("not_found", "Wishlist not found")
