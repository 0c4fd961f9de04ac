"""Map domain exceptions to HTTP responses.

    ObjectNotFoundError   → 404
    InvalidOperationError → 409
    ValidationError       → 400 (request body errors included)
    anything else         → 500
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


def _messages(exc: Exception):
    messages = getattr(exc, "messages", None)
    return messages if messages else str(exc)


def _problem(req: Request, status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "detail": _messages(exc),
            "path": req.url.path,
            "method": req.method,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ObjectNotFoundError)
    async def _not_found(req: Request, exc: ObjectNotFoundError):
        return _problem(req, 404, "not_found", exc)

    @app.exception_handler(InvalidOperationError)
    async def _conflict(req: Request, exc: InvalidOperationError):
        logger.info("Rejected conflicting operation", path=req.url.path, detail=str(_messages(exc)))
        return _problem(req, 409, "conflict", exc)

    @app.exception_handler(ValidationError)
    async def _invalid(req: Request, exc: ValidationError):
        return _problem(req, 400, "validation_error", exc)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(req: Request, exc: RequestValidationError):
        detail = [
            {"location": list(error.get("loc", ())), "reason": str(error.get("msg") or error.get("type"))}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "detail": detail, "path": req.url.path, "method": req.method},
        )

    @app.exception_handler(Exception)
    async def _unhandled(req: Request, exc: Exception):
        logger.exception("Unhandled error while processing request", path=req.url.path, method=req.method)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "detail": "Internal server error", "path": req.url.path},
        )
