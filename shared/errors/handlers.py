import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError

from .exceptions import CoordinatorError, TransientIO, ValidationError

logger = structlog.get_logger(__name__)


def error_body(code: str, detail) -> dict:
    return {"error": code, "detail": detail}


async def coordinator_error_handler(request: Request, exc: CoordinatorError):
    logger.info("request_rejected", path=request.url.path, error=exc.code, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Unknown statuses, roles and message types all end up here
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=error_body(ValidationError.code, errors),
    )


async def store_error_handler(request: Request, exc: DBAPIError):
    logger.warning("store_unavailable", path=request.url.path, error=str(exc.orig))
    return JSONResponse(
        status_code=TransientIO.status_code,
        content=error_body(TransientIO.code, "Order store temporarily unavailable"),
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(CoordinatorError, coordinator_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(OperationalError, store_error_handler)
    app.add_exception_handler(DBAPIError, store_error_handler)
