import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Bearer token missing or rejected.

    The exception message carries the cause for the logs; clients only ever
    see `public_message`.
    """

    def __init__(self, message: str, public_message: str = "Invalid token"):
        super().__init__(message)
        self.public_message = public_message


class UpstreamError(Exception):
    """The identity provider or Graph answered with something unusable."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


async def _auth_error_handler(request: Request, exc: AuthError):
    logger.warning("token validation failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=401,
        content={"detail": exc.public_message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _upstream_error_handler(request: Request, exc: UpstreamError):
    logger.error(
        "upstream failure on %s %s: %s (status=%s body=%s)",
        request.method,
        request.url.path,
        exc,
        exc.status_code,
        exc.body,
    )
    return JSONResponse(status_code=502, content={"detail": "Directory service unavailable"})


async def _storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(AuthError, _auth_error_handler)
    app.add_exception_handler(UpstreamError, _upstream_error_handler)
    app.add_exception_handler(SQLAlchemyError, _storage_error_handler)
