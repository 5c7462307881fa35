# vidtube/core/errors.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidtube.core.responses import error_response

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTPException carrying the error envelope fields."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Any]] = None,
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=type(self).status_code, detail=message or self.default_message, headers=headers)
        self.errors = errors or []


class BadRequest(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Any]] = None):
        super().__init__(message, errors, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to modify this resource"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class TooManyRequests(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests"


class Internal(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return error_response(exc.status_code, exc.detail, exc.errors, exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid or missing {location}" if location else "Invalid request"
        return error_response(status.HTTP_400_BAD_REQUEST, message, [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors
        ])

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
