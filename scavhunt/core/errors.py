from __future__ import annotations

import logging
import math

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from scavhunt.core.request_log import REQUEST_ID_HEADER

_LOG = logging.getLogger("scavhunt.errors")


class AppError(Exception):
    """Operational error that maps onto a client or server response."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.status = "fail" if str(self.status_code).startswith("4") else "error"
        self.is_operational = True


class ClientRequestError(AppError):
    """Malformed or contradictory query parameters or payload."""

    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class PageOutOfRangeError(AppError):
    """The requested page starts past the last matching record."""

    status_code = 404

    def __init__(self, page: int, limit: int, total: int):
        self.page = page
        self.limit = limit
        self.total = total
        self.last_page = max(1, math.ceil(total / limit)) if limit else 1
        super().__init__(f"This page does not exist (page {page}, last page {self.last_page})")


class StorageUnavailableError(AppError):
    status_code = 503


def _error_payload(status: str, message: str) -> dict:
    return {"status": status, "message": message}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            _LOG.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        payload = _error_payload(exc.status, exc.message)
        if isinstance(exc, PageOutOfRangeError):
            payload["last_page"] = exc.last_page
        return JSONResponse(payload, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError):
        parts = []
        for error in exc.errors():
            location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
            parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
        message = "Invalid input data. " + "; ".join(parts)
        return JSONResponse(_error_payload("fail", message), status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Can't find {request.url.path} on this server!"
        else:
            message = str(exc.detail)
        status = "fail" if 400 <= exc.status_code < 500 else "error"
        return JSONResponse(_error_payload(status, message), status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def _unexpected_error_handler(request: Request, exc: Exception):
        _LOG.exception("Unhandled error on %s %s", request.method, request.url.path)
        request_id = getattr(request.state, "request_id", None)
        headers = {REQUEST_ID_HEADER: request_id} if request_id else None
        return JSONResponse(_error_payload("error", "Something went wrong"), status_code=500, headers=headers)
