"""
Recovery API Middleware

Request logging and exception mapping for the recovery observability API.
"""

import time
import uuid
import logging
from datetime import datetime
from typing import Callable

from fastapi import FastAPI, Request, Response, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from recovery.exceptions import RecoveryNotFoundError, RecoveryConfigError
from .models import ErrorResponse

logger = logging.getLogger("recovery_api")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all API requests"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        logger.info(
            f"Request started - ID: {request_id} | "
            f"Method: {request.method} | "
            f"URL: {request.url}"
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"Request completed - ID: {request_id} | "
            f"Status: {response.status_code} | "
            f"Duration: {process_time:.3f}s"
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        return response


def _error_payload(request: Request, error: str, message, status_code: int) -> JSONResponse:
    payload = ErrorResponse(
        error=error,
        message=str(message),
        request_id=getattr(request.state, "request_id", None),
        timestamp=datetime.now()
    )
    return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))


async def recovery_not_found_handler(request: Request, exc: RecoveryNotFoundError):
    return _error_payload(request, "RecoveryNotFound", str(exc), 404)


async def recovery_config_handler(request: Request, exc: RecoveryConfigError):
    return _error_payload(request, "InvalidConfiguration", str(exc), 422)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    return _error_payload(request, "Validation Error", str(exc.errors()), 422)


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions"""
    return _error_payload(request, exc.__class__.__name__, exc.detail, exc.status_code)


def setup_middleware(app: FastAPI):
    """Configure middleware for the FastAPI application"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)


def setup_exception_handlers(app: FastAPI):
    """Configure exception handlers"""
    app.add_exception_handler(RecoveryNotFoundError, recovery_not_found_handler)
    app.add_exception_handler(RecoveryConfigError, recovery_config_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
