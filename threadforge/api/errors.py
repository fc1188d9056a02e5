"""
Mapping of ThreadForge exceptions to HTTP responses.

Every error body is ``{"message": str, "errors": [str] | null}``.  Upstream
AI failures never leak provider details: the client sees a fixed message
for the operation it called, the details go to the event log.
"""

import logging
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from threadforge.exceptions import (
    ChatCompletionError,
    DatabaseError,
    GenerationError,
    NotFoundError,
    ProfileAnalysisError,
    RateLimitExceededError,
    RetryExhaustedError,
    TweetImprovementError,
    ValidationError,
)
from threadforge.logging import LogComponent, get_logger, is_logger_initialized
from threadforge.schemas import ErrorResponse

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred."
INVALID_REQUEST = "Invalid request parameters"

# Longest prefix first.
AI_FAILURE_MESSAGES = (
    ("/api/v1/threads/regenerate-tweet", "Failed to regenerate tweet. Please try again."),
    ("/api/v1/threads", "Thread generation failed. Please try again."),
    ("/api/v1/profiles", "Brand analysis failed. Try again."),
    ("/api/v1/tweets", "Failed to improve tweet. Please try again."),
)


def error_response(
    status_code: int, message: str, errors: Optional[List[str]] = None, headers=None
) -> JSONResponse:
    body = ErrorResponse(message=message, errors=errors).model_dump(by_alias=True)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def ai_failure_message(path: str) -> str:
    for prefix, message in AI_FAILURE_MESSAGES:
        if path.startswith(prefix):
            return message
    return UNEXPECTED_ERROR


async def _log_error(request: Request, message: str, exc: BaseException) -> None:
    if not is_logger_initialized():
        logger.error("%s %s: %s", request.method, request.url.path, exc)
        return
    await get_logger().error(
        LogComponent.API,
        message,
        error=exc,
        data={"method": request.method, "path": request.url.path},
    )


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return error_response(400, str(exc), exc.errors or None)


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        errors.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return error_response(400, INVALID_REQUEST, errors)


async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return error_response(404, str(exc))


async def handle_rate_limit(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    if is_logger_initialized():
        await get_logger().warning(
            LogComponent.RATE_LIMITER,
            "Rate limit exceeded",
            data={"policy": exc.policy, "retry_after": exc.retry_after, "path": request.url.path},
        )
    return error_response(
        429,
        "Too many requests. Please try again later.",
        headers={"Retry-After": str(exc.retry_after)},
    )


async def handle_service_error(request: Request, exc: Exception) -> JSONResponse:
    """Generation, profile and improvement errors carry a user-facing message."""
    await _log_error(request, "Service error", exc)
    return error_response(500, str(exc))


async def handle_ai_failure(request: Request, exc: Exception) -> JSONResponse:
    await _log_error(request, "AI provider call failed", exc)
    return error_response(500, ai_failure_message(request.url.path))


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    await _log_error(request, "Unhandled error", exc)
    return error_response(500, UNEXPECTED_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(RateLimitExceededError, handle_rate_limit)
    for exc_class in (GenerationError, ProfileAnalysisError, TweetImprovementError):
        app.add_exception_handler(exc_class, handle_service_error)
    for exc_class in (ChatCompletionError, RetryExhaustedError):
        app.add_exception_handler(exc_class, handle_ai_failure)
    app.add_exception_handler(DatabaseError, handle_unexpected)
    app.add_exception_handler(Exception, handle_unexpected)
