# src/common/exceptions.py

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LeaderboardError(Exception):
    """
    Base class for every failure the leaderboard surfaces to callers.

    `code` is the machine-readable kind, `retryable` tells the client whether
    resubmitting the same request is safe.
    """
    code = "leaderboard_error"
    retryable = False
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidInputError(LeaderboardError):
    code = "invalid_input"
    retryable = False
    status_code = status.HTTP_400_BAD_REQUEST


class ContentionError(LeaderboardError):
    """Compare-and-set kept losing to concurrent writers for the same address."""
    code = "contention"
    retryable = True
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ScoreNotFoundError(LeaderboardError):
    code = "not_found"
    retryable = False
    status_code = status.HTTP_404_NOT_FOUND


class StoreUnavailableError(LeaderboardError):
    """The score store could not be reached. No write has been applied."""
    code = "store_unavailable"
    retryable = True
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class StoreTimeoutError(StoreUnavailableError):
    code = "timeout"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


async def leaderboard_error_handler(request: Request, exc: LeaderboardError) -> JSONResponse:
    if exc.retryable:
        logger.warning("%s %s failed with %s: %s", request.method, request.url.path, exc.code, exc.detail)
    body = {
        "success": False,
        "error": exc.code,
        "detail": exc.detail,
    }
    if exc.retryable:
        body["retryable"] = True
    return JSONResponse(status_code=exc.status_code, content=body)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Report an unreadable request body (missing, or not a JSON object) as invalid_input.
    """
    logger.debug("%s %s rejected: %s", request.method, request.url.path, exc.errors())
    return await leaderboard_error_handler(
        request, InvalidInputError("Request body must be a JSON object with address and score")
    )
