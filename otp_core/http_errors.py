"""
HTTP Failure Mapping
====================
Maps failed results to HTTP errors for the transport layer.

Each failure kind gets its own status code and machine-readable ``code`` so
clients never need to parse message text.
"""

from typing import Dict, Optional

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from .results import FailureKind, Result

FAILURE_STATUS: Dict[FailureKind, int] = {
    FailureKind.LOCKED: status.HTTP_423_LOCKED,
    FailureKind.SPAM_LOCKED: status.HTTP_429_TOO_MANY_REQUESTS,
    FailureKind.COOLING: status.HTTP_429_TOO_MANY_REQUESTS,
    FailureKind.EXPIRED: status.HTTP_410_GONE,
    FailureKind.INVALID: status.HTTP_400_BAD_REQUEST,
    FailureKind.DELIVERY_FAILED: status.HTTP_502_BAD_GATEWAY,
    FailureKind.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    FailureKind.IDENTITY_EXISTS: status.HTTP_409_CONFLICT,
    FailureKind.IDENTITY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
}


def _body(result: Result) -> Dict[str, object]:
    body: Dict[str, object] = {
        "success": False,
        "code": result.failure.value.upper(),
        "message": result.message,
    }
    if result.attempts_remaining is not None:
        body["attempts_remaining"] = result.attempts_remaining
    if result.retry_after is not None:
        body["retry_after"] = result.retry_after
    return body


def _headers(result: Result) -> Optional[Dict[str, str]]:
    if result.retry_after is None:
        return None
    return {"Retry-After": str(result.retry_after)}


def to_http_exception(result: Result) -> HTTPException:
    """
    Build an HTTPException for a failed result.

    Raises:
        ValueError: If the result is ok
    """
    if result.ok or result.failure is None:
        raise ValueError("Cannot map a successful result to an HTTP error")
    return HTTPException(
        status_code=FAILURE_STATUS[result.failure],
        detail=_body(result),
        headers=_headers(result),
    )


def to_json_response(result: Result) -> JSONResponse:
    """JSONResponse for a failed result, for handlers that return responses directly."""
    if result.ok or result.failure is None:
        raise ValueError("Cannot map a successful result to an HTTP error")
    return JSONResponse(
        status_code=FAILURE_STATUS[result.failure],
        content=_body(result),
        headers=_headers(result),
    )
