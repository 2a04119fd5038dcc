"""
Error taxonomy for the partnership engine.

Each error is an HTTPException so routers can let it propagate untouched
and FastAPI renders the right status code.
"""
from typing import Optional

from fastapi import HTTPException, status


class NotFound(HTTPException):
    """A referenced partnership, habit or user does not exist."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Forbidden(HTTPException):
    """The acting user lacks the role the requested transition needs."""

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidRequest(HTTPException):
    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidTransition(HTTPException):
    """The partnership is in a state the requested transition cannot leave."""

    def __init__(self, detail: str = "Invalid status transition"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class RateLimited(HTTPException):
    """The nudge cooldown for a partnership is still running."""

    def __init__(self, detail: str, retry_after: Optional[int] = None):
        headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail, headers=headers)
        self.retry_after = retry_after


class UpstreamUnavailable(HTTPException):
    """The habit catalog or notification dispatcher failed."""

    def __init__(self, detail: str = "Upstream service unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
