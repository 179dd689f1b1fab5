"""
HTTP error taxonomy raised by services and dependencies.

Authorization denials all surface as the same 403 body; the internal
``reason`` is kept on the exception for logs and tests only.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException


class Unauthenticated(HTTPException):
    """No verified identity. Missing, malformed and revoked tokens look alike."""

    def __init__(self) -> None:
        super().__init__(
            status_code=401,
            detail="Access denied",
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    def __init__(self, reason: Optional[str] = None, detail: str = "Forbidden") -> None:
        super().__init__(status_code=403, detail=detail)
        self.reason = reason


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status_code=404, detail=detail)


class BadRequest(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=400, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=409, detail=detail)
