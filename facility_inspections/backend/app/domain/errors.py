# backend/app/domain/errors.py
from __future__ import annotations

from fastapi import HTTPException


class NotFoundError(HTTPException):
    """Inspection / schedule / user absent."""

    def __init__(self, detail: str = "not found") -> None:
        super().__init__(status_code=404, detail=detail)


class InvalidStateError(HTTPException):
    """Transition attempted from a state that doesn't allow it."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=409, detail=detail)


class ValidationError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=400, detail=detail)
