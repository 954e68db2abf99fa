"""
Custom exceptions for the application.
"""
from typing import Optional


class LeitnerException(Exception):
    """Base exception for all Leitner box application exceptions."""
    pass


class ValidationError(LeitnerException):
    """Raised when validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(LeitnerException):
    """Raised when a requested resource is not found."""
    pass


class ConflictError(LeitnerException):
    """Raised when a card changed between read and write; the caller may retry."""
    pass


class StoreError(LeitnerException):
    """Raised when the underlying persistence layer fails."""
    pass
