"""Exception taxonomy for the assessment engine.

Every public operation fails fast with one of these; callers decide how to
present them (typically prompting for a different name on ConflictError).
"""
from __future__ import annotations

from typing import Iterable, List, Optional


class AssessmentError(Exception):
    """Base class for all secassess errors."""

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None):
        self.message = message
        self.errors: List[str] = list(errors or [])
        super().__init__(message)

    def __str__(self) -> str:
        if self.errors:
            return f"{self.message}: {', '.join(self.errors)}"
        return self.message


class ValidationError(AssessmentError):
    """Malformed input to a public operation."""


class StateError(AssessmentError):
    """A required precondition is not met (no active draft, no owner)."""


class ConflictError(AssessmentError):
    """Uniqueness violation, e.g. a duplicate report or draft name."""


class StorageError(AssessmentError):
    """The underlying key-value store failed to read or write."""
