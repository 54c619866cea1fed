"""
Exceptions raised by the scheduling core.

Only configuration mistakes are raised. Bad runtime numbers are repaired by
the normalization layer and collaborator failures degrade to neutral values.
"""

from __future__ import annotations


class CadenceError(Exception):
    """Base class for all errors raised by the scheduling core."""
    pass


class InvalidTargetRetention(CadenceError, ValueError):
    """Raised when a target retention is not strictly inside (0, 1)."""

    def __init__(self, target: float):
        self.target = target
        super().__init__(f"Target retention must be strictly between 0 and 1, got {target!r}")


class InvalidParameters(CadenceError, ValueError):
    """Raised when an FSRS parameter set is malformed."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


class SimilarityUnavailable(CadenceError):
    """Raised by a similarity index that cannot answer a lookup."""
    pass
