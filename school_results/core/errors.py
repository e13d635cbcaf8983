"""
Domain errors raised by the results services.

Routers translate these into HTTP responses; nothing in the core retries.
"""

from __future__ import annotations

from typing import Any


class ResultsError(Exception):
    """Base class for every error raised by the results core."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ScoreValidationError(ResultsError):
    """A score is outside ``[0, assessment.max_score]`` or a batch is malformed."""

    def __init__(self, message: str, failures: list[dict[str, Any]] | None = None, **context: Any):
        super().__init__(message, **context)
        self.failures = failures or []


class NotFoundError(ResultsError):
    """A referenced student, subject, class, term, session or result does not exist."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} not found", entity=entity, entity_id=str(entity_id))
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(ResultsError):
    """A natural key was hit twice where overwriting is not allowed, or under different attribution."""


class ResultsLockedError(ResultsError):
    """A write targeted a locked ``(class, subject, term)`` scope."""
