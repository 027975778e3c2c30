"""Error taxonomy shared by every backend.

Storage failures are not wrapped: callers see the driver's SQLAlchemy error.
`StorageError` is exported so they can catch it without importing SQLAlchemy.
"""
from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

StorageError = SQLAlchemyError


class TourDeskError(Exception):
    """Base class for domain errors."""
    pass


class DuplicateNameError(TourDeskError):
    """Raised when a name (or tour code) collides after normalization."""

    def __init__(self, label: str, name: str) -> None:
        self.label = label
        self.name = name
        super().__init__(f'{label} "{name}" already exists')


class NotFoundError(TourDeskError):
    """Raised when an operation targets a missing record."""

    def __init__(self, label: str, id: str) -> None:
        self.label = label
        self.id = id
        super().__init__(f"{label} {id} not found")


class BackendUnavailableError(TourDeskError):
    """Raised when the remote backend cannot be constructed."""
    pass


class IncompleteTourError(TourDeskError, ValueError):
    """Raised when a summary is requested for a tour without loaded line items."""
    pass
