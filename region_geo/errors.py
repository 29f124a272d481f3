"""
Error conditions raised by the region model.
All of them signal a caller or configuration defect; none is retried.
"""

from __future__ import annotations


class RegionModelError(Exception):
    """Base class for region model failures."""


class InvalidFilterState(RegionModelError):
    """A token has no legal region under the supplied filters."""

    def __init__(self, message: str, token: int | None = None):
        super().__init__(message)
        self.token = token


class InvalidHyperparameter(RegionModelError):
    """A hyperparameter or annealing setting is out of range."""


class DimensionMismatch(RegionModelError):
    """Supplied arrays disagree with corpus-derived sizes."""


class AnnealerStateError(RegionModelError):
    """The annealer was used outside of its valid lifecycle."""
