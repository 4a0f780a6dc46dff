"""Central error types used across the application."""

from __future__ import annotations


class FootpathAuditError(RuntimeError):
    """Base error for footpath audit failures."""


class EmptyInputError(FootpathAuditError):
    """Raised when a detected or ground-truth set has no valid features."""


class SkippableFeatureError(FootpathAuditError):
    """Raised for a single malformed feature or pair; absorbed by the engines."""


class OverpassError(FootpathAuditError):
    """Raised when the Overpass API request fails or returns bad JSON."""


class TileIndexFormatError(FootpathAuditError):
    """Raised when the tile index CSV is missing required columns."""


__all__ = [
    "FootpathAuditError",
    "EmptyInputError",
    "SkippableFeatureError",
    "OverpassError",
    "TileIndexFormatError",
]
