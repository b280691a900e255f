"""Utility modules."""

from app.utils.normalization import (
    normalize_email,
    normalize_name,
    slugify,
)

__all__ = [
    # Normalization
    "normalize_email",
    "normalize_name",
    "slugify",
]
