"""Data normalization utilities for consistent identifiers."""

import re
import unicodedata
from typing import Optional


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize email to lowercase.

    Args:
        email: Raw email input

    Returns:
        Trimmed, lowercased email or None if empty
    """
    if not email or not email.strip():
        return None
    return email.strip().lower()


def normalize_name(name: Optional[str]) -> Optional[str]:
    """Strip whitespace and collapse multiple spaces. None if empty."""
    if not name or not name.strip():
        return None
    return " ".join(name.split())


def _strip_accents(value: str) -> str:
    return "".join(
        ch for ch in unicodedata.normalize("NFKD", value) if not unicodedata.combining(ch)
    )


def slugify(value: Optional[str], max_length: int = 100) -> str:
    """
    URL-safe slug: ASCII lowercase words joined by single hyphens.

    "Café Central, Ltd." -> "cafe-central-ltd"
    """
    if not value:
        return ""
    ascii_value = _strip_accents(value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_value.lower()).strip("-")
    return slug[:max_length].rstrip("-")
