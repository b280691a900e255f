"""Structured logging helpers (PII-safe: never pass emails or raw tokens)."""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    business_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
    token_fingerprint: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict for `logger.*(..., extra=...)`."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if business_id:
        context["business_id"] = str(business_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    if token_fingerprint:
        context["token_fingerprint"] = token_fingerprint
    return context
