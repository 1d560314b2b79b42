"""Structured logging helpers."""

from typing import Any


def build_log_context(
    *,
    batch_id: str | None = None,
    filename: str | None = None,
    slug: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict with only the fields that are set."""
    context: dict[str, Any] = {}
    if batch_id:
        context["batch_id"] = batch_id
    if filename:
        context["upload_filename"] = filename
    if slug:
        context["form_slug"] = slug
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
