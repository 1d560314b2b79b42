"""URL-safe, collision-free slugs for forms."""

import re
import unicodedata
from collections.abc import Container

from app.utils.normalization import slugify_name


FALLBACK_SLUG = "form"
MAX_SLUG_LENGTH = 100

_UNSAFE_SLUG_CHARS_RE = re.compile(r"[^a-z0-9-]+")
_REPEATED_HYPHENS_RE = re.compile(r"-{2,}")


def base_slug(display_name: str | None) -> str:
    """
    Slug candidate for a display name before collision handling.

    The normalized name with spaces as hyphens, reduced to ASCII
    [a-z0-9-] so it can sit in a URL path unescaped.
    """
    candidate = slugify_name(display_name)
    candidate = (
        unicodedata.normalize("NFKD", candidate).encode("ascii", "ignore").decode("ascii")
    )
    candidate = _UNSAFE_SLUG_CHARS_RE.sub("", candidate)
    candidate = _REPEATED_HYPHENS_RE.sub("-", candidate).strip("-")
    # Leave room for the "-n" counter suffix
    candidate = candidate[: MAX_SLUG_LENGTH - 10].rstrip("-")
    return candidate or FALLBACK_SLUG


def generate_slug(display_name: str | None, existing_slugs: Container[str]) -> str:
    """
    Return the first free slug for a display name.

    Tries the base candidate, then base-1, base-2, ... until one is not in
    `existing_slugs`. The set is only read; callers working through a batch
    must add the returned slug to their working set before the next call.
    """
    base = base_slug(display_name)
    if base not in existing_slugs:
        return base

    counter = 1
    while f"{base}-{counter}" in existing_slugs:
        counter += 1
    return f"{base}-{counter}"
