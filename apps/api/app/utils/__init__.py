"""Utility modules."""

from app.utils.normalization import (
    derive_identity,
    normalize_form_name,
    slugify_name,
)
from app.utils.file_upload import (
    content_length_exceeds_limit,
    get_upload_file_size,
    read_upload_within_limit,
)

__all__ = [
    # Normalization
    "normalize_form_name",
    "derive_identity",
    "slugify_name",
    # Uploads
    "content_length_exceeds_limit",
    "get_upload_file_size",
    "read_upload_within_limit",
]
