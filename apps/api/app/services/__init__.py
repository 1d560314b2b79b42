"""Service layer modules."""

from app.services.catalog_service import (
    CatalogEntry,
    CatalogReadError,
    CatalogWriteError,
    FormNotFoundError,
    InvalidFormUrlError,
    SlugConflictError,
    StorageError,
)
from app.services.form_matcher import MatchResult, MatchTier, match_form
from app.services.slug_service import generate_slug
from app.services.submission_counter import count_submissions

# Import service modules (not individual functions) for cleaner access
from app.services import catalog_service
from app.services import reconciliation_service
from app.services import spreadsheet_reader

__all__ = [
    # Catalog
    "CatalogEntry",
    "StorageError",
    "CatalogReadError",
    "CatalogWriteError",
    "SlugConflictError",
    "FormNotFoundError",
    "InvalidFormUrlError",
    # Matching
    "MatchResult",
    "MatchTier",
    "match_form",
    # Slugs and counting
    "generate_slug",
    "count_submissions",
    # Service modules
    "catalog_service",
    "reconciliation_service",
    "spreadsheet_reader",
]
