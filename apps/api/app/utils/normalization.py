"""Name normalization for matching uploaded spreadsheets to forms."""

import re
from typing import Optional


# =============================================================================
# Constants
# =============================================================================

# Label spreadsheet tools give an untitled first sheet, after normalization
DEFAULT_SHEET_LABEL = "sheet1"

# Identity used when neither filename nor sheet title yields anything
DEFAULT_FORM_NAME = "default form"

SPREADSHEET_EXTENSION_RE = re.compile(r"\.(xlsx|xls|csv)$", re.IGNORECASE)

# Provider duplicate counters: "(1)", "(1-2)", "(3 4)"
DUPLICATE_COUNTER_RE = re.compile(r"\s*\(\d+(?:[-\s]\d+)?\)$")

# Bare counters appended without parentheses: "-1-1", "_2"
NUMERIC_RANGE_SUFFIX_RE = re.compile(r"(?:[-_]\d+)+$")

SEPARATOR_RE = re.compile(r"[-_]+")
WHITESPACE_RE = re.compile(r"\s+")


# =============================================================================
# Normalization
# =============================================================================


def _normalize_once(name: str) -> str:
    name = name.lower().strip()
    name = SPREADSHEET_EXTENSION_RE.sub("", name).strip()
    name = DUPLICATE_COUNTER_RE.sub("", name).strip()
    name = NUMERIC_RANGE_SUFFIX_RE.sub("", name)
    name = SEPARATOR_RE.sub(" ", name)
    return WHITESPACE_RE.sub(" ", name).strip()


def normalize_form_name(raw: Optional[str]) -> str:
    """
    Canonicalize a filename, sheet title or stored form name.

    Each pass runs these steps in order:
    1. lower-case
    2. strip spreadsheet extension (.xlsx/.xls/.csv)
    3. strip trailing "(n)" / "(n-m)" duplicate counter
    4. strip trailing "-n-m" / "_n" counter
    5. hyphens/underscores -> spaces
    6. collapse whitespace and trim

    Passes repeat until the name stops changing, so stacked suffixes like
    "report (1) (2).xlsx" are fully removed and the result is idempotent.
    Never raises; empty or None input gives "".
    """
    if not raw:
        return ""

    name = str(raw)
    while True:
        normalized = _normalize_once(name)
        if normalized == name:
            return normalized
        name = normalized


def is_placeholder_name(normalized: str) -> bool:
    """True when a normalized name carries no form identity."""
    return not normalized or normalized == DEFAULT_SHEET_LABEL


def derive_identity(filename: Optional[str], sheet_title: Optional[str] = None) -> str:
    """
    Derive the matching identity for an uploaded sheet.

    Filename first; when that is empty or the default sheet label, the
    sheet's own title; when that is empty too, DEFAULT_FORM_NAME. There is no
    "latest form" fallback: every sheet gets an identity of its own.
    """
    identity = normalize_form_name(filename)
    if not is_placeholder_name(identity):
        return identity

    identity = normalize_form_name(sheet_title)
    if identity:
        return identity

    return DEFAULT_FORM_NAME


def slugify_name(display_name: Optional[str]) -> str:
    """Normalized name with spaces replaced by hyphens."""
    return normalize_form_name(display_name).replace(" ", "-")
