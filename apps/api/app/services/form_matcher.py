"""Resolve a sheet identity against the catalog of known forms.

Deterministic fallback chain, first hit wins:
1. exact     - normalized stored name equals the identity
2. contains  - normalized stored name contains the identity (providers
               append descriptive suffixes to exported titles)
3. no match  - the caller treats this as a new form

Ties inside a stage go to the first entry in catalog order. The catalog
service returns newest forms first, so "most recent form wins" is the
effective policy for ambiguous names.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from app.utils.normalization import normalize_form_name


class MatchTier(str, Enum):
    """Stage of the fallback chain that produced a match."""

    EXACT_NAME = "exact_name"
    NORMALIZED_NAME = "normalized_name"  # normalized stored name contains identity
    NO_MATCH = "no_match"


class NamedForm(Protocol):
    slug: str
    name: str


@dataclass(frozen=True)
class MatchResult:
    identity: str
    matched_slug: str | None
    tier: MatchTier

    @property
    def is_match(self) -> bool:
        return self.matched_slug is not None


def match_form(identity: str, catalog: Iterable[NamedForm]) -> MatchResult:
    """
    Find the catalog entry an identity refers to.

    Never mutates the catalog and never raises; an empty identity or an
    empty catalog is simply NO_MATCH.
    """
    if not identity:
        return MatchResult(identity=identity, matched_slug=None, tier=MatchTier.NO_MATCH)

    normalized_catalog = [(entry, normalize_form_name(entry.name)) for entry in catalog]

    for entry, normalized in normalized_catalog:
        if normalized == identity:
            return MatchResult(identity=identity, matched_slug=entry.slug, tier=MatchTier.EXACT_NAME)

    for entry, normalized in normalized_catalog:
        if identity in normalized:
            return MatchResult(
                identity=identity, matched_slug=entry.slug, tier=MatchTier.NORMALIZED_NAME
            )

    return MatchResult(identity=identity, matched_slug=None, tier=MatchTier.NO_MATCH)
