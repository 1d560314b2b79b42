"""Submission reconciliation for uploaded spreadsheet exports.

For every uploaded sheet:
1. count non-blank data rows (header excluded); zero -> rejected
2. derive the form identity from filename, then sheet title
3. match it against the batch-local catalog view
4. matched   -> overwrite that form's count with the fresh count
   unmatched -> create a form with a new collision-free slug
5. record the intent in the view so later sheets in the batch see it

Sheets are processed strictly in upload order. The catalog is read once per
batch and every intent is written back in one call; per-sheet problems are
reported as rejections and never abort the batch.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.structured_logging import build_log_context
from app.services import catalog_service
from app.services.catalog_service import CatalogEntry, CatalogWriteError
from app.services.form_matcher import MatchTier, match_form
from app.services.slug_service import generate_slug
from app.services.submission_counter import count_submissions
from app.utils.normalization import derive_identity


logger = logging.getLogger(__name__)

NO_SUBMISSIONS_REASON = "No valid submissions found"


# =============================================================================
# Types
# =============================================================================


@dataclass
class UploadedSheet:
    """A decoded spreadsheet: row 0 is the header."""

    filename: str
    rows: list[list[Any]]
    sheet_title: str | None = None


@dataclass(frozen=True)
class RejectedSheet:
    filename: str
    reason: str


@dataclass(frozen=True)
class ReconciliationIntent:
    """Decided write for one sheet, before it reaches storage."""

    filename: str
    slug: str
    display_name: str
    new_count: int
    is_new_form: bool
    previous_count: int | None
    match_tier: MatchTier


SheetOutcome = ReconciliationIntent | RejectedSheet


@dataclass
class BatchResult:
    """Per-file outcomes for one upload, in upload order."""

    batch_id: str
    outcomes: list[SheetOutcome] = field(default_factory=list)
    dry_run: bool = False
    applied: bool = False

    @property
    def intents(self) -> list[ReconciliationIntent]:
        return [o for o in self.outcomes if isinstance(o, ReconciliationIntent)]

    @property
    def rejections(self) -> list[RejectedSheet]:
        return [o for o in self.outcomes if isinstance(o, RejectedSheet)]


class BatchCatalogView:
    """
    In-memory catalog for one batch.

    Seeded from a storage snapshot and updated as sheets are reconciled, so
    a form created by an earlier sheet is matched (not re-created) by a
    later one, and its slug is never handed out twice.
    """

    def __init__(self, catalog: Iterable[CatalogEntry]):
        self._entries: list[CatalogEntry] = list(catalog)
        self.slugs: set[str] = {entry.slug for entry in self._entries}

    @property
    def entries(self) -> list[CatalogEntry]:
        return list(self._entries)

    def get(self, slug: str) -> CatalogEntry | None:
        for entry in self._entries:
            if entry.slug == slug:
                return entry
        return None

    def record(self, intent: ReconciliationIntent) -> None:
        if intent.is_new_form:
            # Newest first, same as the storage snapshot
            self._entries.insert(
                0,
                CatalogEntry(
                    slug=intent.slug,
                    name=intent.display_name,
                    submissions=intent.new_count,
                ),
            )
            self.slugs.add(intent.slug)
            return

        self._entries = [
            replace(entry, submissions=intent.new_count) if entry.slug == intent.slug else entry
            for entry in self._entries
        ]


# =============================================================================
# Reconciliation (pure)
# =============================================================================


def reconcile_sheet(sheet: UploadedSheet, view: BatchCatalogView) -> SheetOutcome:
    """
    Decide what one sheet does to the catalog and record it in `view`.

    Returns a RejectedSheet, without touching the view, when the sheet has
    no submissions.
    """
    submission_count = count_submissions(sheet.rows[1:])
    if submission_count == 0:
        return RejectedSheet(filename=sheet.filename, reason=NO_SUBMISSIONS_REASON)

    identity = derive_identity(sheet.filename, sheet.sheet_title)
    match = match_form(identity, view.entries)
    matched = view.get(match.matched_slug) if match.matched_slug else None

    if matched is not None:
        intent = ReconciliationIntent(
            filename=sheet.filename,
            slug=matched.slug,
            display_name=matched.name,
            new_count=submission_count,
            is_new_form=False,
            previous_count=matched.submissions,
            match_tier=match.tier,
        )
    else:
        intent = ReconciliationIntent(
            filename=sheet.filename,
            slug=generate_slug(identity, view.slugs),
            display_name=identity,
            new_count=submission_count,
            is_new_form=True,
            previous_count=None,
            match_tier=MatchTier.NO_MATCH,
        )

    view.record(intent)
    return intent


def reconcile_batch(
    sheets: Sequence[UploadedSheet | RejectedSheet],
    catalog: Iterable[CatalogEntry],
    *,
    batch_id: str | None = None,
    dry_run: bool = False,
) -> BatchResult:
    """
    Reconcile sheets in order against one catalog snapshot.

    Entries that are already RejectedSheet (failed to decode upstream) pass
    straight through so the result keeps upload order.
    """
    result = BatchResult(batch_id=batch_id or uuid.uuid4().hex[:12], dry_run=dry_run)
    view = BatchCatalogView(catalog)

    for sheet in sheets:
        if isinstance(sheet, RejectedSheet):
            result.outcomes.append(sheet)
            continue
        try:
            outcome = reconcile_sheet(sheet, view)
        except Exception as exc:
            logger.exception(
                "Failed to reconcile sheet",
                extra=build_log_context(batch_id=result.batch_id, filename=sheet.filename),
            )
            outcome = RejectedSheet(filename=sheet.filename, reason=f"Failed to reconcile: {exc}")

        if isinstance(outcome, RejectedSheet):
            logger.info(
                f"Rejected {outcome.filename}: {outcome.reason}",
                extra=build_log_context(batch_id=result.batch_id, filename=outcome.filename),
            )
        result.outcomes.append(outcome)

    return result


def collapse_intents(intents: Iterable[ReconciliationIntent]) -> list[ReconciliationIntent]:
    """
    One write per slug for a batch.

    The last sheet's count wins (overwrite, never a sum). A slug created
    earlier in the same batch stays a creation even when later sheets
    updated it in memory, since storage has not seen it yet.
    """
    by_slug: dict[str, ReconciliationIntent] = {}
    for intent in intents:
        earlier = by_slug.get(intent.slug)
        if earlier is not None and earlier.is_new_form and not intent.is_new_form:
            intent = replace(intent, is_new_form=True, display_name=earlier.display_name)
        by_slug[intent.slug] = intent
    return list(by_slug.values())


# =============================================================================
# Batch execution
# =============================================================================


def run_upload_batch(
    db: Session,
    sheets: Sequence[UploadedSheet | RejectedSheet],
    *,
    dry_run: bool = False,
    max_write_retries: int | None = None,
) -> BatchResult:
    """
    Reconcile an upload against the stored catalog and apply it.

    Reads the catalog once, reconciles every sheet, then writes all intents
    in one batched call. When the write conflicts on a slug or its outcome
    is unknown, the batch is re-resolved against a fresh catalog read and
    written again: creations that did land now match as updates, and count
    updates are overwrites, so the retry cannot double count.

    Raises:
        CatalogReadError: catalog could not be read (nothing reconciled)
        CatalogWriteError: write failed after retries (nothing applied)
    """
    retries = settings.CATALOG_WRITE_RETRIES if max_write_retries is None else max_write_retries
    batch_id = uuid.uuid4().hex[:12]
    attempt = 0

    while True:
        catalog = catalog_service.list_catalog(db)
        result = reconcile_batch(sheets, catalog, batch_id=batch_id, dry_run=dry_run)
        if dry_run or not result.intents:
            return result

        try:
            counts = catalog_service.apply_intents(db, collapse_intents(result.intents))
        except CatalogWriteError as exc:
            if exc.retryable and attempt < retries:
                attempt += 1
                logger.warning(
                    f"Catalog write failed ({exc}); re-resolving batch, retry {attempt}/{retries}",
                    extra=build_log_context(batch_id=batch_id),
                )
                continue
            logger.error(
                f"Catalog write failed for batch of {len(sheets)} file(s): {exc}",
                extra=build_log_context(batch_id=batch_id),
            )
            raise

        result.applied = True
        logger.info(
            f"Reconciled {len(result.intents)} sheet(s): {counts['created']} form(s) created, "
            f"{counts['updated']} updated, {len(result.rejections)} rejected",
            extra=build_log_context(batch_id=batch_id),
        )
        return result
