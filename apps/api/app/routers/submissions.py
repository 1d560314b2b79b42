"""Spreadsheet upload endpoints for submission reconciliation."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_db
from app.core.rate_limit import UPLOAD_LIMIT, limiter
from app.core.structured_logging import build_log_context
from app.schemas.forms import (
    AcceptedSheetResult,
    RejectedSheetResult,
    UploadSubmissionsResponse,
)
from app.services import reconciliation_service, spreadsheet_reader
from app.services.catalog_service import CatalogReadError, CatalogWriteError
from app.services.reconciliation_service import (
    BatchResult,
    ReconciliationIntent,
    RejectedSheet,
    UploadedSheet,
)
from app.utils.file_upload import content_length_exceeds_limit, read_upload_within_limit


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload-submissions", tags=["submissions"])

FILE_TOO_LARGE_REASON = "File exceeds maximum upload size"


def _sheet_result(outcome) -> AcceptedSheetResult | RejectedSheetResult:
    if isinstance(outcome, ReconciliationIntent):
        return AcceptedSheetResult(
            filename=outcome.filename,
            slug=outcome.slug,
            matched_display_name=outcome.display_name,
            submission_count=outcome.new_count,
            previous_count=outcome.previous_count,
            is_new_form=outcome.is_new_form,
            match_tier=outcome.match_tier.value,
        )
    return RejectedSheetResult(filename=outcome.filename, reason=outcome.reason)


def _batch_response(result: BatchResult) -> UploadSubmissionsResponse:
    return UploadSubmissionsResponse(
        batch_id=result.batch_id,
        dry_run=result.dry_run,
        applied=result.applied,
        results=[_sheet_result(outcome) for outcome in result.outcomes],
    )


async def _decode_uploads(files: list[UploadFile]) -> list[UploadedSheet | RejectedSheet]:
    """Decode every upload; failures become rejections in upload order."""
    sheets: list[UploadedSheet | RejectedSheet] = []
    for file in files:
        filename = file.filename or ""
        if not filename:
            sheets.append(RejectedSheet(filename="", reason="No file selected"))
            continue

        content = await read_upload_within_limit(
            file, max_size_bytes=settings.MAX_UPLOAD_SIZE_BYTES
        )
        if content is None:
            sheets.append(RejectedSheet(filename=filename, reason=FILE_TOO_LARGE_REASON))
            continue

        try:
            sheets.append(spreadsheet_reader.decode_upload(filename, content, file.content_type))
        except spreadsheet_reader.SpreadsheetDecodeError as exc:
            sheets.append(RejectedSheet(filename=filename, reason=str(exc)))
        except Exception as exc:
            logger.warning(
                f"Unexpected error decoding upload: {exc}",
                extra=build_log_context(filename=filename),
            )
            sheets.append(RejectedSheet(filename=filename, reason=f"Failed to parse file: {exc}"))
    return sheets


async def _reconcile_uploads(
    request: Request,
    files: list[UploadFile] | None,
    db: Session,
    *,
    dry_run: bool,
) -> UploadSubmissionsResponse:
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files provided")
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files; upload at most {settings.MAX_UPLOAD_FILES} per request",
        )
    if content_length_exceeds_limit(
        request.headers.get("content-length"),
        max_size_bytes=settings.MAX_UPLOAD_SIZE_BYTES * settings.MAX_UPLOAD_FILES,
    ):
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Upload too large",
        )

    sheets = await _decode_uploads(files)

    try:
        result = reconciliation_service.run_upload_batch(db, sheets, dry_run=dry_run)
    except CatalogReadError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Forms catalog is unavailable; nothing was reconciled",
        ) from exc
    except CatalogWriteError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Saving submission counts failed; no file from this upload was applied ({exc})",
        ) from exc

    return _batch_response(result)


@router.post("", response_model=UploadSubmissionsResponse)
@limiter.limit(UPLOAD_LIMIT)
async def upload_submissions(
    request: Request,
    files: list[UploadFile] | None = File(None, description="Spreadsheet exports (.xlsx or .csv)"),
    db: Session = Depends(get_db),
):
    """
    Reconcile submission counts from one or more spreadsheet exports.

    Each file is matched to a tracked form by name (or creates one) and the
    form's submission count is overwritten with the file's non-blank row
    count. Returns one result per file; a rejected file never fails the
    whole upload.
    """
    return await _reconcile_uploads(request, files, db, dry_run=False)


@router.post("/preview", response_model=UploadSubmissionsResponse)
@limiter.limit(UPLOAD_LIMIT)
async def preview_upload_submissions(
    request: Request,
    files: list[UploadFile] | None = File(None, description="Spreadsheet exports (.xlsx or .csv)"),
    db: Session = Depends(get_db),
):
    """
    Dry run of an upload: same per-file results, nothing is written.
    """
    return await _reconcile_uploads(request, files, db, dry_run=True)
