"""Pydantic schemas for API request/response models."""

from app.schemas.forms import (
    AcceptedSheetResult,
    FormCreate,
    FormDeleteResponse,
    FormRead,
    RejectedSheetResult,
    SheetResult,
    SubmissionIncrementResponse,
    UploadSubmissionsResponse,
)

__all__ = [
    # Forms
    "FormCreate",
    "FormRead",
    "FormDeleteResponse",
    "SubmissionIncrementResponse",
    # Uploads
    "AcceptedSheetResult",
    "RejectedSheetResult",
    "SheetResult",
    "UploadSubmissionsResponse",
]
