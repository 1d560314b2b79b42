"""Schemas for tracked forms and spreadsheet reconciliation results."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class FormCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    form_url: str = Field(..., min_length=1, max_length=2048)


class FormRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slug: str
    name: str
    form_url: str | None
    tracked_path: str
    clicks: int
    submissions: int
    conversion_rate: int | None
    created_at: datetime


class FormDeleteResponse(BaseModel):
    ok: bool = True


class SubmissionIncrementResponse(BaseModel):
    ok: bool = True
    submissions: int


# =============================================================================
# Spreadsheet upload
# =============================================================================


class AcceptedSheetResult(BaseModel):
    filename: str
    status: Literal["accepted"] = "accepted"
    slug: str
    matched_display_name: str
    submission_count: int
    previous_count: int | None
    is_new_form: bool
    match_tier: str


class RejectedSheetResult(BaseModel):
    filename: str
    status: Literal["rejected"] = "rejected"
    reason: str


SheetResult = Annotated[
    AcceptedSheetResult | RejectedSheetResult,
    Field(discriminator="status"),
]


class UploadSubmissionsResponse(BaseModel):
    batch_id: str
    dry_run: bool
    applied: bool
    results: list[SheetResult]
