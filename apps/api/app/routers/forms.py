"""Tracked form endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.db.models import Form
from app.schemas.forms import (
    FormCreate,
    FormDeleteResponse,
    FormRead,
    SubmissionIncrementResponse,
)
from app.services import catalog_service
from app.services.catalog_service import FormNotFoundError, InvalidFormUrlError

router = APIRouter(prefix="/forms", tags=["forms"])


def _conversion_rate(form: Form) -> int | None:
    if not form.clicks:
        return None
    return round(form.submissions / form.clicks * 100)


def _form_read(form: Form) -> FormRead:
    return FormRead(
        slug=form.slug,
        name=form.name,
        form_url=form.form_url,
        tracked_path=f"/f/{form.slug}",
        clicks=form.clicks,
        submissions=form.submissions,
        conversion_rate=_conversion_rate(form),
        created_at=form.created_at,
    )


@router.get("", response_model=list[FormRead])
def list_forms(db: Session = Depends(get_db)):
    """List tracked forms, newest first."""
    return [_form_read(form) for form in catalog_service.list_forms(db)]


@router.post("", response_model=FormRead, status_code=status.HTTP_201_CREATED)
def create_form(data: FormCreate, db: Session = Depends(get_db)):
    """Start tracking an external form."""
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="Missing fields")
    try:
        form = catalog_service.create_form(db, name=data.name, form_url=data.form_url)
    except InvalidFormUrlError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _form_read(form)


@router.delete("/{slug}", response_model=FormDeleteResponse)
def delete_form(slug: str, db: Session = Depends(get_db)):
    """Stop tracking a form."""
    try:
        catalog_service.delete_form(db, slug)
    except FormNotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")
    return FormDeleteResponse()


@router.post("/{slug}/increment-submissions", response_model=SubmissionIncrementResponse)
def increment_submissions(slug: str, db: Session = Depends(get_db)):
    """Record one manually confirmed submission."""
    try:
        submissions = catalog_service.increment_submissions(db, slug)
    except FormNotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")
    return SubmissionIncrementResponse(submissions=submissions)
