"""Forms catalog storage: snapshot reads, batched writes and form CRUD.

The reconciliation engine reads the catalog once per batch through
`list_catalog` and writes back once through `apply_intents`. Everything
else here backs the /forms endpoints.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import Form
from app.services.slug_service import generate_slug

if TYPE_CHECKING:
    from app.services.reconciliation_service import ReconciliationIntent


logger = logging.getLogger(__name__)

SLUG_CONSTRAINT = "uq_forms_slug"
CREATE_FORM_ATTEMPTS = 3


# =============================================================================
# Errors
# =============================================================================


class StorageError(Exception):
    """Catalog storage could not be read or written."""

    pass


class CatalogReadError(StorageError):
    """Catalog snapshot could not be read; nothing was reconciled."""

    pass


class CatalogWriteError(StorageError):
    """Batched write failed; no intent from the batch was applied."""

    def __init__(self, message: str, *, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class SlugConflictError(CatalogWriteError):
    """A new form's slug already exists (a concurrent batch created it)."""

    def __init__(self, message: str):
        super().__init__(message, retryable=True)


class FormNotFoundError(Exception):
    """No form with that slug."""

    pass


class InvalidFormUrlError(ValueError):
    """Form URL is malformed or points at a host we do not track."""

    pass


# =============================================================================
# Snapshot
# =============================================================================


@dataclass(frozen=True)
class CatalogEntry:
    """Read-only view of a form as the reconciliation engine sees it."""

    slug: str
    name: str
    submissions: int
    created_at: datetime | None = None


def _is_slug_conflict(error: IntegrityError) -> bool:
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
    if constraint_name == SLUG_CONSTRAINT:
        return True
    message = str(error.orig) if error.orig else str(error)
    return SLUG_CONSTRAINT in message or "forms.slug" in message


def list_catalog(db: Session) -> list[CatalogEntry]:
    """
    Snapshot every form, newest first.

    Newest-first order is the matcher's tie-break: when several forms match
    an identity equally well, the most recently created one wins.

    Raises:
        CatalogReadError: storage unreachable or query failed
    """
    query = select(Form.slug, Form.name, Form.submissions, Form.created_at).order_by(
        Form.created_at.desc(), Form.slug
    )
    try:
        rows = db.execute(query).all()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to read forms catalog")
        raise CatalogReadError("Could not read forms catalog") from exc

    return [
        CatalogEntry(
            slug=row.slug,
            name=row.name,
            submissions=row.submissions,
            created_at=row.created_at,
        )
        for row in rows
    ]


# =============================================================================
# Batched write
# =============================================================================


def _dialect_insert(db: Session):
    """Return the dialect insert() that supports ON CONFLICT."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert
    else:
        raise CatalogWriteError(f"Upsert is not supported on '{dialect}' catalogs")
    return dialect_insert


def apply_intents(db: Session, intents: Sequence["ReconciliationIntent"]) -> dict[str, int]:
    """
    Apply a batch of reconciliation intents in one transaction.

    New forms go in through a plain INSERT so a slug taken by a concurrent
    batch surfaces as SlugConflictError instead of overwriting that form.
    Existing forms are upserted on slug with the fresh count (full
    overwrite, so replays are idempotent).

    Raises:
        SlugConflictError: a new slug already exists
        CatalogWriteError: any other storage failure; `retryable` is set
            when the outcome is unknown (timeout, dropped connection)
    """
    create_rows = [
        {"slug": i.slug, "name": i.display_name, "submissions": i.new_count}
        for i in intents
        if i.is_new_form
    ]
    update_rows = [
        {"slug": i.slug, "name": i.display_name, "submissions": i.new_count}
        for i in intents
        if not i.is_new_form
    ]
    if not create_rows and not update_rows:
        return {"created": 0, "updated": 0}

    try:
        if create_rows:
            db.execute(insert(Form), create_rows)
        if update_rows:
            dialect_insert = _dialect_insert(db)
            stmt = dialect_insert(Form).values(update_rows)
            stmt = stmt.on_conflict_do_update(
                index_elements=[Form.slug],
                set_={
                    "submissions": stmt.excluded.submissions,
                    "updated_at": func.now(),
                },
            )
            db.execute(stmt)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_slug_conflict(exc):
            slugs = ", ".join(row["slug"] for row in create_rows)
            raise SlugConflictError(f"Slug already taken while creating: {slugs}") from exc
        raise CatalogWriteError(f"Catalog rejected batch write: {exc.orig}") from exc
    except OperationalError as exc:
        db.rollback()
        raise CatalogWriteError(
            "Catalog write outcome unknown (connection or timeout failure)",
            retryable=True,
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise CatalogWriteError(f"Catalog write failed: {exc}") from exc

    return {"created": len(create_rows), "updated": len(update_rows)}


# =============================================================================
# Form CRUD
# =============================================================================


def list_forms(db: Session) -> list[Form]:
    """List all forms, newest first."""
    query = select(Form).order_by(Form.created_at.desc(), Form.slug)
    return list(db.execute(query).scalars().all())


def get_form(db: Session, slug: str) -> Form | None:
    """Get a single form by slug."""
    return db.execute(select(Form).where(Form.slug == slug)).scalar_one_or_none()


def validate_form_url(form_url: str) -> str:
    """
    Check a form URL is http(s) on an allowed host.

    Raises:
        InvalidFormUrlError: malformed URL or host not allowed
    """
    candidate = (form_url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidFormUrlError("Invalid URL")

    allowed_hosts = settings.allowed_form_hosts_list
    host = (parsed.hostname or "").lower()
    if allowed_hosts and host not in allowed_hosts:
        raise InvalidFormUrlError("URL host not allowed")
    return candidate


def create_form(db: Session, name: str, form_url: str) -> Form:
    """
    Register a form to track.

    The slug comes from the same generator reconciliation uses, checked
    against every existing slug.

    Raises:
        InvalidFormUrlError: URL rejected by validate_form_url
    """
    display_name = name.strip()
    form_url = validate_form_url(form_url)

    for attempt in range(CREATE_FORM_ATTEMPTS):
        existing_slugs = set(db.execute(select(Form.slug)).scalars().all())
        form = Form(
            slug=generate_slug(display_name, existing_slugs),
            name=display_name,
            form_url=form_url,
        )
        db.add(form)
        try:
            db.commit()
            db.refresh(form)
            break
        except IntegrityError as exc:
            db.rollback()
            if _is_slug_conflict(exc) and attempt < CREATE_FORM_ATTEMPTS - 1:
                continue
            raise

    logger.info(f"Created form {form.slug}")
    return form


def delete_form(db: Session, slug: str) -> None:
    """
    Delete a form by slug.

    Raises:
        FormNotFoundError: no such form
    """
    result = db.execute(delete(Form).where(Form.slug == slug))
    if result.rowcount == 0:
        db.rollback()
        raise FormNotFoundError(f"Form {slug} not found")
    db.commit()
    logger.info(f"Deleted form {slug}")


def increment_submissions(db: Session, slug: str) -> int:
    """
    Add one submission to a form in a single UPDATE.

    Returns the new count.

    Raises:
        FormNotFoundError: no such form
    """
    new_count = db.execute(
        update(Form)
        .where(Form.slug == slug)
        .values(submissions=Form.submissions + 1, updated_at=func.now())
        .returning(Form.submissions)
    ).scalar_one_or_none()
    if new_count is None:
        db.rollback()
        raise FormNotFoundError(f"Form {slug} not found")
    db.commit()
    return new_count
