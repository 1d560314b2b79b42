"""SQLAlchemy ORM models for the forms catalog."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index, Integer, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Form(Base):
    """
    An externally hosted survey form we track clicks and submissions for.

    `slug` is assigned once and never changes, even when the display name
    is edited. `submissions` is overwritten by spreadsheet reconciliation;
    `clicks` is owned by the link redirector.
    """
    __tablename__ = "forms"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_forms_slug"),
        CheckConstraint("submissions >= 0", name="submissions_non_negative"),
        CheckConstraint("clicks >= 0", name="clicks_non_negative"),
        Index("idx_forms_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    form_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    clicks: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    submissions: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Form slug={self.slug!r} submissions={self.submissions}>"
