"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite catalog per test
- HTTPX AsyncClient bound to the app with get_db overridden
- Spreadsheet builders for upload tests
"""
import io
import os
import zipfile
from typing import AsyncGenerator, Generator

# Settings are read at import time; tests never touch a real database
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["TESTING"] = "1"

import pytest
from httpx import AsyncClient, ASGITransport
from openpyxl import Workbook
from sqlalchemy.orm import Session

from app.main import app
from app.db.base import Base
from app.db.models import Form
from app.db.session import engine, SessionLocal
from app.core.deps import get_db


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on a freshly created schema.

    Tables are dropped after each test so app code can commit freely.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def make_form(db: Session):
    """Insert a form directly, bypassing slug generation."""

    def _make_form(slug: str, name: str, submissions: int = 0, clicks: int = 0) -> Form:
        form = Form(slug=slug, name=name, submissions=submissions, clicks=clicks)
        db.add(form)
        db.commit()
        db.refresh(form)
        return form

    return _make_form


# =============================================================================
# HTTP Client
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated async HTTP client sharing the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Spreadsheet builders
# =============================================================================

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def make_xlsx(rows: list[list], title: str = "Sheet1") -> bytes:
    """Workbook bytes with `rows` (header first) on a single sheet."""
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = title
    for row in rows:
        worksheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def survey_rows(count: int, *, blank_padding: int = 0) -> list[list]:
    """Header plus `count` responses and optional all-blank trailing rows."""
    rows: list[list] = [["ID", "Start time", "Email", "Answer"]]
    for i in range(1, count + 1):
        rows.append([i, "2024-05-01 10:00", f"person{i}@example.com", "Yes"])
    for _ in range(blank_padding):
        rows.append([None, None, None, None])
    return rows


@pytest.fixture
def xlsx_bytes():
    return make_xlsx


@pytest.fixture
def survey():
    return survey_rows


def corrupt_sheet_xml(content: bytes) -> bytes:
    """Same workbook with an unterminated first-sheet XML document."""
    source = zipfile.ZipFile(io.BytesIO(content))
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as target:
        for item in source.infolist():
            data = source.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                data = b"<worksheet><sheetData><row>"
            target.writestr(item, data)
    return buffer.getvalue()


@pytest.fixture
def corrupt_xlsx_bytes():
    return corrupt_sheet_xml
