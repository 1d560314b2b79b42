"""Contract tests for spreadsheet submission uploads."""

import io

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import Form
from app.services import catalog_service
from app.services.catalog_service import CatalogReadError, CatalogWriteError


XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _upload(name: str, content: bytes, content_type: str = XLSX):
    return ("files", (name, io.BytesIO(content), content_type))


@pytest.mark.asyncio
async def test_upload_creates_then_overwrites(client: AsyncClient, db: Session, xlsx_bytes, survey):
    response = await client.post(
        "/upload-submissions",
        files=[_upload("Survey-A-1-1.xlsx", xlsx_bytes(survey(5)))],
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["applied"] is True
    assert data["dry_run"] is False
    [result] = data["results"]
    assert result["status"] == "accepted"
    assert result["slug"] == "survey-a"
    assert result["is_new_form"] is True
    assert result["submission_count"] == 5
    assert result["match_tier"] == "no_match"

    response = await client.post(
        "/upload-submissions",
        files=[_upload("Survey-A-1-1.xlsx", xlsx_bytes(survey(7, blank_padding=3)))],
    )
    assert response.status_code == 200, response.text
    [result] = response.json()["results"]
    assert result["is_new_form"] is False
    assert result["previous_count"] == 5
    assert result["submission_count"] == 7
    assert result["match_tier"] == "exact_name"

    forms = db.execute(select(Form)).scalars().all()
    assert [(f.slug, f.submissions) for f in forms] == [("survey-a", 7)]


@pytest.mark.asyncio
async def test_upload_mixed_results_keep_order(client: AsyncClient, db: Session, xlsx_bytes, survey):
    response = await client.post(
        "/upload-submissions",
        files=[
            _upload("Team Poll.xlsx", xlsx_bytes(survey(2))),
            _upload("Empty.xlsx", xlsx_bytes(survey(0, blank_padding=2))),
            _upload("notes.pdf", b"%PDF-1.4", "application/pdf"),
            _upload("quiz.csv", b"ID,Answer\n1,yes\n", "text/csv"),
        ],
    )

    assert response.status_code == 200, response.text
    results = response.json()["results"]
    assert [r["filename"] for r in results] == ["Team Poll.xlsx", "Empty.xlsx", "notes.pdf", "quiz.csv"]
    assert [r["status"] for r in results] == ["accepted", "rejected", "rejected", "accepted"]
    assert results[1]["reason"] == "No valid submissions found"
    assert "Unsupported file type" in results[2]["reason"]

    slugs = sorted(db.execute(select(Form.slug)).scalars().all())
    assert slugs == ["quiz", "team-poll"]


@pytest.mark.asyncio
async def test_preview_does_not_write(client: AsyncClient, db: Session, xlsx_bytes, survey):
    response = await client.post(
        "/upload-submissions/preview",
        files=[_upload("Survey-A.xlsx", xlsx_bytes(survey(3)))],
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["dry_run"] is True
    assert data["applied"] is False
    assert data["results"][0]["slug"] == "survey-a"
    assert db.execute(select(Form)).scalars().all() == []


@pytest.mark.asyncio
async def test_upload_without_files(client: AsyncClient):
    response = await client.post("/upload-submissions", data={"note": "nothing"})

    assert response.status_code == 400
    assert response.json()["detail"] == "No files provided"


@pytest.mark.asyncio
async def test_upload_too_many_files(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_FILES", 1)

    response = await client.post(
        "/upload-submissions",
        files=[_upload("a.csv", b"x\n1\n", "text/csv"), _upload("b.csv", b"x\n1\n", "text/csv")],
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_oversize_file_is_rejected_alone(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_BYTES", 64)

    response = await client.post(
        "/upload-submissions",
        files=[
            _upload("big.csv", b"ID\n" + b"1\n" * 100, "text/csv"),
            _upload("small.csv", b"ID\n1\n", "text/csv"),
        ],
    )

    assert response.status_code == 200, response.text
    big, small = response.json()["results"]
    assert big["status"] == "rejected"
    assert big["reason"] == "File exceeds maximum upload size"
    assert small["status"] == "accepted"


@pytest.mark.asyncio
async def test_catalog_unavailable_returns_503(client: AsyncClient, monkeypatch):
    def unavailable(session):
        raise CatalogReadError("down")

    monkeypatch.setattr(catalog_service, "list_catalog", unavailable)

    response = await client.post(
        "/upload-submissions",
        files=[_upload("a.csv", b"x\n1\n", "text/csv")],
    )

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_write_failure_returns_500(client: AsyncClient, monkeypatch):
    def fail(session, intents):
        raise CatalogWriteError("disk full")

    monkeypatch.setattr(catalog_service, "apply_intents", fail)

    response = await client.post(
        "/upload-submissions",
        files=[_upload("a.csv", b"x\n1\n", "text/csv")],
    )

    assert response.status_code == 500
    assert "no file from this upload was applied" in response.json()["detail"]
