"""Contract tests for the tracked forms endpoints."""

import pytest
from httpx import AsyncClient


FORM_URL = "https://forms.office.com/r/abc123"


@pytest.mark.asyncio
async def test_create_and_list_forms(client: AsyncClient):
    response = await client.post("/forms", json={"name": "Team Poll", "form_url": FORM_URL})
    assert response.status_code == 201, response.text
    created = response.json()
    assert created["slug"] == "team-poll"
    assert created["tracked_path"] == "/f/team-poll"
    assert created["submissions"] == 0
    assert created["conversion_rate"] is None

    await client.post("/forms", json={"name": "Exit Survey", "form_url": FORM_URL})

    response = await client.get("/forms")
    assert response.status_code == 200
    assert [f["slug"] for f in response.json()] == ["exit-survey", "team-poll"]


@pytest.mark.asyncio
async def test_conversion_rate(client: AsyncClient, make_form):
    make_form("team-poll", "Team Poll", submissions=1, clicks=3)

    [form] = (await client.get("/forms")).json()
    assert form["conversion_rate"] == 33


@pytest.mark.asyncio
async def test_create_form_rejects_bad_url(client: AsyncClient):
    response = await client.post(
        "/forms", json={"name": "Team Poll", "form_url": "https://example.com/x"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "URL host not allowed"


@pytest.mark.asyncio
async def test_create_form_requires_fields(client: AsyncClient):
    response = await client.post("/forms", json={"name": "Team Poll"})
    assert response.status_code == 422

    response = await client.post("/forms", json={"name": "   ", "form_url": FORM_URL})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_form(client: AsyncClient, make_form):
    make_form("team-poll", "Team Poll")

    response = await client.delete("/forms/team-poll")
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    response = await client.delete("/forms/team-poll")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_increment_submissions(client: AsyncClient, make_form):
    make_form("team-poll", "Team Poll", submissions=2)

    response = await client.post("/forms/team-poll/increment-submissions")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "submissions": 3}

    response = await client.post("/forms/missing/increment-submissions")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health(client: AsyncClient, db):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
