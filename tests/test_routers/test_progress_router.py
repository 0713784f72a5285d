import pytest
from httpx import AsyncClient

PATH = "/api/users/onboarding-progress"


def _body(ids: list[str], is_completed: bool = False) -> dict:
    return {
        "currentStep": 2,
        "completedSteps": ids,
        "isCompleted": is_completed,
        "lastUpdated": "2026-01-01T00:00:00Z",
    }


@pytest.mark.asyncio
async def test_get_without_record_is_404(client: AsyncClient, user_headers: dict):
    response = await client.get(PATH, headers=user_headers)
    assert response.status_code == 404
    assert response.json()["error"] is True


@pytest.mark.asyncio
async def test_missing_user_header_is_401(client: AsyncClient):
    response = await client.get(PATH)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_blank_user_header_is_400(client: AsyncClient):
    response = await client.get(PATH, headers={"X-User-ID": "  "})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_save_and_get(client: AsyncClient, user_headers: dict):
    response = await client.post(PATH, json=_body(["welcome", "welcome", "permissions"]), headers=user_headers)
    assert response.status_code == 200
    assert response.json()["completedSteps"] == ["welcome", "permissions"]

    response = await client.get(PATH, headers=user_headers)
    data = response.json()
    assert data["completedSteps"] == ["welcome", "permissions"]
    assert data["currentStep"] == 2
    assert data["isCompleted"] is False


@pytest.mark.asyncio
async def test_post_replaces(client: AsyncClient, user_headers: dict):
    await client.post(PATH, json=_body(["welcome", "permissions"]), headers=user_headers)
    await client.post(PATH, json=_body([]), headers=user_headers)
    response = await client.get(PATH, headers=user_headers)
    assert response.json()["completedSteps"] == []


@pytest.mark.asyncio
async def test_users_are_isolated(client: AsyncClient, user_headers: dict):
    await client.post(PATH, json=_body(["welcome"]), headers=user_headers)
    response = await client.get(PATH, headers={"X-User-ID": "someone-else"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invalid_body_is_422(client: AsyncClient, user_headers: dict):
    response = await client.post(PATH, json={"completedSteps": "welcome"}, headers=user_headers)
    assert response.status_code == 422
    assert response.json()["detail"] == "Validation error"
