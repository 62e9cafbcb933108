from typing import Any, Optional
from uuid import uuid4

from httpx import AsyncClient

from core.auth import create_access_token
from core.settings import settings

API = settings.API_PREFIX


async def register_user(client: AsyncClient, email: Optional[str] = None, password: str = "testpass123") -> dict[str, Any]:
    """Register a user through the API and return it with a ready-to-use auth header."""
    email = email or f"user_{uuid4().hex[:8]}@example.com"
    response = await client.post(f"{API}/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    user = response.json()
    token = create_access_token({"sub": user["uuid"]})
    return {
        **user,
        "password": password,
        "headers": {"Authorization": f"Bearer {token}"},
    }


def poll_payload(**overrides) -> dict[str, Any]:
    payload = {
        "title": "Favourite language?",
        "description": "Pick the one you reach for first",
        "is_public": True,
        "allow_multiple_votes": False,
        "options": ["Python", "Rust", "Go"],
    }
    payload.update(overrides)
    return payload


async def create_poll(client: AsyncClient, user: dict[str, Any], **overrides) -> dict[str, Any]:
    response = await client.post(f"{API}/polls/", json=poll_payload(**overrides), headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()


async def vote(client: AsyncClient, user: Optional[dict[str, Any]], poll: dict[str, Any], *option_indexes: int):
    option_ids = [poll["options"][index]["uuid"] for index in option_indexes]
    return await client.post(
        f"{API}/votes",
        json={"poll_id": poll["uuid"], "option_ids": option_ids},
        headers=user["headers"] if user else None,
    )
