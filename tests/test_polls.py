from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from core.cache import poll_cache, poll_key
from tests.helpers import API, create_poll, poll_payload, vote


@pytest.mark.asyncio
class TestCreatePoll:
    """Poll creation and input validation."""

    async def test_create_poll(self, async_client, test_user):
        response = await async_client.post(
            f"{API}/polls/", json=poll_payload(), headers=test_user["headers"]
        )
        assert response.status_code == 201

        data = response.json()
        assert data["title"] == "Favourite language?"
        assert data["is_public"] is True
        assert data["allow_multiple_votes"] is False
        assert data["creator_uuid"] == test_user["uuid"]
        assert data["total_votes"] == 0
        assert data["is_expired"] is False
        assert [opt["text"] for opt in data["options"]] == ["Python", "Rust", "Go"]
        assert [opt["order_index"] for opt in data["options"]] == [0, 1, 2]
        assert all(opt["vote_count"] == 0 for opt in data["options"])

    async def test_create_poll_requires_auth(self, async_client):
        response = await async_client.post(f"{API}/polls/", json=poll_payload())
        assert response.status_code == 401

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": "ab"},
            {"title": "x" * 201},
            {"description": "x" * 1001},
            {"options": ["Only one"]},
            {"options": [f"Option {i}" for i in range(11)]},
            {"options": ["Fine", ""]},
            {"options": ["Fine", "x" * 201]},
        ],
    )
    async def test_create_poll_rejects_invalid_input(self, async_client, test_user, overrides):
        response = await async_client.post(
            f"{API}/polls/", json=poll_payload(**overrides), headers=test_user["headers"]
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid input"

    async def test_create_poll_rejects_past_expiry(self, async_client, test_user):
        past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        response = await async_client.post(
            f"{API}/polls/", json=poll_payload(expires_at=past), headers=test_user["headers"]
        )
        assert response.status_code == 400

    async def test_empty_expiry_means_no_expiry(self, async_client, test_user):
        poll = await create_poll(async_client, test_user, expires_at="")
        assert poll["expires_at"] is None

    async def test_future_expiry_is_kept(self, async_client, test_user):
        future = datetime.now(timezone.utc) + timedelta(days=2)
        poll = await create_poll(async_client, test_user, expires_at=future.isoformat())

        expires_at = datetime.fromisoformat(poll["expires_at"].replace("Z", "+00:00"))
        assert abs((expires_at - future).total_seconds()) < 1
        assert poll["is_expired"] is False


@pytest.mark.asyncio
class TestReadPolls:
    """Listing, detail visibility and results."""

    async def test_public_listing_excludes_private_polls(self, async_client, test_user):
        public = await create_poll(async_client, test_user, title="Public poll")
        await create_poll(async_client, test_user, title="Private poll", is_public=False)

        response = await async_client.get(f"{API}/polls/")
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == 1
        assert [item["uuid"] for item in data["items"]] == [public["uuid"]]

    async def test_public_listing_is_paginated(self, async_client, test_user):
        for i in range(3):
            await create_poll(async_client, test_user, title=f"Poll number {i}")

        response = await async_client.get(f"{API}/polls/", params={"page": 1, "size": 2})
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == 3
        assert len(data["items"]) == 2
        assert data["pages"] == 2

    async def test_public_poll_visible_to_anyone(self, async_client, public_poll):
        response = await async_client.get(f"{API}/polls/{public_poll['uuid']}")
        assert response.status_code == 200
        assert response.json()["uuid"] == public_poll["uuid"]

    async def test_private_poll_visible_only_to_owner(self, async_client, test_user, other_user):
        poll = await create_poll(async_client, test_user, is_public=False)
        url = f"{API}/polls/{poll['uuid']}"

        response = await async_client.get(url, headers=test_user["headers"])
        assert response.status_code == 200

        response = await async_client.get(url, headers=other_user["headers"])
        assert response.status_code == 404
        assert response.json()["detail"] == "Poll not found or you don't have permission to access it"

        response = await async_client.get(url)
        assert response.status_code == 404

    async def test_cached_private_poll_stays_hidden(self, async_client, test_user, other_user):
        poll = await create_poll(async_client, test_user, is_public=False)
        url = f"{API}/polls/{poll['uuid']}"

        await async_client.get(url, headers=test_user["headers"])
        assert poll_cache.get(poll_key(poll["uuid"])) is not None

        response = await async_client.get(url, headers=other_user["headers"])
        assert response.status_code == 404

    async def test_unknown_poll(self, async_client):
        response = await async_client.get(f"{API}/polls/{uuid4()}")
        assert response.status_code == 404

    async def test_my_polls(self, async_client, test_user, other_user):
        mine = await create_poll(async_client, test_user, is_public=False)
        await create_poll(async_client, other_user)

        response = await async_client.get(f"{API}/polls/mine", headers=test_user["headers"])
        assert response.status_code == 200
        assert [poll["uuid"] for poll in response.json()] == [mine["uuid"]]

    async def test_my_polls_cache_is_invalidated_on_create(self, async_client, test_user):
        response = await async_client.get(f"{API}/polls/mine", headers=test_user["headers"])
        assert response.json() == []

        poll = await create_poll(async_client, test_user)

        response = await async_client.get(f"{API}/polls/mine", headers=test_user["headers"])
        assert [p["uuid"] for p in response.json()] == [poll["uuid"]]

    async def test_results_percentages(self, async_client, public_poll, test_user, other_user):
        await vote(async_client, test_user, public_poll, 0)
        await vote(async_client, other_user, public_poll, 1)

        response = await async_client.get(f"{API}/polls/{public_poll['uuid']}/results")
        assert response.status_code == 200

        data = response.json()
        assert data["total_votes"] == 2
        assert [r["vote_count"] for r in data["results"]] == [1, 1, 0]
        assert [r["percentage"] for r in data["results"]] == [50.0, 50.0, 0.0]

    async def test_results_without_votes(self, async_client, public_poll):
        response = await async_client.get(f"{API}/polls/{public_poll['uuid']}/results")
        assert response.status_code == 200

        data = response.json()
        assert data["total_votes"] == 0
        assert all(r["percentage"] == 0.0 for r in data["results"])

    async def test_detail_reflects_new_votes(self, async_client, public_poll, other_user):
        url = f"{API}/polls/{public_poll['uuid']}"
        await async_client.get(url)

        await vote(async_client, other_user, public_poll, 2)

        response = await async_client.get(url)
        data = response.json()
        assert data["total_votes"] == 1
        assert data["options"][2]["vote_count"] == 1


@pytest.mark.asyncio
class TestEditPoll:
    """Replacing a poll's settings and options."""

    async def test_owner_can_replace_poll(self, async_client, test_user, other_user, public_poll):
        await vote(async_client, other_user, public_poll, 0)

        response = await async_client.put(
            f"{API}/polls/{public_poll['uuid']}",
            json=poll_payload(title="Renamed poll", options=["Yes", "No"], allow_multiple_votes=True),
            headers=test_user["headers"],
        )
        assert response.status_code == 200

        data = response.json()
        assert data["title"] == "Renamed poll"
        assert data["allow_multiple_votes"] is True
        assert [opt["text"] for opt in data["options"]] == ["Yes", "No"]
        assert data["total_votes"] == 0
        assert data["version_id"] == public_poll["version_id"] + 1

    async def test_votes_are_discarded_on_replace(self, async_client, test_user, other_user, public_poll):
        await vote(async_client, other_user, public_poll, 0)
        response = await async_client.put(
            f"{API}/polls/{public_poll['uuid']}",
            json=poll_payload(options=["Yes", "No"]),
            headers=test_user["headers"],
        )
        replaced = response.json()

        response = await vote(async_client, other_user, replaced, 1)
        assert response.status_code == 201

    async def test_non_owner_cannot_edit(self, async_client, other_user, public_poll):
        response = await async_client.put(
            f"{API}/polls/{public_poll['uuid']}",
            json=poll_payload(title="Hijacked"),
            headers=other_user["headers"],
        )
        assert response.status_code == 404

    async def test_stale_version_is_rejected(self, async_client, test_user, public_poll):
        url = f"{API}/polls/{public_poll['uuid']}"
        response = await async_client.put(
            url, json=poll_payload(version_id=public_poll["version_id"]), headers=test_user["headers"]
        )
        assert response.status_code == 200

        response = await async_client.put(
            url, json=poll_payload(version_id=public_poll["version_id"]), headers=test_user["headers"]
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Poll version conflict"

    async def test_edit_invalidates_detail_cache(self, async_client, test_user, public_poll):
        url = f"{API}/polls/{public_poll['uuid']}"
        await async_client.get(url)

        await async_client.put(url, json=poll_payload(title="Fresh title"), headers=test_user["headers"])

        response = await async_client.get(url)
        assert response.json()["title"] == "Fresh title"


@pytest.mark.asyncio
class TestDeletePoll:
    """Deleting polls."""

    async def test_owner_can_delete(self, async_client, test_user, public_poll):
        url = f"{API}/polls/{public_poll['uuid']}"
        await async_client.get(url)

        response = await async_client.delete(url, headers=test_user["headers"])
        assert response.status_code == 200
        assert response.json()["uuid"] == public_poll["uuid"]

        response = await async_client.get(url)
        assert response.status_code == 404

        response = await async_client.get(f"{API}/polls/")
        assert response.json()["total"] == 0

    async def test_non_owner_cannot_delete(self, async_client, other_user, public_poll):
        response = await async_client.delete(
            f"{API}/polls/{public_poll['uuid']}", headers=other_user["headers"]
        )
        assert response.status_code == 404

        response = await async_client.get(f"{API}/polls/{public_poll['uuid']}")
        assert response.status_code == 200

    async def test_delete_requires_auth(self, async_client, public_poll):
        response = await async_client.delete(f"{API}/polls/{public_poll['uuid']}")
        assert response.status_code == 401
