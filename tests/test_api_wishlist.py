"""Tests for wishlist API endpoints."""

from httpx import AsyncClient


class TestWishlist:
    async def test_add_and_list(self, client: AsyncClient) -> None:
        response = await client.post(
            "/wishlist/user-1", json={"card_id": "base1-1", "priority": "high"}
        )

        assert response.status_code == 201
        assert response.json()["priority"] == "high"

        listing = (await client.get("/wishlist/user-1")).json()
        assert listing["total_entries"] == 1
        assert listing["by_priority"] == {"high": 1, "medium": 0, "low": 0}

    async def test_unrecognized_priority_is_medium(self, client: AsyncClient) -> None:
        response = await client.post(
            "/wishlist/user-1", json={"card_id": "base1-1", "priority": "urgent"}
        )

        assert response.json()["priority"] == "medium"

    async def test_duplicate_add_is_conflict(self, client: AsyncClient) -> None:
        await client.post("/wishlist/user-1", json={"card_id": "base1-1", "priority": "low"})

        response = await client.post(
            "/wishlist/user-1", json={"card_id": "base1-1", "priority": "high"}
        )

        assert response.status_code == 409
        data = response.json()
        assert data["failure"]["kind"] == "duplicate_wishlist_entry"
        assert data["failure"]["message"] == "This card is already in your wishlist."
        listing = (await client.get("/wishlist/user-1")).json()
        assert listing["total_entries"] == 1
        assert listing["entries"][0]["priority"] == "low"

    async def test_edit_entry(self, client: AsyncClient) -> None:
        added = (await client.post("/wishlist/user-1", json={"card_id": "base1-1"})).json()

        response = await client.patch(
            f"/wishlist/user-1/entries/{added['id']}", json={"priority": 0, "notes": "later"}
        )

        assert response.status_code == 200
        assert response.json()["priority"] == "low"
        assert response.json()["notes"] == "later"

    async def test_edit_missing_entry(self, client: AsyncClient) -> None:
        response = await client.patch("/wishlist/user-1/entries/999", json={"notes": "x"})

        assert response.status_code == 404

    async def test_delete_is_idempotent(self, client: AsyncClient) -> None:
        await client.post("/wishlist/user-1", json={"card_id": "base1-1"})

        assert (await client.delete("/wishlist/user-1/base1-1")).status_code == 200
        assert (await client.delete("/wishlist/user-1/base1-1")).status_code == 200
        assert (await client.get("/wishlist/user-1/count")).json()["count"] == 0
        assert (await client.get("/wishlist/user-1/check/base1-1")).json()["present"] is False

    async def test_value(self, client: AsyncClient) -> None:
        await client.post("/wishlist/user-1", json={"card_id": "base1-1", "price": 25})

        data = (await client.get("/wishlist/user-1/value")).json()

        assert data["manual_total"] == 25.0
        assert data["automatic_total"] == 20.0
        assert data["cards_both_prices"] == 1
