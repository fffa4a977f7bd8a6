"""Tests for the bookmark REST endpoints."""
from uuid import uuid4

from httpx import AsyncClient

from core.exceptions import DataOperationError
from fakes import USER, InMemoryBookmarkStore, make_bookmark


async def test__list_bookmarks__requires_sign_in(client: AsyncClient) -> None:
    response = await client.get("/bookmarks/")
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


async def test__list_bookmarks__returns_only_own(
    signed_in: AsyncClient, store: InMemoryBookmarkStore,
) -> None:
    mine = make_bookmark("Mine")
    store.rows = [mine, make_bookmark("Theirs", user_id="user-2")]

    response = await signed_in.get("/bookmarks/")

    assert response.status_code == 200
    assert [b["id"] for b in response.json()] == [str(mine.id)]


async def test__create_bookmark__returns_stored_record(
    signed_in: AsyncClient, store: InMemoryBookmarkStore,
) -> None:
    response = await signed_in.post(
        "/bookmarks/", json={"title": "  Docs ", "url": "https://docs.example.com"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Docs"
    assert data["url"] == "https://docs.example.com"
    assert data["user_id"] == USER.id
    assert [str(r.id) for r in store.rows] == [data["id"]]


async def test__create_bookmark__blank_fields_rejected(
    signed_in: AsyncClient, store: InMemoryBookmarkStore,
) -> None:
    response = await signed_in.post("/bookmarks/", json={"title": "   ", "url": "https://x"})
    assert response.status_code == 422
    response = await signed_in.post("/bookmarks/", json={"title": "Docs", "url": ""})
    assert response.status_code == 422
    assert store.call_count("insert") == 0


async def test__create_bookmark__datastore_failure(
    signed_in: AsyncClient, store: InMemoryBookmarkStore,
) -> None:
    store.fail_insert = DataOperationError("permission denied")
    response = await signed_in.post(
        "/bookmarks/", json={"title": "Docs", "url": "https://docs.example.com"},
    )
    assert response.status_code == 502
    assert response.json()["detail"] == "permission denied"


async def test__delete_bookmark__removes_row(
    signed_in: AsyncClient, store: InMemoryBookmarkStore,
) -> None:
    doomed = make_bookmark("Doomed")
    store.rows = [doomed]

    response = await signed_in.delete(f"/bookmarks/{doomed.id}")

    assert response.status_code == 204
    assert store.rows == []


async def test__delete_bookmark__other_owner_untouched(
    signed_in: AsyncClient, store: InMemoryBookmarkStore,
) -> None:
    theirs = make_bookmark("Theirs", user_id="user-2")
    store.rows = [theirs]

    response = await signed_in.delete(f"/bookmarks/{theirs.id}")

    assert response.status_code == 204
    assert store.rows == [theirs]


async def test__delete_bookmark__unknown_id(signed_in: AsyncClient) -> None:
    response = await signed_in.delete(f"/bookmarks/{uuid4()}")
    assert response.status_code == 204


async def test__delete_bookmark__invalid_id(signed_in: AsyncClient) -> None:
    response = await signed_in.delete("/bookmarks/not-a-uuid")
    assert response.status_code == 422


async def test__bookmarks__unconfigured_is_unauthenticated(
    unconfigured_client: AsyncClient,
) -> None:
    response = await unconfigured_client.get("/bookmarks/")
    assert response.status_code == 401
