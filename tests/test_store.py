import pytest

from app.errors import ConflictError, NotFoundError
from app.store import DocumentRef


@pytest.mark.anyio("asyncio")
async def test_put_and_get_round_trip(open_store):
    async with open_store() as store:
        assert await store.get("lanes", "lane-1") is None

        await store.put("lanes", "lane-1", {"id": "lane-1", "title": "Space"})
        await store.put("lanes", "lane-1", {"id": "lane-1", "title": "Planets"})

        assert await store.get("lanes", "lane-1") == {"id": "lane-1", "title": "Planets"}


@pytest.mark.anyio("asyncio")
async def test_returned_documents_are_copies(open_store):
    async with open_store() as store:
        document = {"id": "p", "tags": ["a"]}
        await store.put("profiles", "p", document)
        document["tags"].append("b")

        loaded = await store.get("profiles", "p")
        loaded["tags"].append("c")

        assert await store.get("profiles", "p") == {"id": "p", "tags": ["a"]}


@pytest.mark.anyio("asyncio")
async def test_update_merges_fields(open_store):
    async with open_store() as store:
        await store.put("lanes", "lane-1", {"id": "lane-1", "title": "Space", "isActive": True})

        merged = await store.update("lanes", "lane-1", {"isActive": False})

        assert merged == {"id": "lane-1", "title": "Space", "isActive": False}
        assert await store.get("lanes", "lane-1") == merged


@pytest.mark.anyio("asyncio")
async def test_update_missing_document_raises(open_store):
    async with open_store() as store:
        with pytest.raises(NotFoundError):
            await store.update("lanes", "missing", {"title": "Nope"})


@pytest.mark.anyio("asyncio")
async def test_collections_are_isolated(open_store):
    async with open_store() as store:
        await store.put("lanes", "shared", {"id": "shared", "profileId": "kid"})
        await store.put("laneItems", "shared", {"id": "shared", "laneId": "lane"})

        assert await store.list_collection("lanes") == [{"id": "shared", "profileId": "kid"}]
        assert await store.query_by_field("laneItems", "profileId", "kid") == []


@pytest.mark.anyio("asyncio")
async def test_query_by_field_filters_documents(open_store):
    async with open_store() as store:
        await store.put("laneItems", "a", {"id": "a", "laneId": "lane-1"})
        await store.put("laneItems", "b", {"id": "b", "laneId": "lane-2"})
        await store.put("laneItems", "c", {"id": "c", "laneId": "lane-1"})

        matches = await store.query_by_field("laneItems", "laneId", "lane-1")

        assert sorted(document["id"] for document in matches) == ["a", "c"]


@pytest.mark.anyio("asyncio")
async def test_delete_batch_removes_all_targets(open_store):
    async with open_store() as store:
        await store.put("lanes", "lane-1", {"id": "lane-1"})
        await store.put("laneItems", "a", {"id": "a"})
        await store.put("laneItems", "b", {"id": "b"})

        deleted = await store.delete_batch(
            [
                DocumentRef("laneItems", "a"),
                DocumentRef("laneItems", "b"),
                DocumentRef("laneItems", "b"),
                DocumentRef("laneItems", "missing"),
                DocumentRef("lanes", "lane-1"),
            ]
        )

        assert deleted == 3
        assert await store.list_collection("laneItems") == []
        assert await store.get("lanes", "lane-1") is None
        assert await store.delete_batch([]) == 0


@pytest.mark.anyio("asyncio")
async def test_delete_single_document(open_store):
    async with open_store() as store:
        await store.put("profiles", "p", {"id": "p"})

        assert await store.delete("profiles", "p") is True
        assert await store.delete("profiles", "p") is False


@pytest.mark.anyio("asyncio")
async def test_query_by_field_is_scoped_per_profile(open_store):
    async with open_store() as store:
        for profile_id in ("kid", "sibling"):
            for item_id in ("a", "b"):
                await store.put(
                    "watchHistory",
                    f"{profile_id}_{item_id}",
                    {"id": f"{profile_id}_{item_id}", "profileId": profile_id},
                )
        await store.put("watchHistory", "stray", {"id": "stray"})

        kid = await store.query_by_field("watchHistory", "profileId", "kid")
        sibling = await store.query_by_field("watchHistory", "profileId", "sibling")

        assert sorted(document["id"] for document in kid) == ["kid_a", "kid_b"]
        assert sorted(document["id"] for document in sibling) == ["sibling_a", "sibling_b"]
        assert await store.query_by_field("watchHistory", "profileId", "nobody") == []


@pytest.mark.anyio("asyncio")
async def test_query_by_field_matches_numbers_and_flags(open_store):
    async with open_store() as store:
        await store.put("lanes", "on", {"id": "on", "isActive": True, "sortOrder": 1})
        await store.put("lanes", "off", {"id": "off", "isActive": False, "sortOrder": 2})

        active = await store.query_by_field("lanes", "isActive", True)
        second = await store.query_by_field("lanes", "sortOrder", 2)

        assert [document["id"] for document in active] == ["on"]
        assert [document["id"] for document in second] == ["off"]
        with pytest.raises(TypeError):
            await store.query_by_field("lanes", "isActive", None)


@pytest.mark.anyio("asyncio")
async def test_create_refuses_existing_document(open_store):
    async with open_store() as store:
        await store.create("profiles", "p", {"id": "p", "displayName": "First"})

        with pytest.raises(ConflictError):
            await store.create("profiles", "p", {"id": "p", "displayName": "Second"})

        assert await store.get("profiles", "p") == {"id": "p", "displayName": "First"}
