"""
Tests for the collection facade.

These tests cover:
- Insert / find / update / destroy / count / stream
- Bare store filters as criteria
- Read-only silent no-ops
- Duplicate key clarification
"""
import pytest
import pytest_asyncio

from mongo_adapter.core.errors import RecordNotUnique
from mongo_adapter.models.connection import IndexSpec


@pytest_asyncio.fixture
async def users(registered):
    return registered.registry.collection("main", "users")


@pytest_asyncio.fixture
async def readonly_users(adapter, readonly_config, user_collections):
    entry = await adapter.registry.register(readonly_config, user_collections)
    collection = entry.collections["users"]
    await collection.handle.insert_one({"email": "ro@example.com", "name": "Ro"})
    return collection


class TestWrites:
    """Tests for mutating verbs."""

    @pytest.mark.asyncio
    async def test_insert_single(self, users):
        inserted = await users.insert({"email": "a@example.com", "name": "A"})

        assert len(inserted) == 1
        assert inserted[0]["_id"] is not None
        assert await users.count() == 1

    @pytest.mark.asyncio
    async def test_insert_many(self, users):
        inserted = await users.insert([
            {"email": "a@example.com"},
            {"email": "b@example.com"},
        ])

        assert [doc["email"] for doc in inserted] == ["a@example.com", "b@example.com"]
        assert all("_id" in doc for doc in inserted)

    @pytest.mark.asyncio
    async def test_duplicate_key_is_clarified(self, users):
        await users.insert({"email": "a@example.com"})

        with pytest.raises(RecordNotUnique):
            await users.insert({"email": "a@example.com"})

    @pytest.mark.asyncio
    async def test_update_returns_updated_records(self, users):
        await users.insert([
            {"email": "a@example.com", "name": "A"},
            {"email": "b@example.com", "name": "B"},
        ])

        updated = await users.update({"where": {"name": "A"}}, {"name": "Alice"})

        assert [doc["name"] for doc in updated] == ["Alice"]
        assert await users.count({"where": {"name": "Alice"}}) == 1

    @pytest.mark.asyncio
    async def test_update_with_operator(self, users):
        await users.insert({"email": "a@example.com", "logins": 1})

        updated = await users.update({"where": {}}, {"$inc": {"logins": 2}})

        assert updated[0]["logins"] == 3

    @pytest.mark.asyncio
    async def test_update_no_match(self, users):
        assert await users.update({"where": {"name": "nobody"}}, {"name": "x"}) == []

    @pytest.mark.asyncio
    async def test_destroy_returns_deleted_records(self, users):
        await users.insert([
            {"email": "a@example.com", "name": "A"},
            {"email": "b@example.com", "name": "B"},
        ])

        destroyed = await users.destroy({"where": {"name": "A"}})

        assert [doc["email"] for doc in destroyed] == ["a@example.com"]
        assert await users.find({"where": {"name": "A"}}) == []
        assert await users.count() == 1

    @pytest.mark.asyncio
    async def test_destroy_honours_limit(self, users):
        await users.insert([
            {"email": "a1@example.com", "name": "A"},
            {"email": "a2@example.com", "name": "A"},
        ])

        destroyed = await users.destroy({"where": {"name": "A"}, "sort": {"email": 1}, "limit": 1})

        assert [doc["email"] for doc in destroyed] == ["a1@example.com"]
        remaining = await users.find({"where": {"name": "A"}})
        assert [doc["email"] for doc in remaining] == ["a2@example.com"]

    @pytest.mark.asyncio
    async def test_update_honours_skip_and_limit(self, users):
        await users.insert([{"email": f"{n}@example.com", "name": n} for n in "abc"])

        updated = await users.update({"sort": {"name": 1}, "skip": 1, "limit": 1}, {"flag": True})

        assert [doc["name"] for doc in updated] == ["b"]
        assert await users.count({"where": {"flag": True}}) == 1


class TestBareFilters:
    """Criteria given as a plain store filter select the same records as `where`."""

    @pytest_asyncio.fixture
    async def seeded_users(self, users):
        await users.insert([
            {"email": "a@example.com", "name": "A"},
            {"email": "b@example.com", "name": "B"},
        ])
        return users

    @pytest.mark.asyncio
    async def test_find(self, seeded_users):
        found = await seeded_users.find({"name": "A"})

        assert [doc["email"] for doc in found] == ["a@example.com"]

    @pytest.mark.asyncio
    async def test_count(self, seeded_users):
        assert await seeded_users.count({"name": "A"}) == 1

    @pytest.mark.asyncio
    async def test_update(self, seeded_users):
        updated = await seeded_users.update({"name": "A"}, {"name": "Alice"})

        assert [doc["email"] for doc in updated] == ["a@example.com"]
        assert await seeded_users.count({"name": "B"}) == 1

    @pytest.mark.asyncio
    async def test_destroy_only_removes_matches(self, seeded_users):
        destroyed = await seeded_users.destroy({"name": "A"})

        assert [doc["email"] for doc in destroyed] == ["a@example.com"]
        remaining = await seeded_users.find()
        assert [doc["email"] for doc in remaining] == ["b@example.com"]

    @pytest.mark.asyncio
    async def test_mixed_with_query_keys(self, seeded_users):
        """Filter fields merge with `where`; limit/sort keep their meaning."""
        await seeded_users.insert({"email": "a2@example.com", "name": "A"})

        found = await seeded_users.find({"name": "A", "sort": {"email": -1}, "limit": 1})

        assert [doc["email"] for doc in found] == ["a@example.com"]


class TestReads:
    """Tests for find, count and stream."""

    @pytest.mark.asyncio
    async def test_find_with_sort_skip_limit_select(self, users):
        await users.insert([{"email": f"{n}@example.com", "name": n} for n in "cab"])

        found = await users.find({"sort": {"name": 1}, "skip": 1, "limit": 1, "select": ["name"]})

        assert len(found) == 1
        assert found[0]["name"] == "b"
        assert "email" not in found[0]

    @pytest.mark.asyncio
    async def test_find_without_criteria(self, users):
        await users.insert({"email": "a@example.com"})

        assert len(await users.find(None)) == 1

    @pytest.mark.asyncio
    async def test_stream(self, users):
        await users.insert([{"email": "a@example.com"}, {"email": "b@example.com"}])

        emails = [doc["email"] async for doc in users.stream({"sort": [("email", -1)]})]

        assert emails == ["b@example.com", "a@example.com"]

    @pytest.mark.asyncio
    async def test_primary_key(self, users):
        assert users.get_pk() == "_id"

    @pytest.mark.asyncio
    async def test_indexes(self, users):
        assert all(isinstance(spec, IndexSpec) for spec in users.indexes)
        assert users.indexes[0].keys() == [("email", 1)]


class TestReadOnly:
    """Mutating verbs on read-only connections are silent no-ops."""

    @pytest.mark.asyncio
    async def test_insert_is_noop(self, readonly_users):
        assert await readonly_users.insert({"email": "new@example.com"}) == []
        assert await readonly_users.count() == 1

    @pytest.mark.asyncio
    async def test_update_is_noop(self, readonly_users):
        assert await readonly_users.update({"where": {}}, {"name": "changed"}) == []
        found = await readonly_users.find()
        assert found[0]["name"] == "Ro"

    @pytest.mark.asyncio
    async def test_destroy_is_noop(self, readonly_users):
        assert await readonly_users.destroy({"where": {}}) == []
        assert await readonly_users.count() == 1

    @pytest.mark.asyncio
    async def test_reads_still_work(self, readonly_users):
        assert len(await readonly_users.find()) == 1
