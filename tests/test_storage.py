import pytest

from components.core.exceptions import CorruptCollectionError, ValidationError
from components.storage.models import CollectionSnapshot
from components.storage.repository import CollectionRepository


class TestCollectionRepository:
    """Tests for whole-collection reads and writes."""

    async def test_missing_collection_is_empty(self, session):
        assert await CollectionRepository(session).get("deals") == []

    async def test_put_then_get(self, session):
        repo = CollectionRepository(session)
        records = [{"id": 1, "buyer": "Buyer One"}, {"id": 2, "buyer": "Buyer Two"}]
        await repo.put("deals", records)
        assert await repo.get("deals") == records

    async def test_put_overwrites(self, session):
        repo = CollectionRepository(session)
        await repo.put("deals", [{"id": 1}])
        await repo.put("deals", [])
        assert await repo.get("deals") == []
        assert await repo.names() == ["deals"]

    async def test_corrupt_payload_is_not_empty(self, session):
        session.add(CollectionSnapshot(name="payments", payload="{not json"))
        await session.commit()
        with pytest.raises(CorruptCollectionError, match="payments"):
            await CollectionRepository(session).get("payments")

    async def test_non_list_payload(self, session):
        session.add(CollectionSnapshot(name="payments", payload='{"id": 1}'))
        await session.commit()
        with pytest.raises(CorruptCollectionError, match="is not a list"):
            await CollectionRepository(session).get("payments")

    async def test_put_rejects_non_list(self, session):
        with pytest.raises(ValidationError):
            await CollectionRepository(session).put("deals", {"id": 1})
