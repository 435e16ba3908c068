"""Repository for whole-collection reads and writes."""

import json
import logging
from typing import Any, Dict, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.exceptions import CorruptCollectionError, ValidationError
from components.storage.models import CollectionSnapshot

logger = logging.getLogger(__name__)


class CollectionRepository:
    """
    Key/value store of record collections.

    ``get`` returns an empty list for a collection that was never written
    and raises CorruptCollectionError when the stored payload is not a
    JSON array, so corruption is never mistaken for "no data".
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get(self, name: str) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(CollectionSnapshot).where(CollectionSnapshot.name == name)
        )
        snapshot = result.scalar_one_or_none()
        if snapshot is None:
            return []

        try:
            records = json.loads(snapshot.payload)
        except json.JSONDecodeError as e:
            logger.error("Collection %s is corrupt: %s", name, e)
            raise CorruptCollectionError(f"Collection {name} is corrupt: {e.msg}")
        if not isinstance(records, list):
            logger.error("Collection %s holds %s instead of a list", name, type(records).__name__)
            raise CorruptCollectionError(f"Collection {name} is not a list")
        return records

    async def put(self, name: str, records: List[Dict[str, Any]]) -> None:
        """Overwrite a collection with ``records``."""
        if not isinstance(records, list):
            raise ValidationError("Collection records must be a list")
        payload = json.dumps(records, default=str)

        snapshot = await self.session.get(CollectionSnapshot, name)
        if snapshot is None:
            self.session.add(CollectionSnapshot(name=name, payload=payload))
        else:
            snapshot.payload = payload
        await self.session.commit()
        logger.info("Stored %d records in collection %s", len(records), name)

    async def names(self) -> List[str]:
        result = await self.session.execute(
            select(CollectionSnapshot.name).order_by(CollectionSnapshot.name)
        )
        return list(result.scalars().all())
