"""Script to load a browser localStorage export into the collection store.

The export is a JSON object mapping storage keys to either a JSON-encoded
string (as localStorage holds them) or an already decoded array.

    python -m scripts.import_local_storage export.json
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path

from components.core.init_db import db_manager, get_db
from components.core.log_config import configure_logging
from components.storage.repository import CollectionRepository

logger = logging.getLogger(__name__)


def decode_value(key, value):
    """Return the records held under a storage key, or None when it isn't a list."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Skipping %s: value is not JSON", key)
            return None
    if not isinstance(value, list):
        logger.warning("Skipping %s: value is not a list", key)
        return None
    return value


async def import_export(path: Path) -> int:
    """Store every list-valued key of the export as a collection."""
    with open(path, "r", encoding="utf-8") as f:
        export = json.load(f)

    await db_manager.create_all()
    imported = 0
    async for db in get_db():
        repo = CollectionRepository(db)
        for key, value in export.items():
            records = decode_value(key, value)
            if records is None:
                continue
            await repo.put(key, records)
            imported += 1
    logger.info("Imported %d collections from %s", imported, path)
    return imported


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("export", type=Path, help="JSON export of localStorage")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(import_export(args.export))


if __name__ == "__main__":
    main()
