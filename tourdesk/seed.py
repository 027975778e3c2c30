"""Seed an empty store with the demo catalog and tours."""
from __future__ import annotations

import logging

from config.seed_catalog import SEED_CATALOG, SEED_TOURS

from .schemas import EntityKind, EntityRef, LineCollection
from .stores.base import DataStore

logger = logging.getLogger(__name__)


async def seed_database(store: DataStore) -> bool:
    """Populate the store unless it already holds guides.

    Returns:
        True if data was written, False if the store was already seeded
    """
    if await store.guides.list():
        logger.info("Store already seeded, skipping")
        return False

    logger.info(f"Seeding {store.backend} store with demo data")

    ids: dict[EntityKind, dict[str, str]] = {}
    for key, records in SEED_CATALOG.items():
        kind = EntityKind(key)
        created = await store.bulk_create(kind, records)
        ids[kind] = {entity.name: entity.id for entity in created}

    def ref(kind: EntityKind, name: str) -> EntityRef:
        return EntityRef(id=ids[kind].get(name, ""), name_at_booking=name)

    for entry in SEED_TOURS:
        header = dict(entry["tour"])
        header["company_ref"] = ref(EntityKind.COMPANY, header.pop("company"))
        header["guide_ref"] = ref(EntityKind.GUIDE, header.pop("guide"))
        header["client_nationality_ref"] = ref(EntityKind.NATIONALITY, header.pop("client_nationality"))
        tour = await store.create_tour(header)
        for collection in LineCollection:
            for item in entry.get(collection.value, []):
                await store.add_line_item(tour.id, collection, item)

    logger.info(f"Seeded {len(SEED_TOURS)} tours")
    return True
