"""Local embedded backend: JSON documents in an SQLite file.

A tour is a single document embedding its line-item arrays. Callers address
line items by id; the array slot is looked up from the stored document on
each mutation, so a removal never leaves a caller holding a shifted index.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .. import documents
from ..config import LocalStoreSettings
from ..db import create_engine
from ..normalization import normalize
from ..schemas import (
    CATALOG,
    EntityKind,
    LineCollection,
    LineItem,
    MasterEntity,
    Tour,
    TourSummary,
    utcnow,
)
from .base import DataStore

logger = logging.getLogger(__name__)


def item_positions(items: Sequence[Mapping[str, Any]]) -> dict[str, int]:
    """Map each line item id to its current array slot.

    Slots shift down by one after a removal, so the map is rebuilt from the
    stored array for every mutation and never kept between calls.
    """
    return {item["id"]: index for index, item in enumerate(items)}


class LocalStore(DataStore):
    """Repository backed by the embedded document store."""

    backend = "local"

    @classmethod
    def from_settings(cls, config: LocalStoreSettings) -> LocalStore:
        parent = Path(config.path).parent
        parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Using local document store at {config.path}")
        return cls(create_engine(config.url, echo=config.echo))

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(documents.metadata.create_all)
        logger.info("Local document tables ready")

    # Catalog -----------------------------------------------------------

    @staticmethod
    def _entity_row(entity: MasterEntity) -> dict[str, Any]:
        return {
            "name_key": normalize(entity.name),
            "status": entity.status.value,
            "document": entity.model_dump(mode="json"),
        }

    async def _load_entities(self, session: AsyncSession, kind: EntityKind) -> list[MasterEntity]:
        table = documents.catalog_tables[kind]
        model = CATALOG[kind].model
        result = await session.execute(select(table.c.document))
        return [model.model_validate(document) for document in result.scalars()]

    async def _load_entity(
        self, session: AsyncSession, kind: EntityKind, id: str
    ) -> MasterEntity | None:
        table = documents.catalog_tables[kind]
        document = await session.scalar(select(table.c.document).where(table.c.id == id))
        if document is None:
            return None
        return CATALOG[kind].model.model_validate(document)

    async def _insert_entity(self, session: AsyncSession, kind: EntityKind, entity: MasterEntity) -> None:
        table = documents.catalog_tables[kind]
        await session.execute(insert(table).values(id=entity.id, **self._entity_row(entity)))

    async def _save_entity(self, session: AsyncSession, kind: EntityKind, entity: MasterEntity) -> None:
        table = documents.catalog_tables[kind]
        await session.execute(
            update(table).where(table.c.id == entity.id).values(**self._entity_row(entity))
        )

    async def _delete_entity(self, session: AsyncSession, kind: EntityKind, id: str) -> bool:
        table = documents.catalog_tables[kind]
        result = await session.execute(delete(table).where(table.c.id == id))
        return result.rowcount > 0

    async def _delete_all_entities(self, session: AsyncSession, kind: EntityKind) -> int:
        result = await session.execute(delete(documents.catalog_tables[kind]))
        return result.rowcount

    # Tours -------------------------------------------------------------

    async def _load_document(self, session: AsyncSession, tour_id: str) -> dict[str, Any] | None:
        table = documents.tours
        document = await session.scalar(select(table.c.document).where(table.c.id == tour_id))
        return None if document is None else dict(document)

    async def _write_document(self, session: AsyncSession, tour_id: str, document: dict[str, Any]) -> None:
        table = documents.tours
        await session.execute(update(table).where(table.c.id == tour_id).values(document=document))

    async def _load_tours(self, session: AsyncSession, include_details: bool) -> list[Tour]:
        result = await session.execute(select(documents.tours.c.document))
        tours = []
        for document in result.scalars():
            if not include_details:
                document = {**document, **{c.value: None for c in LineCollection}}
            tours.append(Tour.model_validate(document))
        return tours

    async def _load_tour(self, session: AsyncSession, id: str) -> Tour | None:
        document = await self._load_document(session, id)
        if document is None:
            return None
        # Older documents may lack a subcollection; treat it as empty
        for collection in LineCollection:
            document.setdefault(collection.value, [])
            if document[collection.value] is None:
                document[collection.value] = []
        return Tour.model_validate(document)

    async def _insert_tour(self, session: AsyncSession, tour: Tour) -> None:
        await session.execute(
            insert(documents.tours).values(
                id=tour.id,
                code_key=normalize(tour.tour_code),
                start_date=tour.start_date,
                document=tour.model_dump(mode="json"),
            )
        )

    async def _save_tour(self, session: AsyncSession, tour: Tour) -> None:
        table = documents.tours
        await session.execute(
            update(table)
            .where(table.c.id == tour.id)
            .values(
                code_key=normalize(tour.tour_code),
                start_date=tour.start_date,
                document=tour.model_dump(mode="json"),
            )
        )

    async def _delete_tour(self, session: AsyncSession, id: str) -> bool:
        result = await session.execute(delete(documents.tours).where(documents.tours.c.id == id))
        return result.rowcount > 0

    async def _delete_all_tours(self, session: AsyncSession) -> int:
        result = await session.execute(delete(documents.tours))
        return result.rowcount

    # Line items --------------------------------------------------------

    async def _insert_line_item(
        self, session: AsyncSession, tour_id: str, collection: LineCollection, item: LineItem
    ) -> None:
        document = await self._load_document(session, tour_id)
        items = list(document.get(collection.value) or [])
        items.append(item.model_dump(mode="json"))
        document[collection.value] = items
        await self._write_document(session, tour_id, document)

    async def _replace_line_item(
        self, session: AsyncSession, tour_id: str, collection: LineCollection, item: LineItem
    ) -> bool:
        document = await self._load_document(session, tour_id)
        if document is None:
            return False
        items = list(document.get(collection.value) or [])
        index = item_positions(items).get(item.id)
        if index is None:
            return False
        items[index] = item.model_dump(mode="json")
        document[collection.value] = items
        await self._write_document(session, tour_id, document)
        return True

    async def _delete_line_item(
        self, session: AsyncSession, tour_id: str, collection: LineCollection, item_id: str
    ) -> bool:
        document = await self._load_document(session, tour_id)
        if document is None:
            return False
        items = list(document.get(collection.value) or [])
        index = item_positions(items).get(item_id)
        if index is None:
            return False
        del items[index]
        document[collection.value] = items
        await self._write_document(session, tour_id, document)
        return True

    async def _store_summary(self, session: AsyncSession, tour_id: str, summary: TourSummary) -> None:
        document = await self._load_document(session, tour_id)
        document["summary"] = summary.model_dump(mode="json")
        document["updated_at"] = utcnow().isoformat()
        await self._write_document(session, tour_id, document)
