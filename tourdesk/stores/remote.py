"""Remote relational backend.

Catalog kinds map to one table each; a tour is a parent row plus child rows in
`tour_destinations`, `tour_expenses`, `tour_meals`, `tour_allowances` and
`tour_shoppings`. Child rows are addressed by their own id, always scoped by
`tour_id`. References are foreign keys next to a `*_name_at_booking` column,
so the EntityRef snapshot survives a rename of the referenced record.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .. import models
from ..config import RemoteStoreSettings
from ..db import create_engine
from ..errors import BackendUnavailableError
from ..normalization import normalize
from ..schemas import (
    CATALOG,
    TOUR_REFS,
    EntityKind,
    EntityRef,
    LineCollection,
    LineItem,
    MasterEntity,
    Tour,
    TourSummary,
    utcnow,
)
from .base import DataStore

logger = logging.getLogger(__name__)

CATALOG_MODELS: dict[EntityKind, type[models.Base]] = {
    EntityKind.GUIDE: models.Guide,
    EntityKind.COMPANY: models.Company,
    EntityKind.NATIONALITY: models.Nationality,
    EntityKind.PROVINCE: models.Province,
    EntityKind.TOURIST_DESTINATION: models.TouristDestination,
    EntityKind.SHOPPING: models.Shopping,
    EntityKind.EXPENSE_CATEGORY: models.ExpenseCategory,
    EntityKind.DETAILED_EXPENSE: models.DetailedExpense,
}

LINE_ITEM_TABLES: dict[LineCollection, type[models.Base]] = {
    LineCollection.DESTINATIONS: models.TourDestination,
    LineCollection.EXPENSES: models.TourExpense,
    LineCollection.MEALS: models.TourMeal,
    LineCollection.ALLOWANCES: models.TourAllowance,
    LineCollection.SHOPPINGS: models.TourShopping,
}

# EntityRef field -> column prefix (<prefix>_id, <prefix>_name_at_booking)
REF_COLUMNS = {
    "province_ref": "province",
    "category_ref": "category",
    "company_ref": "company",
    "guide_ref": "guide",
    "client_nationality_ref": "nationality",
}

SUMMARY_FIELDS = tuple(TourSummary.model_fields)


def _columns(row: models.Base) -> dict[str, Any]:
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}


def _read_ref(values: dict[str, Any], field: str) -> EntityRef:
    prefix = REF_COLUMNS[field]
    return EntityRef(
        id=values.pop(f"{prefix}_id") or "",
        name_at_booking=values.pop(f"{prefix}_name_at_booking") or "",
    )


def _write_ref(values: dict[str, Any], field: str) -> None:
    prefix = REF_COLUMNS[field]
    ref = EntityRef.model_validate(values.pop(field))
    # Empty ids are stored as NULL so the foreign key is not checked
    values[f"{prefix}_id"] = ref.id or None
    values[f"{prefix}_name_at_booking"] = ref.name_at_booking


class RemoteStore(DataStore):
    """Repository backed by normalized relational tables."""

    backend = "remote"

    @classmethod
    def from_settings(cls, config: RemoteStoreSettings) -> RemoteStore:
        """Build the store from settings.

        Raises:
            BackendUnavailableError: If the URL is missing or the engine cannot
                be created (bad URL, missing driver)
        """
        if not config.configured:
            raise BackendUnavailableError("No remote database URL configured")
        try:
            engine = create_engine(
                config.url,
                echo=config.echo,
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
            )
        except (SQLAlchemyError, ImportError, ValueError) as exc:
            raise BackendUnavailableError(f"Cannot create remote engine: {exc}") from exc
        logger.info(f"Using remote database {engine.url.render_as_string(hide_password=True)}")
        return cls(engine)

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(models.Base.metadata.create_all)
        logger.info("Remote tables ready")

    # Catalog -----------------------------------------------------------

    def _to_entity(self, kind: EntityKind, row: models.Base) -> MasterEntity:
        kind_info = CATALOG[kind]
        values = _columns(row)
        for field in kind_info.refs:
            values[field] = _read_ref(values, field)
        return kind_info.model.model_validate(values)

    def _entity_values(self, kind: EntityKind, entity: MasterEntity) -> dict[str, Any]:
        values = entity.model_dump()
        values["status"] = entity.status.value
        values["name_key"] = normalize(entity.name)
        for field in CATALOG[kind].refs:
            _write_ref(values, field)
        return values

    async def _load_entities(self, session: AsyncSession, kind: EntityKind) -> list[MasterEntity]:
        model = CATALOG_MODELS[kind]
        result = await session.execute(select(model))
        return [self._to_entity(kind, row) for row in result.scalars()]

    async def _load_entity(
        self, session: AsyncSession, kind: EntityKind, id: str
    ) -> MasterEntity | None:
        row = await session.get(CATALOG_MODELS[kind], id)
        return None if row is None else self._to_entity(kind, row)

    async def _name_taken(
        self, session: AsyncSession, kind: EntityKind, name_key: str, exclude_id: str | None = None
    ) -> bool:
        model = CATALOG_MODELS[kind]
        query = select(model.id).where(model.name_key == name_key)
        if exclude_id:
            query = query.where(model.id != exclude_id)
        return await session.scalar(query.limit(1)) is not None

    async def _insert_entity(self, session: AsyncSession, kind: EntityKind, entity: MasterEntity) -> None:
        session.add(CATALOG_MODELS[kind](**self._entity_values(kind, entity)))
        await session.flush()

    async def _save_entity(self, session: AsyncSession, kind: EntityKind, entity: MasterEntity) -> None:
        model = CATALOG_MODELS[kind]
        values = self._entity_values(kind, entity)
        values.pop("id")
        await session.execute(update(model).where(model.id == entity.id).values(**values))

    async def _delete_entity(self, session: AsyncSession, kind: EntityKind, id: str) -> bool:
        model = CATALOG_MODELS[kind]
        result = await session.execute(delete(model).where(model.id == id))
        return result.rowcount > 0

    async def _delete_all_entities(self, session: AsyncSession, kind: EntityKind) -> int:
        result = await session.execute(delete(CATALOG_MODELS[kind]))
        return result.rowcount

    # Tours -------------------------------------------------------------

    def _to_tour(self, row: models.Tour, include_details: bool) -> Tour:
        values = _columns(row)
        values.pop("code_key")
        for field in TOUR_REFS:
            values[field] = _read_ref(values, field)
        values["summary"] = TourSummary(**{key: values.pop(key) for key in SUMMARY_FIELDS})
        for collection in LineCollection:
            if include_details:
                values[collection.value] = [
                    {k: v for k, v in _columns(child).items() if k not in ("tour_id", "position")}
                    for child in getattr(row, collection.value)
                ]
            else:
                values[collection.value] = None
        return Tour.model_validate(values)

    def _tour_values(self, tour: Tour) -> dict[str, Any]:
        values = tour.model_dump(exclude={"summary", *(c.value for c in LineCollection)})
        values["code_key"] = normalize(tour.tour_code)
        for field in TOUR_REFS:
            _write_ref(values, field)
        values.update(tour.summary.model_dump())
        return values

    def _tour_query(self, include_details: bool):
        query = select(models.Tour).execution_options(populate_existing=True)
        if include_details:
            query = query.options(
                *(selectinload(getattr(models.Tour, c.value)) for c in LineCollection)
            )
        return query

    async def _load_tours(self, session: AsyncSession, include_details: bool) -> list[Tour]:
        result = await session.execute(self._tour_query(include_details))
        return [self._to_tour(row, include_details) for row in result.scalars()]

    async def _load_tour(self, session: AsyncSession, id: str) -> Tour | None:
        result = await session.execute(self._tour_query(True).where(models.Tour.id == id))
        row = result.scalar_one_or_none()
        return None if row is None else self._to_tour(row, True)

    async def _tour_code_taken(
        self, session: AsyncSession, code_key: str, exclude_id: str | None = None
    ) -> bool:
        query = select(models.Tour.id).where(models.Tour.code_key == code_key)
        if exclude_id:
            query = query.where(models.Tour.id != exclude_id)
        return await session.scalar(query.limit(1)) is not None

    async def _insert_tour(self, session: AsyncSession, tour: Tour) -> None:
        row = models.Tour(**self._tour_values(tour))
        for collection, child_model in LINE_ITEM_TABLES.items():
            children = [
                child_model(position=position, **item.model_dump())
                for position, item in enumerate(getattr(tour, collection.value) or [])
            ]
            setattr(row, collection.value, children)
        session.add(row)
        await session.flush()

    async def _save_tour(self, session: AsyncSession, tour: Tour) -> None:
        values = self._tour_values(tour)
        values.pop("id")
        values.pop("created_at")
        await session.execute(update(models.Tour).where(models.Tour.id == tour.id).values(**values))

    async def _delete_tour(self, session: AsyncSession, id: str) -> bool:
        # Child rows go with the parent through ON DELETE CASCADE
        result = await session.execute(delete(models.Tour).where(models.Tour.id == id))
        return result.rowcount > 0

    async def _delete_all_tours(self, session: AsyncSession) -> int:
        for child_model in LINE_ITEM_TABLES.values():
            await session.execute(delete(child_model))
        result = await session.execute(delete(models.Tour))
        return result.rowcount

    # Line items --------------------------------------------------------

    async def _insert_line_item(
        self, session: AsyncSession, tour_id: str, collection: LineCollection, item: LineItem
    ) -> None:
        child_model = LINE_ITEM_TABLES[collection]
        last = await session.scalar(
            select(func.max(child_model.position)).where(child_model.tour_id == tour_id)
        )
        position = 0 if last is None else last + 1
        session.add(child_model(tour_id=tour_id, position=position, **item.model_dump()))
        await session.flush()

    async def _replace_line_item(
        self, session: AsyncSession, tour_id: str, collection: LineCollection, item: LineItem
    ) -> bool:
        child_model = LINE_ITEM_TABLES[collection]
        values = item.model_dump(exclude={"id"})
        result = await session.execute(
            update(child_model)
            .where(child_model.id == item.id, child_model.tour_id == tour_id)
            .values(**values)
        )
        return result.rowcount > 0

    async def _delete_line_item(
        self, session: AsyncSession, tour_id: str, collection: LineCollection, item_id: str
    ) -> bool:
        child_model = LINE_ITEM_TABLES[collection]
        result = await session.execute(
            delete(child_model).where(child_model.id == item_id, child_model.tour_id == tour_id)
        )
        return result.rowcount > 0

    async def _store_summary(self, session: AsyncSession, tour_id: str, summary: TourSummary) -> None:
        await session.execute(
            update(models.Tour)
            .where(models.Tour.id == tour_id)
            .values(**summary.model_dump(), updated_at=utcnow())
        )
