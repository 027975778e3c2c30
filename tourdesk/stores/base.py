"""Repository contract shared by every storage backend.

`DataStore` implements each public operation once, as a unit of work over an
`AsyncSession`:

1. Validate and trim the input (pydantic models)
2. Pre-check name / tour code uniqueness on the normalized key
3. Stamp ids, keywords, timestamps and derived tour fields
4. Call the backend's session-scoped primitives to read and write
5. Recompute and persist the tour summary after any line-item change

Backends only implement the primitives (the `_load_*`, `_insert_*`,
`_save_*`, `_delete_*` methods), so validation and summary rules cannot drift
between storage shapes.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from ..db import create_sessionmaker
from ..errors import DuplicateNameError, NotFoundError
from ..normalization import keyword_list, matches_search, normalize
from ..schemas import (
    CATALOG,
    LINE_ITEM_MODELS,
    SUMMARY_INPUTS,
    EntityKind,
    EntityRef,
    EntityStatus,
    LineCollection,
    LineItem,
    MasterEntity,
    SearchQuery,
    Tour,
    TourInput,
    TourQuery,
    TourSummary,
    TOUR_REFS,
    inclusive_days,
    new_id,
    utcnow,
)
from ..summary import calculate_summary, enrich_tour_with_summary, summary_inputs

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"

# Fields a patch may never overwrite
_IMMUTABLE_FIELDS = {"id", "created_at", "updated_at", "search_keywords"}
_TOUR_DERIVED_FIELDS = {
    "id", "created_at", "updated_at", "total_guests", "total_days",
    *(c.value for c in LineCollection),
}


def _as_dict(data: BaseModel | Mapping[str, Any], *, patch: bool = False) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=patch)
    return dict(data)


def _sort_key(entity: MasterEntity) -> tuple[str, str]:
    return normalize(entity.name), entity.name


def tour_matches(tour: Tour, query: TourQuery) -> bool:
    """Check a tour against the listing filters."""
    if query.search and query.search.strip():
        haystack = [normalize(tour.client_name), normalize(tour.company_ref.name_at_booking)]
        if not matches_search(tour.tour_code, haystack, query.search):
            return False
    if query.company_id and tour.company_ref.id != query.company_id:
        return False
    if query.guide_id and tour.guide_ref.id != query.guide_id:
        return False
    if query.nationality_id and tour.client_nationality_ref.id != query.nationality_id:
        return False
    # Date range keeps tours overlapping [start_date, end_date]
    if query.start_date and tour.end_date < query.start_date:
        return False
    if query.end_date and tour.start_date > query.end_date:
        return False
    return True


class DataStore(ABC):
    """Abstract repository over the eight catalog kinds and tours."""

    backend: str = "abstract"

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = create_sessionmaker(engine)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_schema(self) -> None:
        """Create the backend's tables if they are missing."""

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _unit_of_work(
        self, duplicate: tuple[str, str] | None = None
    ) -> AsyncIterator[AsyncSession]:
        """One session, one commit.

        Args:
            duplicate: (label, name) reported when the storage layer rejects a
                normalized key as already taken

        Raises:
            DuplicateNameError: On a unique-key violation of name_key/code_key
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                message = str(exc.orig)
                if duplicate and ("name_key" in message or "code_key" in message):
                    raise DuplicateNameError(*duplicate) from exc
                logger.error(f"{self.backend} store integrity error: {exc}", exc_info=True)
                raise
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(f"{self.backend} store failure: {exc}", exc_info=True)
                raise
            except Exception:
                await session.rollback()
                raise

    # ------------------------------------------------------------------
    # Backend primitives (session-scoped, no commit)
    # ------------------------------------------------------------------

    @abstractmethod
    async def _load_entities(self, session: AsyncSession, kind: EntityKind) -> list[MasterEntity]:
        ...

    @abstractmethod
    async def _load_entity(
        self, session: AsyncSession, kind: EntityKind, id: str
    ) -> MasterEntity | None:
        ...

    async def _name_taken(
        self, session: AsyncSession, kind: EntityKind, name_key: str, exclude_id: str | None = None
    ) -> bool:
        # Full scan; backends with an index on name_key override this
        return any(
            normalize(entity.name) == name_key and entity.id != exclude_id
            for entity in await self._load_entities(session, kind)
        )

    @abstractmethod
    async def _insert_entity(self, session: AsyncSession, kind: EntityKind, entity: MasterEntity) -> None:
        ...

    @abstractmethod
    async def _save_entity(self, session: AsyncSession, kind: EntityKind, entity: MasterEntity) -> None:
        ...

    @abstractmethod
    async def _delete_entity(self, session: AsyncSession, kind: EntityKind, id: str) -> bool:
        ...

    @abstractmethod
    async def _delete_all_entities(self, session: AsyncSession, kind: EntityKind) -> int:
        ...

    @abstractmethod
    async def _load_tours(self, session: AsyncSession, include_details: bool) -> list[Tour]:
        ...

    @abstractmethod
    async def _load_tour(self, session: AsyncSession, id: str) -> Tour | None:
        """Load one tour with every subcollection."""

    async def _tour_code_taken(
        self, session: AsyncSession, code_key: str, exclude_id: str | None = None
    ) -> bool:
        return any(
            normalize(tour.tour_code) == code_key and tour.id != exclude_id
            for tour in await self._load_tours(session, include_details=False)
        )

    @abstractmethod
    async def _insert_tour(self, session: AsyncSession, tour: Tour) -> None:
        """Insert a fully loaded tour, line items included."""

    @abstractmethod
    async def _save_tour(self, session: AsyncSession, tour: Tour) -> None:
        """Persist header fields and summary of a fully loaded tour."""

    @abstractmethod
    async def _delete_tour(self, session: AsyncSession, id: str) -> bool:
        ...

    @abstractmethod
    async def _delete_all_tours(self, session: AsyncSession) -> int:
        ...

    @abstractmethod
    async def _insert_line_item(
        self, session: AsyncSession, tour_id: str, collection: LineCollection, item: LineItem
    ) -> None:
        ...

    @abstractmethod
    async def _replace_line_item(
        self, session: AsyncSession, tour_id: str, collection: LineCollection, item: LineItem
    ) -> bool:
        ...

    @abstractmethod
    async def _delete_line_item(
        self, session: AsyncSession, tour_id: str, collection: LineCollection, item_id: str
    ) -> bool:
        ...

    @abstractmethod
    async def _store_summary(self, session: AsyncSession, tour_id: str, summary: TourSummary) -> None:
        """Persist a recomputed summary and bump the tour's updated_at."""

    # ------------------------------------------------------------------
    # Shared validation helpers
    # ------------------------------------------------------------------

    async def _check_name(
        self, session: AsyncSession, kind: EntityKind, name: str, exclude_id: str | None = None
    ) -> None:
        if await self._name_taken(session, kind, normalize(name), exclude_id):
            raise DuplicateNameError(CATALOG[kind].label, name)

    async def _check_tour_code(
        self, session: AsyncSession, tour_code: str, exclude_id: str | None = None
    ) -> None:
        if await self._tour_code_taken(session, normalize(tour_code), exclude_id):
            raise DuplicateNameError("Tour", tour_code)

    async def _materialize_ref(
        self, session: AsyncSession, ref: EntityRef, kind: EntityKind
    ) -> EntityRef:
        """Fill in `name_at_booking` from the referenced record.

        A snapshot that already carries a name is kept untouched.

        Raises:
            NotFoundError: If the ref points at an unknown record
        """
        if not ref.id:
            return ref
        entity = await self._load_entity(session, kind, ref.id)
        if entity is None:
            raise NotFoundError(CATALOG[kind].label, ref.id)
        if ref.name_at_booking:
            return ref
        return EntityRef(id=ref.id, name_at_booking=entity.name)

    async def _materialize_refs(
        self, session: AsyncSession, values: dict[str, Any], refs: Mapping[str, EntityKind]
    ) -> None:
        for field, ref_kind in refs.items():
            if field in values:
                ref = EntityRef.model_validate(values[field])
                values[field] = await self._materialize_ref(session, ref, ref_kind)

    async def _require_entity(
        self, session: AsyncSession, kind: EntityKind, id: str
    ) -> MasterEntity:
        entity = await self._load_entity(session, kind, id)
        if entity is None:
            raise NotFoundError(CATALOG[kind].label, id)
        return entity

    async def _require_tour(self, session: AsyncSession, id: str) -> Tour:
        tour = await self._load_tour(session, id)
        if tour is None:
            raise NotFoundError("Tour", id)
        return tour

    async def _refresh_summary(self, session: AsyncSession, tour_id: str) -> TourSummary:
        tour = await self._require_tour(session, tour_id)
        summary = calculate_summary(tour)
        await self._store_summary(session, tour_id, summary)
        return summary

    def _build_entity(self, kind: EntityKind, values: Mapping[str, Any]) -> MasterEntity:
        now = utcnow()
        kind_info = CATALOG[kind]
        return kind_info.model.model_validate({
            **values,
            "id": new_id(),
            "search_keywords": keyword_list(values["name"]),
            "created_at": now,
            "updated_at": now,
        })

    # ------------------------------------------------------------------
    # Catalog operations
    # ------------------------------------------------------------------

    async def list(
        self, kind: EntityKind | str, query: SearchQuery | Mapping[str, Any] | None = None
    ) -> list[MasterEntity]:
        """List catalog records sorted by name.

        Args:
            kind: Catalog kind
            query: Optional free-text search and status filter ('all' or None
                disables the status filter)
        """
        kind = EntityKind(kind)
        query = SearchQuery.model_validate(query or {})
        async with self._unit_of_work() as session:
            entities = await self._load_entities(session, kind)

        if query.status and query.status != "all":
            entities = [e for e in entities if e.status.value == query.status]
        entities = [e for e in entities if matches_search(e.name, e.search_keywords, query.search)]
        logger.debug(f"Listed {len(entities)} {kind.value}")
        return sorted(entities, key=_sort_key)

    async def get(self, kind: EntityKind | str, id: str) -> MasterEntity | None:
        kind = EntityKind(kind)
        async with self._unit_of_work() as session:
            return await self._load_entity(session, kind, id)

    async def create(
        self, kind: EntityKind | str, data: BaseModel | Mapping[str, Any]
    ) -> MasterEntity:
        """Create a catalog record.

        Raises:
            DuplicateNameError: If another record of the kind has the same normalized name
            NotFoundError: If a reference points at an unknown record
            pydantic.ValidationError: On invalid input (e.g. blank name)
        """
        kind = EntityKind(kind)
        kind_info = CATALOG[kind]
        values = kind_info.input_model.model_validate(_as_dict(data)).model_dump()

        async with self._unit_of_work(duplicate=(kind_info.label, values["name"])) as session:
            await self._check_name(session, kind, values["name"])
            await self._materialize_refs(session, values, kind_info.refs)
            entity = self._build_entity(kind, {**values, "status": EntityStatus.ACTIVE})
            await self._insert_entity(session, kind, entity)

        logger.info(f"Created {kind_info.label} {entity.id}: {entity.name}")
        return entity

    async def bulk_create(
        self, kind: EntityKind | str, items: list[BaseModel | Mapping[str, Any]]
    ) -> list[MasterEntity]:
        """Create several records at once; nothing is written if any name collides."""
        kind = EntityKind(kind)
        kind_info = CATALOG[kind]
        inputs = [kind_info.input_model.model_validate(_as_dict(item)).model_dump() for item in items]

        seen: set[str] = set()
        for values in inputs:
            key = normalize(values["name"])
            if key in seen:
                raise DuplicateNameError(kind_info.label, values["name"])
            seen.add(key)

        created: list[MasterEntity] = []
        async with self._unit_of_work() as session:
            for values in inputs:
                await self._check_name(session, kind, values["name"])
            for values in inputs:
                await self._materialize_refs(session, values, kind_info.refs)
                entity = self._build_entity(kind, {**values, "status": EntityStatus.ACTIVE})
                await self._insert_entity(session, kind, entity)
                created.append(entity)

        logger.info(f"Bulk created {len(created)} {kind.value}")
        return created

    async def update(
        self, kind: EntityKind | str, id: str, patch: BaseModel | Mapping[str, Any]
    ) -> None:
        """Apply a partial update; a new name is re-checked and re-indexed.

        Raises:
            NotFoundError: If the record does not exist
            DuplicateNameError: If the new name collides with another record
        """
        kind = EntityKind(kind)
        kind_info = CATALOG[kind]
        changes = {k: v for k, v in _as_dict(patch, patch=True).items() if k not in _IMMUTABLE_FIELDS}

        async with self._unit_of_work(duplicate=(kind_info.label, str(changes.get("name", "")))) as session:
            current = await self._require_entity(session, kind, id)
            values = {**current.model_dump(), **changes, "updated_at": utcnow()}
            entity = kind_info.model.model_validate(values)
            if "name" in changes:
                await self._check_name(session, kind, entity.name, exclude_id=id)
                entity.search_keywords = keyword_list(entity.name)
            refs = {field: ref_kind for field, ref_kind in kind_info.refs.items() if field in changes}
            for field, ref_kind in refs.items():
                setattr(entity, field, await self._materialize_ref(session, getattr(entity, field), ref_kind))
            await self._save_entity(session, kind, entity)

        logger.info(f"Updated {kind_info.label} {id}")

    async def toggle_status(self, kind: EntityKind | str, id: str) -> None:
        kind = EntityKind(kind)
        async with self._unit_of_work() as session:
            entity = await self._require_entity(session, kind, id)
            entity.status = (
                EntityStatus.INACTIVE if entity.status == EntityStatus.ACTIVE else EntityStatus.ACTIVE
            )
            entity.updated_at = utcnow()
            await self._save_entity(session, kind, entity)

        logger.info(f"{CATALOG[kind].label} {id} is now {entity.status.value}")

    async def duplicate(self, kind: EntityKind | str, id: str) -> MasterEntity:
        """Copy a record under the name "<name> (Copy)"; the copy starts active.

        Raises:
            NotFoundError: If the record does not exist
            DuplicateNameError: If the copy's name is already taken
        """
        kind = EntityKind(kind)
        kind_info = CATALOG[kind]
        async with self._unit_of_work() as session:
            source = await self._require_entity(session, kind, id)
            name = f"{source.name}{COPY_SUFFIX}"
            await self._check_name(session, kind, name)
            values = source.model_dump(exclude={"id", "status", "search_keywords", "created_at", "updated_at"})
            copy = self._build_entity(kind, {**values, "name": name, "status": EntityStatus.ACTIVE})
            await self._insert_entity(session, kind, copy)

        logger.info(f"Duplicated {kind_info.label} {id} as {copy.id}")
        return copy

    async def delete(self, kind: EntityKind | str, id: str) -> None:
        """Delete a record; soft-deleted kinds are flipped to inactive instead."""
        kind = EntityKind(kind)
        kind_info = CATALOG[kind]
        async with self._unit_of_work() as session:
            if kind_info.soft_delete:
                entity = await self._require_entity(session, kind, id)
                entity.status = EntityStatus.INACTIVE
                entity.updated_at = utcnow()
                await self._save_entity(session, kind, entity)
            elif not await self._delete_entity(session, kind, id):
                raise NotFoundError(kind_info.label, id)

        logger.info(f"Deleted {kind_info.label} {id}{' (soft)' if kind_info.soft_delete else ''}")

    async def delete_all(self, kind: EntityKind | str) -> int:
        kind = EntityKind(kind)
        async with self._unit_of_work() as session:
            count = await self._delete_all_entities(session, kind)
        logger.info(f"Deleted all {kind.value} ({count})")
        return count

    def repository(self, kind: EntityKind | str) -> CatalogRepository:
        return CatalogRepository(self, EntityKind(kind))

    @property
    def guides(self) -> CatalogRepository:
        return self.repository(EntityKind.GUIDE)

    @property
    def companies(self) -> CatalogRepository:
        return self.repository(EntityKind.COMPANY)

    @property
    def nationalities(self) -> CatalogRepository:
        return self.repository(EntityKind.NATIONALITY)

    @property
    def provinces(self) -> CatalogRepository:
        return self.repository(EntityKind.PROVINCE)

    @property
    def tourist_destinations(self) -> CatalogRepository:
        return self.repository(EntityKind.TOURIST_DESTINATION)

    @property
    def shoppings(self) -> CatalogRepository:
        return self.repository(EntityKind.SHOPPING)

    @property
    def expense_categories(self) -> CatalogRepository:
        return self.repository(EntityKind.EXPENSE_CATEGORY)

    @property
    def detailed_expenses(self) -> CatalogRepository:
        return self.repository(EntityKind.DETAILED_EXPENSE)

    # ------------------------------------------------------------------
    # Tours
    # ------------------------------------------------------------------

    async def list_tours(
        self,
        query: TourQuery | Mapping[str, Any] | None = None,
        *,
        include_details: bool = False,
    ) -> list[Tour]:
        """List tours, most recent start date first.

        Without details the subcollections are None and the persisted summary
        is returned as-is.
        """
        query = TourQuery.model_validate(query or {})
        async with self._unit_of_work() as session:
            tours = await self._load_tours(session, include_details)

        tours = [t for t in tours if tour_matches(t, query)]
        tours.sort(key=lambda t: (t.start_date, t.tour_code), reverse=True)
        end = None if query.limit is None else query.offset + query.limit
        tours = tours[query.offset:end]
        if include_details:
            tours = [enrich_tour_with_summary(t) for t in tours]
        return tours

    async def get_tour(self, id: str) -> Tour | None:
        async with self._unit_of_work() as session:
            tour = await self._load_tour(session, id)
        return None if tour is None else enrich_tour_with_summary(tour)

    async def create_tour(self, data: BaseModel | Mapping[str, Any]) -> Tour:
        """Create a tour with empty subcollections and a zeroed summary.

        total_guests and total_days are derived from the input; EntityRef
        snapshots without a name are completed from the referenced record.

        Raises:
            DuplicateNameError: If the tour code is already used
            NotFoundError: If a reference points at an unknown record
        """
        values = TourInput.model_validate(_as_dict(data)).model_dump()
        now = utcnow()

        async with self._unit_of_work(duplicate=("Tour", values["tour_code"])) as session:
            await self._check_tour_code(session, values["tour_code"])
            await self._materialize_refs(session, values, TOUR_REFS)
            tour = Tour.model_validate({
                **values,
                "id": new_id(),
                "total_guests": values["adults"] + values["children"],
                "total_days": inclusive_days(values["start_date"], values["end_date"]),
                **{c.value: [] for c in LineCollection},
                "summary": TourSummary(),
                "created_at": now,
                "updated_at": now,
            })
            await self._insert_tour(session, tour)

        logger.info(f"Created tour {tour.id}: {tour.tour_code}")
        return tour

    async def update_tour(self, id: str, patch: BaseModel | Mapping[str, Any]) -> None:
        """Apply a partial update to a tour's header fields.

        Derived fields and the summary are recomputed in the same unit of
        work. A `summary` entry in the patch only sets the user-entered
        inputs (advance payment, company tip, collections for company).

        Raises:
            NotFoundError: If the tour does not exist
            DuplicateNameError: If the new tour code is already used
        """
        changes = _as_dict(patch, patch=True)
        summary_patch = changes.pop("summary", None) or {}
        if isinstance(summary_patch, BaseModel):
            summary_patch = summary_patch.model_dump()
        changes = {k: v for k, v in changes.items() if k not in _TOUR_DERIVED_FIELDS}

        async with self._unit_of_work(duplicate=("Tour", str(changes.get("tour_code", "")))) as session:
            current = await self._require_tour(session, id)
            header = TourInput.model_validate({**current.model_dump(include=set(TourInput.model_fields)), **changes})
            if "tour_code" in changes:
                await self._check_tour_code(session, header.tour_code, exclude_id=id)

            values = header.model_dump()
            await self._materialize_refs(
                session, values, {f: k for f, k in TOUR_REFS.items() if f in changes}
            )
            inputs = summary_inputs(current.summary)
            inputs.update({k: float(v) for k, v in summary_patch.items() if k in SUMMARY_INPUTS and v is not None})

            tour = Tour.model_validate({
                **current.model_dump(),
                **values,
                "total_guests": header.adults + header.children,
                "total_days": inclusive_days(header.start_date, header.end_date),
                "summary": TourSummary(**inputs),
                "updated_at": utcnow(),
            })
            tour = tour.model_copy(update={"summary": calculate_summary(tour)})
            await self._save_tour(session, tour)

        logger.info(f"Updated tour {id}")

    async def duplicate_tour(self, id: str) -> Tour:
        """Copy a tour with its line items under a free "<code> (Copy N)" code."""
        async with self._unit_of_work() as session:
            source = await self._require_tour(session, id)
            code = f"{source.tour_code}{COPY_SUFFIX}"
            n = 2
            while await self._tour_code_taken(session, normalize(code)):
                code = f"{source.tour_code} (Copy {n})"
                n += 1

            now = utcnow()
            copy = source.model_copy(update={
                "id": new_id(),
                "tour_code": code,
                **{
                    c.value: [item.model_copy(update={"id": new_id()}) for item in getattr(source, c.value)]
                    for c in LineCollection
                },
                "created_at": now,
                "updated_at": now,
            })
            copy = copy.model_copy(update={"summary": calculate_summary(copy)})
            await self._insert_tour(session, copy)

        logger.info(f"Duplicated tour {id} as {copy.id} ({code})")
        return copy

    async def delete_tour(self, id: str) -> None:
        async with self._unit_of_work() as session:
            if not await self._delete_tour(session, id):
                raise NotFoundError("Tour", id)
        logger.info(f"Deleted tour {id}")

    # ------------------------------------------------------------------
    # Line items (addressed by stable id)
    # ------------------------------------------------------------------

    async def add_line_item(
        self, tour_id: str, collection: LineCollection | str, item: BaseModel | Mapping[str, Any]
    ) -> str:
        """Append a line item and return its new id."""
        collection = LineCollection(collection)
        model = LINE_ITEM_MODELS[collection]
        line = model.model_validate({**_as_dict(item), "id": new_id()})

        async with self._unit_of_work() as session:
            await self._require_tour(session, tour_id)
            await self._insert_line_item(session, tour_id, collection, line)
            await self._refresh_summary(session, tour_id)

        logger.debug(f"Added {collection.value} item {line.id} to tour {tour_id}")
        return line.id

    async def update_line_item(
        self,
        tour_id: str,
        collection: LineCollection | str,
        item_id: str,
        patch: BaseModel | Mapping[str, Any],
    ) -> None:
        """Merge `patch` into the line item `item_id` of the given tour.

        Raises:
            NotFoundError: If the tour or the item (within that tour) is missing
        """
        collection = LineCollection(collection)
        model = LINE_ITEM_MODELS[collection]
        changes = _as_dict(patch, patch=True)

        async with self._unit_of_work() as session:
            tour = await self._require_tour(session, tour_id)
            current = next((i for i in getattr(tour, collection.value) if i.id == item_id), None)
            if current is None:
                raise NotFoundError(f"Tour {collection.value} item", item_id)
            line = model.model_validate({**current.model_dump(), **changes, "id": item_id})
            if not await self._replace_line_item(session, tour_id, collection, line):
                raise NotFoundError(f"Tour {collection.value} item", item_id)
            await self._refresh_summary(session, tour_id)

    async def remove_line_item(self, tour_id: str, collection: LineCollection | str, item_id: str) -> None:
        collection = LineCollection(collection)
        async with self._unit_of_work() as session:
            await self._require_tour(session, tour_id)
            if not await self._delete_line_item(session, tour_id, collection, item_id):
                raise NotFoundError(f"Tour {collection.value} item", item_id)
            await self._refresh_summary(session, tour_id)

        logger.debug(f"Removed {collection.value} item {item_id} from tour {tour_id}")

    async def add_destination(self, tour_id: str, item: BaseModel | Mapping[str, Any]) -> str:
        return await self.add_line_item(tour_id, LineCollection.DESTINATIONS, item)

    async def update_destination(self, tour_id: str, item_id: str, patch: BaseModel | Mapping[str, Any]) -> None:
        await self.update_line_item(tour_id, LineCollection.DESTINATIONS, item_id, patch)

    async def remove_destination(self, tour_id: str, item_id: str) -> None:
        await self.remove_line_item(tour_id, LineCollection.DESTINATIONS, item_id)

    async def add_expense(self, tour_id: str, item: BaseModel | Mapping[str, Any]) -> str:
        return await self.add_line_item(tour_id, LineCollection.EXPENSES, item)

    async def update_expense(self, tour_id: str, item_id: str, patch: BaseModel | Mapping[str, Any]) -> None:
        await self.update_line_item(tour_id, LineCollection.EXPENSES, item_id, patch)

    async def remove_expense(self, tour_id: str, item_id: str) -> None:
        await self.remove_line_item(tour_id, LineCollection.EXPENSES, item_id)

    async def add_meal(self, tour_id: str, item: BaseModel | Mapping[str, Any]) -> str:
        return await self.add_line_item(tour_id, LineCollection.MEALS, item)

    async def update_meal(self, tour_id: str, item_id: str, patch: BaseModel | Mapping[str, Any]) -> None:
        await self.update_line_item(tour_id, LineCollection.MEALS, item_id, patch)

    async def remove_meal(self, tour_id: str, item_id: str) -> None:
        await self.remove_line_item(tour_id, LineCollection.MEALS, item_id)

    async def add_allowance(self, tour_id: str, item: BaseModel | Mapping[str, Any]) -> str:
        return await self.add_line_item(tour_id, LineCollection.ALLOWANCES, item)

    async def update_allowance(self, tour_id: str, item_id: str, patch: BaseModel | Mapping[str, Any]) -> None:
        await self.update_line_item(tour_id, LineCollection.ALLOWANCES, item_id, patch)

    async def remove_allowance(self, tour_id: str, item_id: str) -> None:
        await self.remove_line_item(tour_id, LineCollection.ALLOWANCES, item_id)

    async def add_shopping(self, tour_id: str, item: BaseModel | Mapping[str, Any]) -> str:
        return await self.add_line_item(tour_id, LineCollection.SHOPPINGS, item)

    async def update_shopping(self, tour_id: str, item_id: str, patch: BaseModel | Mapping[str, Any]) -> None:
        await self.update_line_item(tour_id, LineCollection.SHOPPINGS, item_id, patch)

    async def remove_shopping(self, tour_id: str, item_id: str) -> None:
        await self.remove_line_item(tour_id, LineCollection.SHOPPINGS, item_id)

    # ------------------------------------------------------------------
    # Whole-store operations
    # ------------------------------------------------------------------

    async def export_data(self) -> dict[str, list[dict[str, Any]]]:
        """Snapshot every catalog kind and every tour (with line items) as JSON-ready dicts."""
        snapshot: dict[str, list[dict[str, Any]]] = {}
        async with self._unit_of_work() as session:
            for kind in EntityKind:
                entities = sorted(await self._load_entities(session, kind), key=_sort_key)
                snapshot[kind.value] = [e.model_dump(mode="json") for e in entities]
            tours = await self._load_tours(session, include_details=True)
            snapshot["tours"] = [t.model_dump(mode="json") for t in tours]

        logger.info(
            f"Exported {sum(len(v) for k, v in snapshot.items() if k != 'tours')} catalog records "
            f"and {len(snapshot['tours'])} tours from {self.backend} store"
        )
        return snapshot

    async def import_data(self, snapshot: Mapping[str, Any]) -> dict[str, int]:
        """Load a snapshot produced by `export_data` into this store.

        Catalog kinds are created first, in dependency order, then tours.
        Every record gets a new id; EntityRef ids are remapped to the new
        records (refs to records missing from the snapshot are cleared, their
        name snapshot kept). The whole import is one unit of work: any error
        rolls everything back.

        Returns:
            Number of records imported per snapshot key
        """
        counts: dict[str, int] = {}
        id_map: dict[EntityKind, dict[str, str]] = {kind: {} for kind in EntityKind}

        def remap(ref: Any, kind: EntityKind) -> EntityRef:
            ref = EntityRef.model_validate(ref or {})
            return EntityRef(id=id_map[kind].get(ref.id, ""), name_at_booking=ref.name_at_booking)

        async with self._unit_of_work() as session:
            for kind in EntityKind:
                kind_info = CATALOG[kind]
                records = snapshot.get(kind.value) or []
                for record in records:
                    values = kind_info.input_model.model_validate(record).model_dump()
                    for field, ref_kind in kind_info.refs.items():
                        values[field] = remap(record.get(field), ref_kind)
                    await self._check_name(session, kind, values["name"])
                    entity = self._build_entity(
                        kind, {**values, "status": record.get("status", EntityStatus.ACTIVE)}
                    )
                    await self._insert_entity(session, kind, entity)
                    if record.get("id"):
                        id_map[kind][record["id"]] = entity.id
                counts[kind.value] = len(records)

            tours = snapshot.get("tours") or []
            for record in tours:
                values = TourInput.model_validate(record).model_dump()
                for field, ref_kind in TOUR_REFS.items():
                    values[field] = remap(record.get(field), ref_kind)
                await self._check_tour_code(session, values["tour_code"])
                now = utcnow()
                tour = Tour.model_validate({
                    **values,
                    "id": new_id(),
                    "total_guests": values["adults"] + values["children"],
                    "total_days": inclusive_days(values["start_date"], values["end_date"]),
                    **{
                        c.value: [{**item, "id": new_id()} for item in record.get(c.value) or []]
                        for c in LineCollection
                    },
                    "summary": TourSummary(**summary_inputs(record.get("summary"))),
                    "created_at": now,
                    "updated_at": now,
                })
                tour = tour.model_copy(update={"summary": calculate_summary(tour)})
                await self._insert_tour(session, tour)
            counts["tours"] = len(tours)

        logger.info(f"Imported snapshot into {self.backend} store: {counts}")
        return counts

    async def clear_all_data(self) -> None:
        """Remove every tour and catalog record."""
        async with self._unit_of_work() as session:
            await self._delete_all_tours(session)
            for kind in reversed(list(EntityKind)):
                await self._delete_all_entities(session, kind)
        logger.info(f"Cleared all data from {self.backend} store")


class CatalogRepository:
    """The repository contract bound to a single catalog kind.

    Usage:
        guide = await store.guides.create({"name": "Nguyễn Văn An"})
        await store.guides.toggle_status(guide.id)
    """

    def __init__(self, store: DataStore, kind: EntityKind) -> None:
        self.store = store
        self.kind = kind

    async def list(self, query: SearchQuery | Mapping[str, Any] | None = None) -> list[MasterEntity]:
        return await self.store.list(self.kind, query)

    async def get(self, id: str) -> MasterEntity | None:
        return await self.store.get(self.kind, id)

    async def create(self, data: BaseModel | Mapping[str, Any]) -> MasterEntity:
        return await self.store.create(self.kind, data)

    async def bulk_create(self, items: list[BaseModel | Mapping[str, Any]]) -> list[MasterEntity]:
        return await self.store.bulk_create(self.kind, items)

    async def update(self, id: str, patch: BaseModel | Mapping[str, Any]) -> None:
        await self.store.update(self.kind, id, patch)

    async def toggle_status(self, id: str) -> None:
        await self.store.toggle_status(self.kind, id)

    async def duplicate(self, id: str) -> MasterEntity:
        return await self.store.duplicate(self.kind, id)

    async def delete(self, id: str) -> None:
        await self.store.delete(self.kind, id)

    async def delete_all(self) -> int:
        return await self.store.delete_all(self.kind)
