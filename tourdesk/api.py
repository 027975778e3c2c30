"""FastAPI adapter over the repository contract.

The store is chosen at startup (or supplied by the caller of `create_app`)
and injected into every endpoint; domain errors map to HTTP status codes in
the exception handlers below.
"""
from __future__ import annotations

import datetime as dt
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Literal

from fastapi import Body, Depends, FastAPI, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .config import settings
from .errors import DuplicateNameError, IncompleteTourError, NotFoundError
from .logging_config import setup_logging
from .schemas import EntityKind, LineCollection, MasterEntity, SearchQuery, Tour, TourQuery
from .stores import DataStore, get_store

logger = logging.getLogger(__name__)


# Pydantic response models
class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    backend: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: str | None = None


class LineItemCreated(BaseModel):
    id: str


def get_data_store(request: Request) -> DataStore:
    """Store selected for this app (dependency)."""
    return request.app.state.store


def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=str(exc)).model_dump(),
    )


def create_app(store_factory: Callable[[], DataStore] | None = None) -> FastAPI:
    """Build the application.

    Args:
        store_factory: Returns the store to serve; defaults to the process-wide
            `get_store()` selection
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup/shutdown logic."""
        # Startup
        setup_logging()
        store = (store_factory or get_store)()
        await store.create_schema()
        app.state.store = store
        logger.info(f"Application starting up with {store.backend} backend")

        yield

        # Shutdown
        logger.info("Application shutting down")
        await store.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        description="Tour operator back office: catalogs, tours and settlement summaries",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],  # Frontend URLs
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(DuplicateNameError)
    async def duplicate_name_handler(request, exc: DuplicateNameError):
        logger.info(f"Duplicate name rejected: {exc}")
        return _error(status.HTTP_409_CONFLICT, "duplicate_name", exc)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request, exc: NotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, "not_found", exc)

    @app.exception_handler(IncompleteTourError)
    async def incomplete_tour_handler(request, exc: IncompleteTourError):
        logger.error(f"Summary requested for incomplete tour: {exc}")
        return _error(status.HTTP_409_CONFLICT, "incomplete_tour", exc)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request, exc: ValidationError):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error", exc)

    @app.get("/health", response_model=HealthResponse)
    async def health(store: DataStore = Depends(get_data_store)) -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="ok", version=settings.version, backend=store.backend)

    # Catalogs ---------------------------------------------------------

    @app.get("/catalog/{kind}")
    async def list_entities(
        kind: EntityKind,
        search: str | None = None,
        status_filter: Literal["active", "inactive", "all"] | None = Query(default=None, alias="status"),
        store: DataStore = Depends(get_data_store),
    ) -> list[dict[str, Any]]:
        entities = await store.list(kind, SearchQuery(search=search, status=status_filter))
        return [e.model_dump(mode="json") for e in entities]

    @app.get("/catalog/{kind}/{id}")
    async def get_entity(
        kind: EntityKind, id: str, store: DataStore = Depends(get_data_store)
    ) -> dict[str, Any]:
        entity = await store.get(kind, id)
        if entity is None:
            raise NotFoundError(kind.value, id)
        return entity.model_dump(mode="json")

    @app.post("/catalog/{kind}", status_code=status.HTTP_201_CREATED)
    async def create_entity(
        kind: EntityKind,
        data: dict[str, Any] = Body(...),
        store: DataStore = Depends(get_data_store),
    ) -> dict[str, Any]:
        entity: MasterEntity = await store.create(kind, data)
        return entity.model_dump(mode="json")

    @app.patch("/catalog/{kind}/{id}", status_code=status.HTTP_204_NO_CONTENT)
    async def update_entity(
        kind: EntityKind,
        id: str,
        patch: dict[str, Any] = Body(...),
        store: DataStore = Depends(get_data_store),
    ) -> Response:
        await store.update(kind, id, patch)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/catalog/{kind}/{id}/toggle-status", status_code=status.HTTP_204_NO_CONTENT)
    async def toggle_entity_status(
        kind: EntityKind, id: str, store: DataStore = Depends(get_data_store)
    ) -> Response:
        await store.toggle_status(kind, id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/catalog/{kind}/{id}/duplicate", status_code=status.HTTP_201_CREATED)
    async def duplicate_entity(
        kind: EntityKind, id: str, store: DataStore = Depends(get_data_store)
    ) -> dict[str, Any]:
        entity = await store.duplicate(kind, id)
        return entity.model_dump(mode="json")

    @app.delete("/catalog/{kind}/{id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_entity(
        kind: EntityKind, id: str, store: DataStore = Depends(get_data_store)
    ) -> Response:
        await store.delete(kind, id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Tours ------------------------------------------------------------

    @app.get("/tours")
    async def list_tours(
        search: str | None = None,
        company_id: str | None = None,
        guide_id: str | None = None,
        nationality_id: str | None = None,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        limit: int | None = Query(default=None, ge=0),
        offset: int = Query(default=0, ge=0),
        include_details: bool = False,
        store: DataStore = Depends(get_data_store),
    ) -> list[dict[str, Any]]:
        query = TourQuery(
            search=search,
            company_id=company_id,
            guide_id=guide_id,
            nationality_id=nationality_id,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )
        tours = await store.list_tours(query, include_details=include_details)
        return [t.model_dump(mode="json") for t in tours]

    @app.get("/tours/{id}")
    async def get_tour(id: str, store: DataStore = Depends(get_data_store)) -> dict[str, Any]:
        tour = await store.get_tour(id)
        if tour is None:
            raise NotFoundError("Tour", id)
        return tour.model_dump(mode="json")

    @app.post("/tours", status_code=status.HTTP_201_CREATED)
    async def create_tour(
        data: dict[str, Any] = Body(...), store: DataStore = Depends(get_data_store)
    ) -> dict[str, Any]:
        tour: Tour = await store.create_tour(data)
        return tour.model_dump(mode="json")

    @app.patch("/tours/{id}", status_code=status.HTTP_204_NO_CONTENT)
    async def update_tour(
        id: str, patch: dict[str, Any] = Body(...), store: DataStore = Depends(get_data_store)
    ) -> Response:
        await store.update_tour(id, patch)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/tours/{id}/duplicate", status_code=status.HTTP_201_CREATED)
    async def duplicate_tour(id: str, store: DataStore = Depends(get_data_store)) -> dict[str, Any]:
        tour = await store.duplicate_tour(id)
        return tour.model_dump(mode="json")

    @app.delete("/tours/{id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_tour(id: str, store: DataStore = Depends(get_data_store)) -> Response:
        await store.delete_tour(id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post(
        "/tours/{id}/{collection}",
        response_model=LineItemCreated,
        status_code=status.HTTP_201_CREATED,
    )
    async def add_line_item(
        id: str,
        collection: LineCollection,
        item: dict[str, Any] = Body(...),
        store: DataStore = Depends(get_data_store),
    ) -> LineItemCreated:
        return LineItemCreated(id=await store.add_line_item(id, collection, item))

    @app.patch("/tours/{id}/{collection}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def update_line_item(
        id: str,
        collection: LineCollection,
        item_id: str,
        patch: dict[str, Any] = Body(...),
        store: DataStore = Depends(get_data_store),
    ) -> Response:
        await store.update_line_item(id, collection, item_id, patch)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.delete("/tours/{id}/{collection}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def remove_line_item(
        id: str,
        collection: LineCollection,
        item_id: str,
        store: DataStore = Depends(get_data_store),
    ) -> Response:
        await store.remove_line_item(id, collection, item_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Whole-store data -------------------------------------------------

    @app.get("/data/export")
    async def export_data(store: DataStore = Depends(get_data_store)) -> dict[str, Any]:
        return await store.export_data()

    @app.post("/data/import")
    async def import_data(
        snapshot: dict[str, Any] = Body(...), store: DataStore = Depends(get_data_store)
    ) -> dict[str, int]:
        return await store.import_data(snapshot)

    @app.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
    async def clear_all_data(store: DataStore = Depends(get_data_store)) -> Response:
        await store.clear_all_data()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


app = create_app()
