"""Tables of the embedded document store.

Each record is kept whole in a JSON `document` column. Only the columns the
store filters or enforces on (normalized key, status, start date) are broken
out next to it.
"""

from __future__ import annotations

from sqlalchemy import JSON, Column, Date, MetaData, String, Table

from .schemas import EntityKind

metadata = MetaData()


def _catalog_table(kind: EntityKind) -> Table:
    return Table(
        kind.value,
        metadata,
        Column("id", String(32), primary_key=True),
        Column("name_key", String(255), nullable=False, unique=True),
        Column("status", String(16), nullable=False, index=True),
        Column("document", JSON, nullable=False),
    )


catalog_tables: dict[EntityKind, Table] = {kind: _catalog_table(kind) for kind in EntityKind}

# Line items live inside the document as arrays of objects, each with an `id`
tours = Table(
    "tours",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("code_key", String(100), nullable=False, unique=True),
    Column("start_date", Date, nullable=False, index=True),
    Column("document", JSON, nullable=False),
)
