"""Storage backends implementing the repository contract.

`LocalStore` keeps each record as a JSON document in an embedded SQLite file;
`RemoteStore` keeps normalized rows in a relational database. Use
`create_store` / `get_store` to obtain the backend chosen for this process.
"""

from .base import CatalogRepository, DataStore
from .local import LocalStore
from .remote import RemoteStore
from .selector import create_store, get_store, reset_store

__all__ = [
    "CatalogRepository",
    "DataStore",
    "LocalStore",
    "RemoteStore",
    "create_store",
    "get_store",
    "reset_store",
]
