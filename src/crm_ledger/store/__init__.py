"""Remote record store client and local cache."""

from .base import LocalRepository, RecordStore
from .local import LocalCache
from .remote import RemoteStore

__all__ = [
    "LocalCache",
    "LocalRepository",
    "RecordStore",
    "RemoteStore",
]
