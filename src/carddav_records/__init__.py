"""Bidirectional conversion between vCards and flat address book records."""
from __future__ import annotations

from .catalog import FieldCatalog, UnknownFieldError
from .convert import DataConverter
from .photo import DelayedPhotoLoader
from .store import SQLiteRowStore, StoreError

__all__ = [
    "DataConverter",
    "DelayedPhotoLoader",
    "FieldCatalog",
    "SQLiteRowStore",
    "StoreError",
    "UnknownFieldError",
]
