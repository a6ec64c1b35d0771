"""Deferred retrieval of contact photos.

Converting a card must not download or decode its photo. Instead the record
gets a DelayedPhotoLoader that fetches the data the first time somebody asks
for it. Photos referenced by URI are downloaded through the address book
collection and kept in the cache, keyed by URI.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from typing import Any, Protocol

import vobject

from . import props

logger = logging.getLogger(__name__)


class PhotoCollection(Protocol):
    def download_resource(self, uri: str) -> bytes: ...


class PhotoCache(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: bytes) -> Any: ...


def _cache_key(uri: str) -> str:
    return "photo_" + hashlib.sha1(uri.encode("utf-8")).hexdigest()


def _is_uri(prop: vobject.base.ContentLine, value: str) -> bool:
    if any(v.lower() == "uri" for v in props.param_values(prop, "VALUE")):
        return True
    return value.lower().startswith(("http://", "https://"))


def _decode_data_uri(value: str) -> bytes | None:
    # data:image/jpeg;base64,/9j/4AAQ...
    header, sep, data = value.partition(",")
    if not sep or not header.lower().endswith(";base64"):
        return None
    try:
        return base64.b64decode(data)
    except binascii.Error:
        return None


class DelayedPhotoLoader:
    """Resolves the PHOTO of a card on first use, at most once."""

    def __init__(
        self,
        card: vobject.base.Component,
        collection: PhotoCollection | None = None,
        cache: PhotoCache | None = None,
    ) -> None:
        self.card = card
        self.collection = collection
        self.cache = cache
        self._data: bytes | None = None

    @property
    def loaded(self) -> bool:
        return self._data is not None

    def load(self) -> bytes:
        if self._data is None:
            self._data = self._compute()
        return self._data

    def __bytes__(self) -> bytes:
        return self.load()

    def __repr__(self) -> str:
        state = f"{len(self._data)} bytes" if self._data is not None else "pending"
        return f"<DelayedPhotoLoader {state}>"

    def _compute(self) -> bytes:
        prop = props.first_property(self.card, "PHOTO")
        if prop is None:
            return b""

        value = prop.value
        if isinstance(value, bytes):
            return value
        if not isinstance(value, str) or not value:
            return b""

        if value.lower().startswith("data:"):
            return _decode_data_uri(value) or b""
        if _is_uri(prop, value):
            return self._download(value)
        return value.encode("utf-8")

    def _download(self, uri: str) -> bytes:
        key = _cache_key(uri)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached:
                logger.debug("photo %s served from cache", uri)
                return cached

        if self.collection is None:
            logger.warning("cannot download photo %s: no address book collection given", uri)
            return b""

        try:
            data = self.collection.download_resource(uri)
        except Exception as e:
            # a broken photo link must not make the contact unreadable
            logger.warning("failed to download photo %s: %s", uri, e)
            return b""

        logger.debug("downloaded photo %s (%d bytes)", uri, len(data))
        if self.cache is not None and data:
            self.cache.set(key, data)
        return data
