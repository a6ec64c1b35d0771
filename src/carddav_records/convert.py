"""Conversion between vCards and flat address book records.

A DataConverter is bound to one address book, because the custom labels
(X-ABLabel values) it knows about are specific to that address book.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, UTC
from typing import Any, Callable

import vobject

from . import props
from .catalog import IM_URI_SCHEMES, MULTI_PROPERTIES, SIMPLE_PROPERTIES, FieldCatalog
from .heuristics import compose_displayname, determine_showas
from .labels import LabelRegistry, prune_orphan_labels
from .model import ADDRESS_PARTS, ADDRESS_REQUIRED_ONE_OF, NAME_PARTS, Record
from .photo import DelayedPhotoLoader, PhotoCache, PhotoCollection
from .store import RowStore

logger = logging.getLogger(__name__)

REV_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_URI_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")
_DEPARTMENT_SEPARATOR = re.compile(r"\s*;\s*")


def timestamp() -> str:
    """Current UTC time as used for REV, e.g. 2020-11-12T16:18:41Z."""
    return datetime.now(UTC).strftime(REV_FORMAT)


def im_uri_scheme(subtype: str) -> str:
    if subtype in IM_URI_SCHEMES:
        return IM_URI_SCHEMES[subtype]
    if _URI_SCHEME.match(subtype):
        return subtype.lower()
    return "x-unknown"


# ── Structured value extractors (card → record) ───────────────────────────────

def _extract_address(prop: vobject.base.ContentLine) -> dict[str, str]:
    parts = props.structured_parts(prop)
    return {key: value for key, value in zip(ADDRESS_PARTS, parts) if value}


def _extract_impp(prop: vobject.base.ContentLine) -> str:
    # iCloud: IMPP;X-SERVICE-TYPE=aim;TYPE=HOME:aim:jdoe@example.com
    # Nextcloud: IMPP;TYPE=SKYPE:jdoe@example.com (no URI scheme)
    value = props.text_value(prop)
    scheme, sep, handle = value.partition(":")
    return handle if sep else scheme


EXTRACTORS: dict[str, Callable[[vobject.base.ContentLine], Any]] = {
    "ADR": _extract_address,
    "IMPP": _extract_impp,
}


# ── Property builders (record → card) ─────────────────────────────────────────

Builder = Callable[[vobject.base.Component, str, Any, str], "vobject.base.ContentLine | None"]


def _build_text(card: vobject.base.Component, name: str, value: Any, subtype: str):
    if not value or not isinstance(value, str):
        return None
    return props.add_property(card, name, value)


def _build_address(card: vobject.base.Component, name: str, value: Any, subtype: str):
    if not isinstance(value, dict):
        return None
    if not any(value.get(k) for k in ADDRESS_REQUIRED_ONE_OF):
        return None
    return props.add_property(card, name, props.make_address([value.get(k) or "" for k in ADDRESS_PARTS]))


def _build_url(card: vobject.base.Component, name: str, value: Any, subtype: str):
    if not value or not isinstance(value, str):
        return None
    return props.add_property(card, name, value, {"VALUE": ["URI"]})


def _build_impp(card: vobject.base.Component, name: str, value: Any, subtype: str):
    if not value or not isinstance(value, str):
        return None
    scheme = im_uri_scheme(subtype)
    return props.add_property(
        card, name, f"{scheme}:{value}",
        {"TYPE": [subtype], "X-SERVICE-TYPE": [subtype]},
    )


BUILDERS: dict[str, Builder] = {
    "ADR": _build_address,
    "URL": _build_url,
    "IMPP": _build_impp,
}


class DataConverter:
    """Converts vCards to records and back for one address book."""

    def __init__(self, abook_id: str, store: RowStore, cache: PhotoCache | None = None) -> None:
        self.abook_id = abook_id
        self.cache = cache
        self.catalog = FieldCatalog()
        self.labels = LabelRegistry(abook_id, store, self.catalog)

    def is_multivalue(self, field: str) -> bool:
        return self.catalog.is_multivalue(field)

    def coltypes(self) -> dict[str, dict]:
        return self.catalog.coltypes()

    # ── card → record ─────────────────────────────────────────────────────────

    def to_record(self, card: vobject.base.Component, collection: PhotoCollection | None = None) -> Record:
        """Create the record representation of a card.

        Missing or unreadable properties are skipped. The photo is not
        decoded here; the record gets a DelayedPhotoLoader instead.
        """
        record: Record = {"kind": "individual"}

        for vkey, key in SIMPLE_PROPERTIES.items():
            prop = props.first_property(card, vkey)
            if prop is None:
                continue
            if key == "photo":
                record["photo"] = DelayedPhotoLoader(card, collection, self.cache)
                continue
            value = props.text_value(prop)
            if value:
                record[key] = value

        prop = props.first_property(card, "N")
        if prop is not None:
            for key, value in zip(NAME_PARTS, props.structured_parts(prop)):
                if value:
                    record[key] = value

        prop = props.first_property(card, "ORG")
        if prop is not None:
            parts = props.structured_parts(prop)
            if parts and parts[0]:
                record["organization"] = parts[0]
            department = "; ".join(parts[1:])
            if department:
                record["department"] = department

        for vkey, mapped in MULTI_PROPERTIES.items():
            field, _, fixed_label = mapped.partition(":")
            extract = EXTRACTORS.get(vkey, props.text_value)
            for prop in props.properties(card, vkey):
                label = fixed_label or self.labels.resolve(card, prop, field)
                value = extract(prop)
                existing = record.setdefault(f"{field}:{label}", [])
                if value and value not in existing:
                    existing.append(value)
                if not existing:
                    del record[f"{field}:{label}"]

        if not record.get("name"):
            record["name"] = compose_displayname(record)

        return record

    # ── record → card ─────────────────────────────────────────────────────────

    def from_record(self, record: Record, card: vobject.base.Component | None = None) -> vobject.base.Component:
        """Create a new card, or update the given one in place, from a record.

        Multi-value properties are rebuilt from scratch, so of several TYPE
        values on one property only the one selected in the record survives.
        """
        record = dict(record)
        is_group = record.get("kind") == "group"

        if not record.get("name"):
            if not is_group:
                record["showas"] = determine_showas(record)
            record["name"] = compose_displayname(record)

        if card is None:
            card = vobject.vCard()
            props.add_property(card, "VERSION", "3.0")

        props.set_single(card, "REV", timestamp())

        if is_group:
            name_parts = [record["name"], "", "", "", ""]
        else:
            name_parts = [record.get(k) or "" for k in NAME_PARTS]
        props.set_single(card, "N", props.make_name(name_parts))

        self._set_org(record, card)
        self._set_single_values(record, card)
        self._set_multi_values(record, card)
        logger.debug("built card for %r", record["name"])
        return card

    def _set_org(self, record: Record, card: vobject.base.Component) -> None:
        parts: list[str] = []
        if record.get("organization"):
            parts.append(record["organization"])

        department = record.get("department")
        if department and isinstance(department, str):
            # keep an explicit empty organization, otherwise the department
            # would be read back as the organization
            if not parts:
                parts.append("")
            departments = _DEPARTMENT_SEPARATOR.split(department)
            while departments and not departments[-1]:
                departments.pop()
            parts.extend(departments)

        if parts:
            props.set_single(card, "ORG", parts)
        else:
            props.remove_all(card, "ORG")

    def _set_single_values(self, record: Record, card: vobject.base.Component) -> None:
        # A photo key is only present if the photo was edited; an empty value
        # means it was deleted, a missing key means it is unchanged. A loader
        # handed back from to_record also means unchanged.
        for vkey, key in SIMPLE_PROPERTIES.items():
            value = record.get(key)
            if isinstance(value, DelayedPhotoLoader):
                if value.card is card:
                    continue
                value = value.load()
                if not value:
                    continue

            if not value:
                if key != "photo" or key in record:
                    props.remove_all(card, vkey)
                continue

            if key == "photo":
                if isinstance(value, str):
                    value = value.encode("utf-8")
                props.remove_all(card, vkey)
                props.add_property(card, vkey, value, {"ENCODING": ["b"], "VALUE": ["binary"]})
            else:
                props.set_single(card, vkey, str(value))

    def _set_multi_values(self, record: Record, card: vobject.base.Component) -> None:
        # There is no reliable way to match an existing property to an entry
        # of the record, as subtypes may have changed: drop and recreate.
        for vkey in MULTI_PROPERTIES:
            props.remove_all(card, vkey)
        prune_orphan_labels(card)

        for vkey, mapped in MULTI_PROPERTIES.items():
            field, _, fixed_label = mapped.partition(":")
            if fixed_label:
                subtypes = [fixed_label] if f"{field}:{fixed_label}" in record else []
            else:
                prefix = f"{field}:"
                subtypes = [k[len(prefix):] for k in record if k.startswith(prefix)]

            build = BUILDERS.get(vkey, _build_text)
            for subtype in subtypes:
                values = record[f"{field}:{subtype}"]
                if isinstance(values, (str, dict)):
                    values = [values]
                for value in values or []:
                    prop = build(card, vkey, value, subtype)
                    if prop is not None and not fixed_label:
                        self.labels.assign(card, prop, field, subtype or "other")
