"""Subtype labels of multi-value properties.

A vCard property may carry several TYPE parameters and, through Apple's
X-ABLabel extension, a free-form label shared via a property group:

    item1.EMAIL:jdoe@example.com
    item1.X-ABLabel:_$!<Custom>!$_

A record can only hold one subtype per value, so reading picks a single label
and writing emits exactly one. Labels outside the standard vocabulary are
remembered per address book in the row store.
"""
from __future__ import annotations

import logging
import re
import threading
from collections import defaultdict
from typing import Callable

import vobject

from . import props
from .catalog import FieldCatalog
from .store import RowStore

logger = logging.getLogger(__name__)

LABEL_PROPERTY = "X-ABLABEL"
DEFAULT_LABEL = "other"

_APPLE_LABEL = re.compile(r"_\$!<(.*)>!\$_")

# Registry writes for one address book are serialized across converter
# instances so the same label is never persisted twice.
_abook_locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
_abook_locks_guard = threading.Lock()


def _lock_for(abook_id: str) -> threading.Lock:
    with _abook_locks_guard:
        return _abook_locks[abook_id]


# ── Property groups ───────────────────────────────────────────────────────────

def property_groups(card: vobject.base.Component) -> set[str]:
    """All property groups used in a card, upper-cased."""
    return {props.group_of(p) for p in card.getChildren() if props.group_of(p)}


def next_free_group(card: vobject.base.Component) -> str:
    used = property_groups(card)
    n = 1
    while f"ITEM{n}" in used:
        n += 1
    return f"ITEM{n}"


def prune_orphan_labels(card: vobject.base.Component) -> int:
    """Remove X-ABLabel properties whose group has no other member.

    An ungrouped X-ABLabel is not considered orphaned.
    """
    used: set[str] = set()
    labels = []
    for p in card.getChildren():
        group = props.group_of(p)
        if not group:
            continue
        if p.name.upper() == LABEL_PROPERTY:
            labels.append(p)
        else:
            used.add(group)

    removed = 0
    for p in labels:
        if props.group_of(p) not in used:
            props.remove_property(card, p)
            removed += 1
    if removed:
        logger.debug("pruned %d orphaned label propert(y/ies)", removed)
    return removed


# ── Registry ──────────────────────────────────────────────────────────────────

class LabelRegistry:
    """Custom labels of one address book, plus label resolution and assignment."""

    TABLE = "xsubtypes"

    def __init__(self, abook_id: str, store: RowStore, catalog: FieldCatalog) -> None:
        self.abook_id = abook_id
        self.store = store
        self.catalog = catalog
        self._overrides: dict[str, Callable[[vobject.base.Component, vobject.base.ContentLine], str | None]] = {
            "IMPP": self._impp_label,
        }
        self._load()

    def _load(self) -> None:
        rows = self.store.get({"abook_id": self.abook_id}, ("typename", "subtype"), self.TABLE)
        for row in rows:
            self.catalog.add_custom(row["typename"], row["subtype"])
        logger.debug("loaded %d custom label(s) for address book %s", len(rows), self.abook_id)

    def is_custom(self, field: str, label: str) -> bool:
        return self.catalog.is_custom(field, label)

    def register(self, field: str, label: str) -> bool:
        """Remember a new custom label. Returns False if the label was already known."""
        if label in self.catalog.subtypes(field):
            return False

        with _lock_for(self.abook_id):
            row = {"typename": field, "subtype": label, "abook_id": self.abook_id}
            if not self.store.get(row, ("subtype",), self.TABLE):
                self.store.insert(self.TABLE, ("typename", "subtype", "abook_id"), [(field, label, self.abook_id)])
            self.catalog.add_custom(field, label)

        logger.debug("registered custom label %r for %s in address book %s", label, field, self.abook_id)
        return True

    def purge(self) -> int:
        """Delete all custom labels of the address book from the store."""
        with _lock_for(self.abook_id):
            return self.store.delete({"abook_id": self.abook_id}, self.TABLE)

    # ── Resolution ────────────────────────────────────────────────────────────

    def resolve(self, card: vobject.base.Component, prop: vobject.base.ContentLine, field: str) -> str:
        """Pick the single label to show for a multi-value property.

        First match wins:
          1. a property specific resolver (IMPP)
          2. the X-ABLabel sharing the property's group
          3. the TYPE value listed first in the field's standard vocabulary
          4. "other"
        """
        override = self._overrides.get(prop.name.upper())
        if override is not None:
            label = override(card, prop)
            if label:
                return label

        label = self._group_label(card, prop)
        if label:
            if label not in self.catalog.subtypes(field):
                self.register(field, label)
            return label

        vocabulary = self.catalog.standard_subtypes(field)
        best: int | None = None
        for t in props.param_values(prop, "TYPE"):
            t = t.lower()
            if t in vocabulary:
                pos = vocabulary.index(t)
                if best is None or pos < best:
                    best = pos

        return vocabulary[best] if best is not None else DEFAULT_LABEL

    def _group_label(self, card: vobject.base.Component, prop: vobject.base.ContentLine) -> str | None:
        group = props.group_of(prop)
        if not group:
            return None
        for p in props.properties(card, LABEL_PROPERTY):
            if props.group_of(p) == group:
                label = _APPLE_LABEL.sub(r"\1", props.text_value(p))
                if label:
                    return label
        return None

    def _impp_label(self, card: vobject.base.Component, prop: vobject.base.ContentLine) -> str | None:
        # X-SERVICE-TYPE, as written by Apple's address book
        for service in props.param_values(prop, "X-SERVICE-TYPE"):
            if not service:
                continue
            known = self.catalog.canonical_subtype("im", service)
            if known is None:
                self.register("im", service)
                return service
            return known

        # URI scheme of the value
        scheme, sep, _ = props.text_value(prop).partition(":")
        if sep:
            known = self.catalog.canonical_subtype("im", scheme)
            if known is not None:
                return known

        for t in props.param_values(prop, "TYPE"):
            known = self.catalog.canonical_subtype("im", t)
            if known is not None:
                return known

        return None

    # ── Assignment ────────────────────────────────────────────────────────────

    def assign(self, card: vobject.base.Component, prop: vobject.base.ContentLine, field: str, label: str) -> None:
        """Attach a label to a freshly built property (no group yet).

        Custom labels go into a new ITEM<n> group with a sibling X-ABLabel,
        anything else becomes the TYPE parameter.
        """
        if self.is_custom(field, label):
            group = next_free_group(card)
            prop.group = group
            props.add_property(card, LABEL_PROPERTY, label, group=group)
        else:
            prop.params["TYPE"] = [label]
