"""Small helpers over vobject cards and content lines."""
from __future__ import annotations

import vobject
from vobject.vcard import Address, Name, splitFields

from .model import ADDRESS_PARTS, NAME_PARTS


def properties(card: vobject.base.Component, name: str) -> list[vobject.base.ContentLine]:
    return list(card.contents.get(name.lower(), []))


def first_property(card: vobject.base.Component, name: str) -> vobject.base.ContentLine | None:
    found = card.contents.get(name.lower())
    return found[0] if found else None


def remove_all(card: vobject.base.Component, name: str) -> None:
    card.contents.pop(name.lower(), None)


def remove_property(card: vobject.base.Component, prop: vobject.base.ContentLine) -> None:
    # Component.remove() matches by equality, which ignores the group
    key = prop.name.lower()
    remaining = [p for p in card.contents.get(key, []) if p is not prop]
    if remaining:
        card.contents[key] = remaining
    else:
        card.contents.pop(key, None)


def add_property(
    card: vobject.base.Component,
    name: str,
    value,
    params: dict[str, list[str]] | None = None,
    group: str | None = None,
) -> vobject.base.ContentLine:
    prop = card.add(name.lower(), group=group)
    prop.value = value
    for pname, pvalues in (params or {}).items():
        prop.params[pname.upper()] = list(pvalues)
    return prop


def set_single(card: vobject.base.Component, name: str, value) -> vobject.base.ContentLine:
    remove_all(card, name)
    return add_property(card, name, value)


def group_of(prop) -> str:
    return (getattr(prop, "group", None) or "").upper()


def param_values(prop: vobject.base.ContentLine, name: str) -> list[str]:
    values = [str(v) for v in prop.params.get(name.upper(), [])]
    if name.upper() == "TYPE":
        # vCard 2.1 style bare parameters (TEL;HOME:...) are types as well
        values.extend(str(v) for v in getattr(prop, "singletonparams", []))
    return values


def text_value(prop: vobject.base.ContentLine) -> str:
    """String value of a property; anything that is not text is treated as absent."""
    value = prop.value
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ";".join(_join(v) for v in value)
    return ""


def _join(part) -> str:
    if isinstance(part, list):
        return ",".join(str(p) for p in part)
    return "" if part is None else str(part)


def structured_parts(prop: vobject.base.ContentLine) -> list[str]:
    """Positional components of N, ORG and ADR style properties."""
    value = prop.value
    if isinstance(value, Name):
        return [_join(getattr(value, a)) for a in ("family", "given", "additional", "prefix", "suffix")]
    if isinstance(value, Address):
        return [_join(getattr(value, a)) for a in
                ("box", "extended", "street", "city", "region", "code", "country")]
    if isinstance(value, list):
        return [_join(v) for v in value]
    if isinstance(value, str):
        return [_join(v) for v in splitFields(value)]
    return []


def make_name(parts: list[str]) -> Name:
    family, given, additional, prefix, suffix = (list(parts) + [""] * len(NAME_PARTS))[:len(NAME_PARTS)]
    return Name(family=family, given=given, additional=additional, prefix=prefix, suffix=suffix)


def make_address(parts: list[str]) -> Address:
    box, extended, street, city, region, code, country = (
        list(parts) + [""] * len(ADDRESS_PARTS)
    )[:len(ADDRESS_PARTS)]
    return Address(
        street=street, city=city, region=region, code=code, country=country, box=box, extended=extended
    )
