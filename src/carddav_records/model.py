from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# A record maps field keys to values. Single-value fields hold a string,
# multi-value fields are keyed "field:subtype" and hold a list of values
# (strings, or address dicts for "address:*"). "photo" may hold raw bytes
# or a DelayedPhotoLoader.
Record = dict[str, Any]

NAME_PARTS = ("surname", "firstname", "middlename", "prefix", "suffix")

ADDRESS_PARTS = (
    "pobox",     # post office box
    "extended",  # extended address
    "street",
    "locality",  # e.g. city
    "region",    # e.g. state or province
    "zipcode",
    "country",
)

# An address is only written to a card if one of these is filled in
ADDRESS_REQUIRED_ONE_OF = ("street", "locality", "region", "zipcode", "country")


@dataclass(frozen=True)
class FieldSpec:
    """Static description of one record field."""
    name: str
    subtypes: tuple[str, ...] = ()
    aliases: dict[str, str] = field(default_factory=dict)

    @property
    def multivalue(self) -> bool:
        return bool(self.subtypes)
