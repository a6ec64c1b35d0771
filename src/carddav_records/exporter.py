from __future__ import annotations

from pathlib import Path
from typing import Iterable

import vobject


def serialize_cards(cards: Iterable[vobject.base.Component]) -> str:
    return "".join(c.serialize() for c in cards)


def export_vcards(cards: list[vobject.base.Component], path: Path) -> int:
    """Write cards to a .vcf file, returning the number written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_cards(cards), encoding="utf-8")
    return len(cards)
