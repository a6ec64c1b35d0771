from __future__ import annotations

import logging
import re
from pathlib import Path

import vobject

logger = logging.getLogger(__name__)

# ── Pre-parse sanitisation ─────────────────────────────────────────────────────
#
# Some exports contain lines vobject's strict parser cannot handle. They are
# repaired in plain text first. Property groups are kept, since they tie
# X-ABLabel custom labels to their properties.
#
#   item1..ADR   double-dot group prefix  → item1.ADR
#   .ADR         bare leading dot         → ADR
#   .X-*         bare leading dot + X-    → drop line entirely

_ITEM_DOUBLE_DOT = re.compile(r"^(item\d+)\.\.", re.IGNORECASE)
_BARE_DOT_X      = re.compile(r"^\.(X-)", re.IGNORECASE)
_BARE_DOT_STD    = re.compile(r"^\.((?!X-)[A-Z])", re.IGNORECASE)


def _sanitise_vcf(data: str, source_label: str) -> str:
    """Clean up known malformed line patterns before vobject sees them."""
    lines = data.splitlines(keepends=True)
    out: list[str] = []
    skipped = fixed = 0

    for line in lines:
        if _BARE_DOT_X.match(line):
            skipped += 1
            continue

        if _ITEM_DOUBLE_DOT.match(line):
            line = _ITEM_DOUBLE_DOT.sub(r"\1.", line)
            fixed += 1
        elif _BARE_DOT_STD.match(line):
            line = _BARE_DOT_STD.sub(r"\1", line)
            fixed += 1

        out.append(line)

    if skipped or fixed:
        logger.debug("%s: %d line(s) fixed, %d dropped", source_label, fixed, skipped)

    return "".join(out)


# ── Public API ─────────────────────────────────────────────────────────────────

def read_vcards(data: str, source_label: str = "<string>") -> list[vobject.base.Component]:
    """Parse all vCards in a text stream; unreadable cards are skipped."""
    data = _sanitise_vcf(data, source_label)
    cards = [
        vc for vc in vobject.readComponents(data, ignoreUnreadable=True)
        if vc.name.upper() == "VCARD"
    ]
    logger.debug("%s: parsed %d card(s)", source_label, len(cards))
    return cards


def read_vcards_from_files(
    paths: list[Path],
) -> list[tuple[vobject.base.Component, str]]:
    """Parse all .vcf files and return (vobject_component, source_label) pairs."""
    results: list[tuple[vobject.base.Component, str]] = []
    for p in paths:
        raw = p.read_text(encoding="utf-8", errors="replace")
        results.extend((vc, p.stem) for vc in read_vcards(raw, p.stem))
    return results


def collect_vcf_files(paths: list[Path]) -> list[Path]:
    """Expand directories into the .vcf files directly inside them, sorted by name."""
    out: list[Path] = []
    for p in paths:
        if p.is_dir():
            out.extend(sorted(f for f in p.iterdir() if f.suffix.lower() == ".vcf"))
        elif p.is_file():
            out.append(p)
    return out
