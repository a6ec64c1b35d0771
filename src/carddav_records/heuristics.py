from __future__ import annotations

import re

from .model import Record

SHOWAS_INDIVIDUAL = "INDIVIDUAL"
SHOWAS_COMPANY = "COMPANY"

UNSET_DISPLAYNAME = "Unset Displayname"

_FALLBACK_KEY = re.compile(r"^(email|phone):")


# ── Individual vs. organization ───────────────────────────────────────────────

def determine_showas(record: Record) -> str:
    """Decide whether a contact is shown as an individual or a company.

    For a new contact (no previous showas value) it is a company only if an
    organization but neither first name nor surname is given. An existing
    contact keeps its setting unless the organization was cleared, which
    forces it back to individual.
    """
    showas = record.get("showas") or ""

    if not showas:
        if not record.get("surname") and not record.get("firstname") and record.get("organization"):
            return SHOWAS_COMPANY
        return SHOWAS_INDIVIDUAL

    if not record.get("organization"):
        return SHOWAS_INDIVIDUAL
    return showas


# ── Display name ──────────────────────────────────────────────────────────────

def compose_displayname(record: Record) -> str:
    """Build a display name for a record that has none."""
    showas = record.get("showas") or ""
    if showas.upper() == SHOWAS_COMPANY and record.get("organization"):
        return record["organization"]

    names = [record[k] for k in ("firstname", "surname") if record.get(k)]
    if names:
        return " ".join(names)

    # no name? try email and phone
    for key in sorted(k for k in record if _FALLBACK_KEY.match(k)):
        values = record[key]
        if isinstance(values, str):
            values = [values]
        for value in values:
            if value:
                return value

    return UNSET_DISPLAYNAME
