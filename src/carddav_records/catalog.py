"""Field catalog: the static record vocabulary plus per-address-book custom labels.

The static layer never changes. Custom subtypes discovered in an address book
live in a separate overlay that is merged in on lookup, so two converters for
different address books never see each other's labels.
"""
from __future__ import annotations

from .model import FieldSpec

# ── vCard property → record key maps ──────────────────────────────────────────

SIMPLE_PROPERTIES: dict[str, str] = {
    "BDAY": "birthday",
    "FN": "name",
    "NICKNAME": "nickname",
    "NOTE": "notes",
    "PHOTO": "photo",
    "TITLE": "jobtitle",
    "UID": "cuid",
    "X-ABSHOWAS": "showas",
    "X-ANNIVERSARY": "anniversary",
    "X-ASSISTANT": "assistant",
    "X-GENDER": "gender",
    "X-MANAGER": "manager",
    "X-SPOUSE": "spouse",
    "X-MAIDENNAME": "maidenname",
    # vCard 4 KIND is not mapped; only one of the two should occur in a card
    "X-ADDRESSBOOKSERVER-KIND": "kind",
}

# "field:subtype" entries are hard-mapped to a single subtype
MULTI_PROPERTIES: dict[str, str] = {
    "EMAIL": "email",
    "TEL": "phone",
    "URL": "website",
    "ADR": "address",
    "IMPP": "im",
    "X-AIM": "im:AIM",
    "X-GADUGADU": "im:GaduGadu",
    "X-GOOGLE-TALK": "im:GoogleTalk",
    "X-GROUPWISE": "im:Groupwise",
    "X-ICQ": "im:ICQ",
    "X-JABBER": "im:Jabber",
    "X-MSN": "im:MSN",
    "X-SKYPE": "im:Skype",
    "X-TWITTER": "im:Twitter",
    "X-YAHOO": "im:Yahoo",
}

# IM subtype → URI scheme for IMPP values. Subtypes not listed use their
# lower-cased name if it is a valid scheme, else "x-unknown".
IM_URI_SCHEMES: dict[str, str] = {
    "GaduGadu": "gg",
    "GoogleTalk": "gtalk",
    "ICQ": "icq",
    "Jabber": "xmpp",
    "MSN": "msnim",
    "Yahoo": "ymsgr",
    "Zoom": "zoomus",
}

_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("name"),
    FieldSpec("firstname"),
    FieldSpec("surname"),
    FieldSpec("maidenname"),
    FieldSpec("email", subtypes=("home", "work", "other", "internet")),
    FieldSpec("middlename"),
    FieldSpec("prefix"),
    FieldSpec("suffix"),
    FieldSpec("nickname"),
    FieldSpec("jobtitle"),
    FieldSpec("organization"),
    FieldSpec("department"),
    FieldSpec("gender"),
    FieldSpec(
        "phone",
        subtypes=(
            "home", "work", "home2", "work2", "mobile", "main", "homefax",
            "workfax", "car", "pager", "video", "assistant", "other",
        ),
    ),
    FieldSpec("address", subtypes=("home", "work", "other")),
    FieldSpec("birthday"),
    FieldSpec("anniversary"),
    FieldSpec("website", subtypes=("homepage", "work", "blog", "profile", "other")),
    FieldSpec("notes"),
    FieldSpec("photo"),
    FieldSpec("assistant"),
    FieldSpec("manager"),
    FieldSpec("spouse"),
    FieldSpec(
        "im",
        subtypes=(
            "AIM", "GaduGadu", "GoogleTalk", "Groupwise", "ICQ", "IRC", "Jabber",
            "Kakaotalk", "Kik", "Line", "Matrix", "MSN", "QQ", "SIP", "Skype",
            "Telegram", "Twitter", "WeChat", "Yahoo", "Zoom", "other",
        ),
        aliases={
            "gadu": "gadugadu",
            "gg": "gadugadu",
            "google": "googletalk",
            "xmpp": "jabber",
            "ymsgr": "yahoo",
        },
    ),
)

COLTYPES: dict[str, FieldSpec] = {f.name: f for f in _FIELDS}


class UnknownFieldError(KeyError):
    """Raised when a field name is not part of the catalog."""


class FieldCatalog:
    """Static field vocabulary with a mutable overlay of custom subtypes."""

    def __init__(self, custom: dict[str, list[str]] | None = None) -> None:
        self._custom: dict[str, list[str]] = {
            name: [] for name, spec in COLTYPES.items() if spec.multivalue
        }
        for name, labels in (custom or {}).items():
            for label in labels:
                self.add_custom(name, label)

    def spec(self, name: str) -> FieldSpec:
        try:
            return COLTYPES[name]
        except KeyError:
            raise UnknownFieldError(f"{name} is not a known contact field") from None

    def is_multivalue(self, name: str) -> bool:
        return self.spec(name).multivalue

    def standard_subtypes(self, name: str) -> tuple[str, ...]:
        return self.spec(name).subtypes

    def custom_subtypes(self, name: str) -> list[str]:
        self.spec(name)
        return list(self._custom.get(name, []))

    def subtypes(self, name: str) -> list[str]:
        """All known subtypes of a field; standard ones first, in vocabulary order."""
        return list(self.spec(name).subtypes) + self._custom.get(name, [])

    def add_custom(self, name: str, label: str) -> None:
        if not self.is_multivalue(name):
            raise UnknownFieldError(f"{name} does not take subtypes")
        labels = self._custom[name]
        if label not in labels:
            labels.append(label)

    def is_custom(self, name: str, label: str) -> bool:
        return label in self._custom.get(name, [])

    def canonical_subtype(self, name: str, candidate: str) -> str | None:
        """Case-insensitive match of a candidate (or its alias) against the known subtypes."""
        spec = self.spec(name)
        lcand = candidate.lower()
        lcand = spec.aliases.get(lcand, lcand)
        for subtype in self.subtypes(name):
            if subtype.lower() == lcand:
                return subtype
        return None

    def coltypes(self) -> dict[str, dict]:
        """Merged catalog view, in the shape an address book UI expects."""
        out: dict[str, dict] = {}
        for name, spec in COLTYPES.items():
            entry: dict = {}
            if spec.multivalue:
                entry["subtypes"] = self.subtypes(name)
            if spec.aliases:
                entry["subtypealias"] = dict(spec.aliases)
            out[name] = entry
        return out
