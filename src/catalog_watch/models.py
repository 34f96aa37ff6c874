from dataclasses import dataclass
from typing import NamedTuple, Tuple

from .errors import CorruptSnapshot

ENTRY_FIELDS = ("family", "label", "items")
VARIANT_FIELDS = ("description", "duration", "price")


class EntryKey(NamedTuple):
    family: str
    label: str


@dataclass(frozen=True)
class Variant:
    description: str
    duration: str
    price: str

    def sort_key(self):
        return (self.description, self.duration, self.price)

    def to_dict(self):
        return {"description": self.description, "duration": self.duration, "price": self.price}

    @classmethod
    def from_dict(cls, raw):
        _check_shape(raw, VARIANT_FIELDS, "variant")
        return cls(raw["description"], raw["duration"], raw["price"])


@dataclass(frozen=True)
class Entry:
    family: str
    label: str
    items: Tuple[Variant, ...] = ()

    @property
    def key(self) -> EntryKey:
        return EntryKey(self.family, self.label)

    def to_dict(self):
        return {
            "family": self.family,
            "label": self.label,
            "items": [v.to_dict() for v in self.items],
        }

    @classmethod
    def from_dict(cls, raw):
        _check_shape(raw, ENTRY_FIELDS, "entry")
        if not isinstance(raw["items"], list):
            raise CorruptSnapshot(f"entry {raw['family']!r}/{raw['label']!r}: items must be a list")
        return cls(raw["family"], raw["label"], tuple(Variant.from_dict(v) for v in raw["items"]))


# A catalog is a plain tuple of entries; canonical once sorted by canonicalize().
Catalog = Tuple[Entry, ...]


def _check_shape(raw, fields, what):
    if not isinstance(raw, dict):
        raise CorruptSnapshot(f"{what} must be an object, got {type(raw).__name__}")
    keys = set(raw)
    missing = [f for f in fields if f not in keys]
    unknown = sorted(keys - set(fields))
    if missing or unknown:
        raise CorruptSnapshot(f"{what} fields mismatch (missing={missing}, unknown={unknown})")
    for f in fields:
        if f != "items" and not isinstance(raw[f], str):
            raise CorruptSnapshot(f"{what}.{f} must be a string")


def catalog_from_json(data):
    """Strictly decode a snapshot document (a JSON array of entries)."""
    if not isinstance(data, list):
        raise CorruptSnapshot("snapshot root must be an array")
    return tuple(Entry.from_dict(e) for e in data)


def catalog_to_json(catalog):
    return [e.to_dict() for e in catalog]


def build_catalog(records):
    """
    Turn raw acquisition records into entries.

    Records with an empty label are dropped. Records sharing a (family, label)
    key are merged, items kept in arrival order. Anything that is not the
    expected shape raises ValueError.
    """
    grouped = {}
    for rec in records or []:
        if not isinstance(rec, dict):
            raise ValueError(f"raw record must be a dict, got {type(rec).__name__}")
        family = rec.get("family")
        label = rec.get("label")
        if not isinstance(family, str) or not isinstance(label, str):
            raise ValueError(f"raw record has non-string family/label: {rec!r}")
        if not label.strip():
            continue

        items = []
        for it in rec.get("items") or []:
            vals = [it.get(f, "") if isinstance(it, dict) else None for f in VARIANT_FIELDS]
            if not all(isinstance(v, str) for v in vals):
                raise ValueError(f"raw item of {family!r}/{label!r} is malformed: {it!r}")
            items.append(Variant(*vals))

        grouped.setdefault(EntryKey(family, label), []).extend(items)

    return tuple(Entry(k.family, k.label, tuple(v)) for k, v in grouped.items())
