from typing import Iterable

from .models import Catalog, Entry


def canonicalize(catalog: Iterable[Entry]) -> Catalog:
    """
    Deterministic order over a catalog: entries by (family, label), variants by
    (description, duration, price). Plain str comparison (code points), never
    locale collation, so the order is stable across machines and runs.
    """
    entries = sorted(catalog, key=lambda e: e.key)
    return tuple(
        Entry(e.family, e.label, tuple(sorted(e.items, key=lambda v: v.sort_key())))
        for e in entries
    )
