from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .models import Catalog, Entry, EntryKey, Variant

ADDED = "added"
REMOVED = "removed"
CHANGED = "changed"


@dataclass(frozen=True)
class VariantChange:
    kind: str
    before: Optional[Variant] = None
    after: Optional[Variant] = None


@dataclass(frozen=True)
class EntryChange:
    key: EntryKey
    changes: Tuple[VariantChange, ...]


@dataclass
class ChangeSet:
    added_entries: List[Entry] = field(default_factory=list)
    removed_entries: List[Entry] = field(default_factory=list)
    modified: List[EntryChange] = field(default_factory=list)

    def is_empty(self):
        return not (self.added_entries or self.removed_entries or self.modified)


def _index(catalog):
    return {e.key: e for e in (catalog or ())}


def _pairs(a, b):
    return a.duration == b.duration or a.price == b.price


def diff_variants(prev_items, cur_items):
    """
    Variant-level changes for one shared entry.

    Verbatim-equal variants are paired off first (as a multiset). Each leftover
    current variant then takes the first unclaimed leftover previous variant,
    in canonical order, with the same duration or the same price: that pair is
    a CHANGED. The first-in-order tie-break is arbitrary but deterministic; it
    can mis-pair when several variants share a duration or a price.
    """
    unmatched = Counter(prev_items)
    cur_left = []
    for v in cur_items:
        if unmatched[v] > 0:
            unmatched[v] -= 1
        else:
            cur_left.append(v)

    prev_left = []
    for v in prev_items:
        if unmatched[v] > 0:
            unmatched[v] -= 1
            prev_left.append(v)

    out = []
    claimed = [False] * len(prev_left)
    for now in cur_left:
        for i, old in enumerate(prev_left):
            if not claimed[i] and _pairs(old, now):
                claimed[i] = True
                out.append(VariantChange(CHANGED, before=old, after=now))
                break
        else:
            out.append(VariantChange(ADDED, after=now))

    for i, old in enumerate(prev_left):
        if not claimed[i]:
            out.append(VariantChange(REMOVED, before=old))

    return out


def diff_catalogs(prev: Catalog, cur: Catalog) -> ChangeSet:
    old_by_key = _index(prev)
    new_by_key = _index(cur)
    changes = ChangeSet()

    for k, now in new_by_key.items():
        old = old_by_key.get(k)
        if old is None:
            changes.added_entries.append(now)
            continue
        if old.items == now.items:
            continue
        vchanges = diff_variants(old.items, now.items)
        if vchanges:
            changes.modified.append(EntryChange(k, tuple(vchanges)))

    for k, old in old_by_key.items():
        if k not in new_by_key:
            changes.removed_entries.append(old)

    changes.added_entries.sort(key=lambda e: e.key)
    changes.removed_entries.sort(key=lambda e: e.key)
    changes.modified.sort(key=lambda c: c.key)
    return changes
