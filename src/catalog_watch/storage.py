import json
import os
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from glob import escape, glob
from typing import Optional

from .canonical import canonicalize
from .errors import CorruptSnapshot, StorageWriteFailure
from .models import Catalog, catalog_from_json, catalog_to_json

DEFAULT_PREFIX = "annabelle-snapshot"
SUFFIX = ".json"
# Fixed width and zero padded so that string order == time order.
STAMP_FORMAT = "%Y-%m-%d-%H-%M-%S"
STAMP_PATTERN = r"\d{4}-\d{2}-\d{2}-\d{2}-\d{2}-\d{2}"


def utc_now():
    return datetime.now(timezone.utc)


def snapshot_id_for(prefix, when):
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    return f"{prefix}-{when.strftime(STAMP_FORMAT)}{SUFFIX}"


def write_json(path, data):
    tmp = path + ".tmp"
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    os.replace(tmp, path)


class SnapshotStore(ABC):
    """Append-only collection of canonical catalogs keyed by timestamped ids."""

    def __init__(self, prefix=DEFAULT_PREFIX, clock=utc_now):
        self.prefix = prefix
        self._clock = clock
        self._id_re = re.compile(re.escape(prefix) + "-" + STAMP_PATTERN + re.escape(SUFFIX) + r"\Z")

    def is_snapshot_id(self, name):
        return bool(self._id_re.match(name))

    def new_id(self, now=None):
        return snapshot_id_for(self.prefix, now or self._clock())

    def latest(self) -> Optional[str]:
        ids = sorted(i for i in self.list_ids() if self.is_snapshot_id(i))
        return ids[-1] if ids else None

    def save(self, catalog: Catalog, snapshot_id: Optional[str] = None) -> str:
        snapshot_id = snapshot_id or self.new_id()
        self._write(snapshot_id, catalog_to_json(canonicalize(catalog)))
        return snapshot_id

    @abstractmethod
    def list_ids(self):
        raise NotImplementedError

    @abstractmethod
    def load(self, snapshot_id: str) -> Catalog:
        raise NotImplementedError

    @abstractmethod
    def _write(self, snapshot_id, document):
        raise NotImplementedError


class FileSnapshotStore(SnapshotStore):
    def __init__(self, snap_dir, prefix=DEFAULT_PREFIX, clock=utc_now):
        super().__init__(prefix=prefix, clock=clock)
        self.snap_dir = snap_dir

    def path_for(self, snapshot_id):
        return os.path.join(self.snap_dir, snapshot_id)

    def list_ids(self):
        pattern = os.path.join(escape(self.snap_dir), f"{escape(self.prefix)}-*{SUFFIX}")
        return [os.path.basename(p) for p in glob(pattern)]

    def load(self, snapshot_id):
        path = self.path_for(snapshot_id)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            # a missing id is a caller error, not a corrupt store
            raise
        except (OSError, ValueError) as e:
            raise CorruptSnapshot(f"{snapshot_id}: {e}") from e
        try:
            return catalog_from_json(data)
        except CorruptSnapshot as e:
            raise CorruptSnapshot(f"{snapshot_id}: {e}") from e

    def _write(self, snapshot_id, document):
        try:
            write_json(self.path_for(snapshot_id), document)
        except OSError as e:
            raise StorageWriteFailure(f"cannot write {snapshot_id}: {e}") from e


class MemorySnapshotStore(SnapshotStore):
    """In-process store with the file store's contract; documents kept as JSON text."""

    def __init__(self, prefix=DEFAULT_PREFIX, clock=utc_now):
        super().__init__(prefix=prefix, clock=clock)
        self.documents = {}

    def list_ids(self):
        return list(self.documents)

    def load(self, snapshot_id: str) -> Catalog:
        if snapshot_id not in self.documents:
            raise FileNotFoundError(snapshot_id)
        try:
            data = json.loads(self.documents[snapshot_id])
        except ValueError as e:
            raise CorruptSnapshot(f"{snapshot_id}: {e}") from e
        return catalog_from_json(data)

    def _write(self, snapshot_id, document):
        self.documents[snapshot_id] = json.dumps(document, ensure_ascii=False, indent=2)
