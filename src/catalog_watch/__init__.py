from .canonical import canonicalize
from .diff import ChangeSet, diff_catalogs
from .models import Entry, EntryKey, Variant, build_catalog
from .report import format_report
from .storage import FileSnapshotStore, MemorySnapshotStore, SnapshotStore

__version__ = "1.0.0"
