import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from catalog_watch.errors import CorruptSnapshot, StorageWriteFailure
from catalog_watch.models import Entry, Variant
from catalog_watch.storage import FileSnapshotStore, MemorySnapshotStore, snapshot_id_for

CATALOG = (
    Entry("Nails", "Polish", (Variant("", "20min", "15€"),)),
    Entry("Hair", "Cut", (Variant("long", "45min", "28€"), Variant("", "30min", "20€"))),
)


def _clock(*stamps):
    it = iter(stamps)
    return lambda: next(it)


def test_identifier_format_is_fixed_width_utc():
    when = datetime(2024, 3, 5, 7, 8, 9, tzinfo=timezone.utc)
    assert snapshot_id_for("annabelle-snapshot", when) == "annabelle-snapshot-2024-03-05-07-08-09.json"
    paris = timezone(timedelta(hours=1))
    assert snapshot_id_for("p", datetime(2024, 3, 5, 8, 8, 9, tzinfo=paris)) == "p-2024-03-05-07-08-09.json"


def test_identifier_order_matches_time_order():
    base = datetime(2023, 12, 31, 23, 59, 58, tzinfo=timezone.utc)
    deltas = [0, 1, 2, 61, 3600, 86400, 86400 * 40, 86400 * 400]
    ids = [snapshot_id_for("s", base + timedelta(seconds=d)) for d in deltas]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_file_store_latest_and_load(tmp_path):
    store = FileSnapshotStore(str(tmp_path), clock=_clock(
        datetime(2024, 1, 9, 23, 0, 0, tzinfo=timezone.utc),
        datetime(2024, 1, 10, 1, 0, 0, tzinfo=timezone.utc),
    ))
    assert store.latest() is None

    first = store.save(CATALOG[:1])
    second = store.save(CATALOG)
    assert store.latest() == second > first

    loaded = store.load(second)
    assert [e.key for e in loaded] == [("Hair", "Cut"), ("Nails", "Polish")]
    assert [v.description for v in loaded[0].items] == ["", "long"]


def test_file_store_writes_indented_canonical_json(tmp_path):
    store = FileSnapshotStore(str(tmp_path))
    sid = store.save(CATALOG, "annabelle-snapshot-2024-01-01-00-00-00.json")
    raw = (tmp_path / sid).read_text(encoding="utf-8")
    assert raw.startswith("[\n  {")
    assert "20€" in raw
    assert json.loads(raw)[0]["label"] == "Cut"
    assert not list(tmp_path.glob("*.tmp"))


def test_latest_ignores_foreign_files(tmp_path):
    store = FileSnapshotStore(str(tmp_path))
    store.save(CATALOG, "annabelle-snapshot-2024-01-01-00-00-00.json")
    (tmp_path / "annabelle-snapshot-zzz.json").write_text("[]", encoding="utf-8")
    (tmp_path / "annabelle-snapshot-2024-01-02-00-00-00.json.tmp").write_text("[]", encoding="utf-8")
    (tmp_path / "other-2099-01-01-00-00-00.json").write_text("[]", encoding="utf-8")
    assert store.latest() == "annabelle-snapshot-2024-01-01-00-00-00.json"


@pytest.mark.parametrize("content", [
    "not json",
    '{"family": "Hair"}',
    '[{"family": "Hair", "label": "Cut"}]',
])
def test_corrupt_snapshot_raises(tmp_path, content):
    sid = "annabelle-snapshot-2024-01-01-00-00-00.json"
    (tmp_path / sid).write_text(content, encoding="utf-8")
    store = FileSnapshotStore(str(tmp_path))
    with pytest.raises(CorruptSnapshot):
        store.load(sid)


def test_missing_snapshot_is_not_corrupt(tmp_path):
    store = FileSnapshotStore(str(tmp_path))
    with pytest.raises(FileNotFoundError):
        store.load("annabelle-snapshot-2024-01-01-00-00-00.json")


def test_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    store = FileSnapshotStore(os.path.join(str(blocker), "snaps"))
    with pytest.raises(StorageWriteFailure):
        store.save(CATALOG)


def test_memory_store_has_same_contract():
    store = MemorySnapshotStore(clock=_clock(
        datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc),
        datetime(2024, 1, 1, 0, 0, 1, tzinfo=timezone.utc),
    ))
    assert store.latest() is None
    a = store.save(CATALOG[:1])
    b = store.save(CATALOG)
    assert store.latest() == b != a
    assert len(store.load(b)) == 2

    store.documents[b] = '[{"family": "Hair"}]'
    with pytest.raises(CorruptSnapshot):
        store.load(b)
