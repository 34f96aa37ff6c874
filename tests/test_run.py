from datetime import datetime, timedelta, timezone

import pytest

from catalog_watch.config import Settings
from catalog_watch.errors import AcquisitionFailure, CorruptSnapshot, DeliveryFailure, StorageWriteFailure
from catalog_watch.run import CHANGED, FIRST, UNCHANGED, run_once
from catalog_watch.storage import MemorySnapshotStore

SETTINGS = Settings(max_message_chars=2000)


def _records(price="20€", extra=()):
    recs = [
        {"family": "Hair", "label": "Cut", "items": [
            {"description": "", "duration": "30min", "price": price},
            {"description": "long", "duration": "45min", "price": "28€"},
        ]},
        {"family": "Nails", "label": "Polish", "items": [{"description": "", "duration": "20min", "price": "15€"}]},
    ]
    return recs + list(extra)


class Clock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(hours=12)
        return self.now


class Sink:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def __call__(self, content):
        self.sent.append(content)
        if self.fail:
            raise DeliveryFailure("boom")


def _fetch(records):
    return lambda settings: records


def test_first_run_saves_baseline_without_notifying():
    store = MemorySnapshotStore(clock=Clock())
    sink = Sink()
    result = run_once(SETTINGS, store=store, fetch=_fetch(_records()), notify=sink)
    assert result.status == FIRST
    assert store.latest() == result.snapshot_id
    assert sink.sent == []


def test_identical_reordered_catalog_does_nothing():
    store = MemorySnapshotStore(clock=Clock())
    run_once(SETTINGS, store=store, fetch=_fetch(_records()), notify=Sink())

    shuffled = [dict(r, items=list(reversed(r["items"]))) for r in reversed(_records())]
    sink = Sink()
    result = run_once(SETTINGS, store=store, fetch=_fetch(shuffled), notify=sink)
    assert result.status == UNCHANGED
    assert len(store.documents) == 1
    assert sink.sent == []


def test_change_is_notified_then_saved():
    store = MemorySnapshotStore(clock=Clock())
    first = run_once(SETTINGS, store=store, fetch=_fetch(_records()), notify=Sink()).snapshot_id

    sink = Sink()
    result = run_once(SETTINGS, store=store, fetch=_fetch(_records(price="25€")), notify=sink)
    assert result.status == CHANGED
    assert result.previous_id == first
    assert result.counts["variants_changed"] == 1
    assert store.latest() == result.snapshot_id != first
    assert len(sink.sent) == 1
    assert result.snapshot_id in sink.sent[0]
    assert "20€, 30min -> 25€, 30min" in sink.sent[0]


def test_delivery_failure_does_not_block_save():
    store = MemorySnapshotStore(clock=Clock())
    run_once(SETTINGS, store=store, fetch=_fetch(_records()), notify=Sink())

    many = [{"family": "Waxing", "label": f"Zone {i:03d}", "items": [{"description": "", "duration": "15min", "price": "10€"}]}
            for i in range(150)]
    sink = Sink(fail=True)
    result = run_once(Settings(max_message_chars=500), store=store, fetch=_fetch(_records(extra=many)), notify=sink)
    assert result.status == CHANGED
    assert len(sink.sent) > 1  # every segment still attempted
    assert result.segments_sent == 0
    assert len(result.delivery_errors) == len(sink.sent)
    assert len(store.documents) == 2


def test_acquisition_failure_aborts_without_saving():
    store = MemorySnapshotStore(clock=Clock())

    def broken(settings):
        raise AcquisitionFailure("timeout")

    with pytest.raises(AcquisitionFailure):
        run_once(SETTINGS, store=store, fetch=broken, notify=Sink())
    assert store.documents == {}


def test_corrupt_previous_snapshot_aborts():
    store = MemorySnapshotStore(clock=Clock())
    store.documents["annabelle-snapshot-2024-01-01-00-00-00.json"] = "[{\"family\": 1}]"
    sink = Sink()
    with pytest.raises(CorruptSnapshot):
        run_once(SETTINGS, store=store, fetch=_fetch(_records()), notify=sink)
    assert len(store.documents) == 1
    assert sink.sent == []


def test_storage_write_failure_propagates():
    class ReadOnlyStore(MemorySnapshotStore):
        def _write(self, snapshot_id, document):
            raise StorageWriteFailure("disk full")

    with pytest.raises(StorageWriteFailure):
        run_once(SETTINGS, store=ReadOnlyStore(clock=Clock()), fetch=_fetch(_records()), notify=Sink())


def test_malformed_records_abort_as_acquisition_failure():
    store = MemorySnapshotStore(clock=Clock())
    bad = [{"family": "Hair", "label": "Cut", "items": [{"description": "", "duration": 30, "price": "20€"}]}]
    with pytest.raises(AcquisitionFailure):
        run_once(SETTINGS, store=store, fetch=_fetch(bad), notify=Sink())
    assert store.documents == {}
