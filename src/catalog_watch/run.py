import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .canonical import canonicalize
from .diff import diff_catalogs
from .errors import AcquisitionFailure, DeliveryFailure
from .models import build_catalog
from .report import build_summary, format_report
from .storage import FileSnapshotStore, SnapshotStore

log = logging.getLogger(__name__)

FIRST = "first"
UNCHANGED = "unchanged"
CHANGED = "changed"


@dataclass
class RunResult:
    status: str
    previous_id: Optional[str] = None
    snapshot_id: Optional[str] = None
    counts: dict = field(default_factory=dict)
    segments_sent: int = 0
    delivery_errors: List[str] = field(default_factory=list)


def default_store(settings) -> SnapshotStore:
    return FileSnapshotStore(settings.snapshot_dir, prefix=settings.prefix)


def default_fetch(settings):
    from .fetchers.planity import fetch_services
    return fetch_services(settings)


def default_notifier(settings):
    from .notify import WebhookNotifier
    return WebhookNotifier(settings.webhook_url, timeout=settings.request_timeout_sec)


def run_once(settings,
             store: Optional[SnapshotStore] = None,
             fetch: Optional[Callable] = None,
             notify: Optional[Callable[[str], None]] = None,
             run_id: Optional[str] = None) -> RunResult:
    """
    One monitoring pass: fetch, compare with the latest snapshot, report and
    save when something changed.

    AcquisitionFailure, CorruptSnapshot and StorageWriteFailure propagate.
    DeliveryFailure is logged per segment and never stops the save.
    """
    store = store or default_store(settings)
    fetch = fetch or default_fetch
    notify = notify or default_notifier(settings)
    extra = {"run_id": run_id or uuid.uuid4().hex[:12]}

    # 1) Acquire
    records = fetch(settings)
    try:
        catalog = canonicalize(build_catalog(records))
    except ValueError as e:
        raise AcquisitionFailure(f"malformed service records: {e}") from e
    log.info("extracted %d services", len(catalog), extra={**extra, "step": "fetch"})

    # 2) Compare with the latest snapshot (corrupt snapshot aborts the run)
    previous_id = store.latest()
    if previous_id is None:
        snapshot_id = store.save(catalog)
        log.info("no previous snapshot, saved baseline", extra={**extra, "step": "save", "snapshot_id": snapshot_id})
        return RunResult(FIRST, snapshot_id=snapshot_id)

    previous = canonicalize(store.load(previous_id))
    if previous == catalog:
        log.info("catalog identical to previous snapshot, nothing to do",
                 extra={**extra, "step": "compare", "snapshot_id": previous_id})
        return RunResult(UNCHANGED, previous_id=previous_id)

    changes = diff_catalogs(previous, catalog)
    counts = build_summary(changes)
    log.info("changes detected: %s", counts, extra={**extra, "step": "compare", "snapshot_id": previous_id})

    # 3) Notify (best effort), then save
    snapshot_id = store.new_id()
    result = RunResult(CHANGED, previous_id=previous_id, counts=counts)
    report = format_report(changes, previous_id, snapshot_id, limit=settings.max_message_chars)
    for i, segment in enumerate(report):
        try:
            notify(segment)
            result.segments_sent += 1
        except DeliveryFailure as e:
            result.delivery_errors.append(str(e))
            log.warning("segment %d not delivered: %s", i, e,
                        extra={**extra, "step": "notify", "error_code": "DELIVERY_FAIL"})

    result.snapshot_id = store.save(catalog, snapshot_id)
    log.info("snapshot saved", extra={**extra, "step": "save", "snapshot_id": result.snapshot_id})
    return result
