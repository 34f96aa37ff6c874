"""
catalog-watch CLI
Run one monitoring pass, or inspect stored snapshots.
"""

import argparse
import sys

from .config import load_settings
from .diff import diff_catalogs
from .errors import WatchError
from .logs import setup as setup_logs
from .notify import StdoutNotifier
from .report import format_report
from .run import default_store, run_once


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="catalog-watch",
        description="Watch a service catalog page and report changes to a webhook.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    # ───────────────────────── RUN ─────────────────────────
    pr = sub.add_parser("run", help="Fetch, compare, notify and save")
    pr.add_argument("--config", default=None)
    pr.add_argument("--dry-run", action="store_true", help="print segments instead of posting them")

    # ───────────────────────── DIFF ─────────────────────────
    pd = sub.add_parser("diff", help="Render the report between two stored snapshots")
    pd.add_argument("previous")
    pd.add_argument("current")
    pd.add_argument("--config", default=None)

    # ───────────────────────── LATEST ─────────────────────────
    pl = sub.add_parser("latest", help="Show the latest stored snapshot")
    pl.add_argument("--config", default=None)

    args = parser.parse_args(argv)
    log = setup_logs(step=args.cmd)
    settings = load_settings(args.config)

    try:
        if args.cmd == "run":
            notify = StdoutNotifier() if args.dry_run else None
            result = run_once(settings, notify=notify)
            log.info("run finished: %s", result.status, extra={"snapshot_id": result.snapshot_id})

        elif args.cmd == "diff":
            store = default_store(settings)
            prev = store.load(args.previous)
            cur = store.load(args.current)
            report = format_report(diff_catalogs(prev, cur), args.previous, args.current,
                                   limit=settings.max_message_chars)
            print(report.text)

        elif args.cmd == "latest":
            store = default_store(settings)
            latest = store.latest()
            if latest is None:
                print("No snapshot stored yet.")
                return 0
            print(f"{latest} ({len(store.load(latest))} services)")

    except FileNotFoundError as e:
        print(f"Snapshot not found: {e}", file=sys.stderr)
        return 2
    except WatchError as e:
        log.error("%s: %s", type(e).__name__, e, exc_info=True, extra={"error_code": type(e).__name__})
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
