#!/usr/bin/env python3
"""
Drain the ingest queue once, until empty, or on a schedule.
"""

import argparse
import sys

import dotenv

from groupware_rag.core import heartbeat
from groupware_rag.core.config import DB_PATH, DRAIN_BATCH_SIZE, DRAIN_INTERVAL_SEC, SOURCE_DB_PATH
from groupware_rag.core.errors import ConfigurationError
from groupware_rag.core.services import build_services


def build_parser():
    parser = argparse.ArgumentParser(description="Process pending ingest queue items")
    parser.add_argument("--owner", default=None, help="Only drain this owner's items")
    parser.add_argument("--batch-size", type=int, default=DRAIN_BATCH_SIZE, help="Items claimed per drain")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--until-empty", action="store_true", help="Repeat until no pending items remain")
    mode.add_argument("--loop", action="store_true", help="Drain every --interval seconds until stopped")
    parser.add_argument("--interval", type=int, default=DRAIN_INTERVAL_SEC, help="Seconds between scheduled drains")
    parser.add_argument("--no-collapse", action="store_true", help="Do not supersede duplicate pending items")
    parser.add_argument("--db-path", default=DB_PATH)
    parser.add_argument("--source-db-path", default=SOURCE_DB_PATH)
    return parser


def print_report(report):
    print(
        f"claimed={report.claimed} completed={report.completed} failed={report.failed} "
        f"skipped={report.skipped} superseded={report.superseded}"
    )
    for queue_id, message in report.errors:
        print(f"  ! queue item {queue_id}: {message}")


def main(argv=None):
    args = build_parser().parse_args(argv)
    services = build_services(args.db_path, args.source_db_path)
    pipeline = services.pipeline

    if args.loop:
        heartbeat.register_drain_task(pipeline, interval_sec=args.interval,
                                      batch_size=args.batch_size, owner_id=args.owner,
                                      collapse_duplicates=not args.no_collapse)
        print(f"Draining every {args.interval}s (batch size {args.batch_size})")
        heartbeat.start(force=True)
        return

    try:
        while True:
            report = pipeline.drain(
                batch_size=args.batch_size,
                owner_id=args.owner,
                collapse_duplicates=not args.no_collapse,
            )
            print_report(report)
            if not args.until_empty or report.claimed == 0:
                break
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    counts = services.queue.count_by_status(args.owner)
    print(f"Queue: {counts}")


if __name__ == "__main__":
    dotenv.load_dotenv()
    main()
