#!/usr/bin/env python3
"""
Index Rebuild Utility
Re-embeds an owner's source records into the document store, one source app
at a time. Use after changing the embedding model or losing the index.
"""

import argparse
import sys

import dotenv

from groupware_rag.core.config import DB_PATH, SOURCE_DB_PATH, settings_from_env
from groupware_rag.core.errors import ConfigurationError, RagError
from groupware_rag.core.services import build_services
from groupware_rag.util.logging import logger


def build_parser():
    parser = argparse.ArgumentParser(description="Rebuild the groupware document index")
    parser.add_argument("--owner", required=True, help="Owner (user) id whose records are indexed")
    parser.add_argument(
        "--source-app",
        action="append",
        dest="source_apps",
        help="Source app to rebuild (repeatable; default: all registered apps)"
    )
    parser.add_argument("--limit", type=int, default=0, help="Max records per source app (0 = no limit)")
    parser.add_argument("--clear", action="store_true", help="Delete the owner's documents before rebuilding")
    parser.add_argument("--db-path", default=DB_PATH, help=f"Index database (default: {DB_PATH})")
    parser.add_argument(
        "--source-db-path",
        default=SOURCE_DB_PATH,
        help=f"Groupware source database (default: {SOURCE_DB_PATH})"
    )
    return parser


def main(argv=None):
    """Rebuild the index for one owner."""
    args = build_parser().parse_args(argv)

    try:
        services = build_services(args.db_path, args.source_db_path, settings_from_env())
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    pipeline = services.pipeline
    source_apps = args.source_apps or pipeline.registry.source_apps()

    print("Starting index rebuild...")

    if args.clear:
        removed = services.store.clear_all(args.owner)
        print(f"✓ Cleared {removed} existing documents")

    failed = False
    for source_app in source_apps:
        try:
            report = pipeline.reindex_source(args.owner, source_app, limit=args.limit)
        except ConfigurationError as e:
            print(f"ERROR: {e}")
            sys.exit(1)
        except RagError as e:
            print(f"ERROR: Failed to index {source_app}: {e}")
            logger.error(f"Rebuild of {source_app} failed: {e}")
            failed = True
            continue

        print(f"✓ {source_app}: indexed {report.indexed}, skipped {report.skipped}")
        for error in report.errors[:10]:
            print(f"  ! {error}")
        if len(report.errors) > 10:
            print(f"  ... and {len(report.errors) - 10} more errors")
        if report.errors:
            failed = True

    counts = services.store.count_by_source_app(args.owner)
    print(f"Documents now indexed: {sum(counts.values())} {counts}")
    print("Index rebuild complete!" if not failed else "Index rebuild finished with errors")

    if failed:
        sys.exit(2)


if __name__ == "__main__":
    dotenv.load_dotenv()
    main()
