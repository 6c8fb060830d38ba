"""
Operations utilities - CLI tools for inspecting and maintaining the index and queue.
"""

import argparse
import json
import sys
from datetime import datetime, timedelta, timezone

import dotenv

from groupware_rag.core.config import DB_PATH, configuration_status, settings_from_env
from groupware_rag.core.db import health_check
from groupware_rag.core.document_store import DocumentStore
from groupware_rag.core.ingest_queue import IngestQueue
from groupware_rag.util.logging import logger
from groupware_rag.vector.embeddings import check_embedding_connection, create_embedding_provider


def status_command(args):
    """Show index and queue status."""
    queue = IngestQueue(args.db_path)
    result = {
        "db_health": health_check(args.db_path),
        "queue": queue.count_by_status(args.owner),
    }
    if args.owner:
        result["documents"] = DocumentStore(args.db_path).count_by_source_app(args.owner)

    if args.json:
        print(json.dumps(result, indent=2))
        return

    print(f"Database healthy: {result['db_health']}")
    print("Queue:")
    for status, count in result["queue"].items():
        print(f"  {status:<11} {count}")
    if "documents" in result:
        print(f"Documents for {args.owner}:")
        for source_app, count in result["documents"].items():
            print(f"  {source_app:<11} {count}")


def failed_command(args):
    """List failed queue items."""
    items = IngestQueue(args.db_path).list_failed(args.owner, limit=args.limit)
    if not items:
        print("No failed queue items")
        return
    for item in items:
        print(f"#{item.queue_id} {item.owner_id} {item.source_app}/{item.item_id} {item.action}: {item.error_message}")


def requeue_command(args):
    """Re-drive failed queue items."""
    count = IngestQueue(args.db_path).requeue_failed(args.owner)
    print(f"✓ Requeued {count} failed items")


def purge_command(args):
    """Delete completed queue items older than --days."""
    before = datetime.now(timezone.utc) - timedelta(days=args.days)
    removed = IngestQueue(args.db_path).purge_completed(before)
    print(f"✓ Purged {removed} completed items processed before {before.isoformat()}")


def clear_command(args):
    """Delete all documents of one owner."""
    if not args.force:
        response = input(f"Delete all indexed documents of '{args.owner}'? (yes/no): ").strip().lower()
        if response != "yes":
            print("Clear cancelled.")
            sys.exit(0)
    removed = DocumentStore(args.db_path).clear_all(args.owner)
    logger.info(f"Cleared {removed} documents for owner {args.owner} via CLI")
    print(f"✓ Removed {removed} documents")


def config_command(args):
    """Show which provider settings are configured."""
    status = configuration_status(settings_from_env())

    if args.json:
        print(json.dumps(status, indent=2))
        return

    print("Configuration Status:")
    for section, label in (("embedding", "Embedding"), ("llm", "LLM")):
        info = status[section]
        key = f"✓ SET ({info['api_key_chars']} chars)" if info["api_key_set"] else "✗ NOT SET"
        print(f"  {label} Provider: {info['provider']}")
        print(f"  {label} API Key:  {key}")
        print(f"  {label} API URL:  {'✓ ' + info['api_url'] if info['api_url'] else '✗ NOT SET'}")
        print(f"  {label} Model:    {info['model']}")


def connection_command(args):
    """Send one test embedding request to the configured provider."""
    settings = settings_from_env()
    print("Testing embedding API connection...")
    result = check_embedding_connection(lambda: create_embedding_provider(settings))

    if not result["success"]:
        print(f"✗ ERROR ({result['reason']}): {result['error']}")
        sys.exit(1)

    print("✓ SUCCESS! Connection is working.")
    print(f"  Embedding dimension: {result['dimension']}")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Groupware RAG operations utilities",
        prog="python scripts/ops_util.py"
    )
    parser.add_argument("--db-path", default=DB_PATH, help=f"Index database (default: {DB_PATH})")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    status_parser = subparsers.add_parser("status", help="Show index and queue status")
    status_parser.add_argument("--owner", default=None)
    status_parser.add_argument("--json", action="store_true", help="Output results in JSON format")
    status_parser.set_defaults(func=status_command)

    failed_parser = subparsers.add_parser("failed", help="List failed queue items")
    failed_parser.add_argument("--owner", default=None)
    failed_parser.add_argument("--limit", type=int, default=100)
    failed_parser.set_defaults(func=failed_command)

    requeue_parser = subparsers.add_parser("requeue-failed", help="Requeue failed items")
    requeue_parser.add_argument("--owner", default=None)
    requeue_parser.set_defaults(func=requeue_command)

    purge_parser = subparsers.add_parser("purge-completed", help="Delete old completed queue items")
    purge_parser.add_argument("--days", type=int, default=7)
    purge_parser.set_defaults(func=purge_command)

    config_parser = subparsers.add_parser("config", help="Show provider configuration status")
    config_parser.add_argument("--json", action="store_true", help="Output results in JSON format")
    config_parser.set_defaults(func=config_command)

    connection_parser = subparsers.add_parser("test-connection", help="Send a test embedding request")
    connection_parser.set_defaults(func=connection_command)

    clear_parser = subparsers.add_parser("clear", help="Delete an owner's indexed documents")
    clear_parser.add_argument("--owner", required=True)
    clear_parser.add_argument("--force", action="store_true", help="Do not ask for confirmation")
    clear_parser.set_defaults(func=clear_command)

    return parser


def main(argv=None):
    """Main CLI entry point for operations utilities."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    dotenv.load_dotenv()
    main()
