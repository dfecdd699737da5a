"""Run one mailbox ingestion pass outside the API process.

Usage examples:

    python scripts/fetch_mail.py
    python scripts/fetch_mail.py --channel-id 3f0c...
    python scripts/fetch_mail.py --prune-days 7
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from helpdesk.core.config import settings  # noqa: E402
from helpdesk.core.logging import setup_logging  # noqa: E402
from helpdesk.db.session import SessionLocal  # noqa: E402
from helpdesk.services.activity_logger import prune_activity_logs  # noqa: E402
from helpdesk.services.ingestion import fetch_all_mailboxes, fetch_mailbox  # noqa: E402
from helpdesk.services.notifications import shutdown_notifications  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch unseen mail and turn it into tickets")
    parser.add_argument("--channel-id", default="", help="Only fetch this email channel")
    parser.add_argument(
        "--prune-days",
        type=int,
        default=None,
        help="Also delete activity log entries older than this many days",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    setup_logging(settings.LOG_LEVEL)
    db = SessionLocal()
    try:
        if args.channel_id:
            result = fetch_mailbox(db, args.channel_id)
        else:
            result = fetch_all_mailboxes(db)
        print(f"Result: {result.summary()}")
        for error in result.errors:
            print(f"  error: {error}")
        if args.prune_days is not None:
            deleted = prune_activity_logs(db, days_to_keep=args.prune_days)
            print(f"Pruned activity log entries: {deleted}")
    finally:
        db.close()
        # Let queued notifications finish before exiting.
        shutdown_notifications(wait=True)
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
