#!/usr/bin/env python
"""
Send the daily call reminder digests.

Usage:
    python scripts/send_call_reminders.py              # every enabled user
    python scripts/send_call_reminders.py --user 12    # one user
    python scripts/send_call_reminders.py --queue      # enqueue on RQ instead

Exit codes:
- 0: all digests sent (or nothing was due)
- 1: at least one digest failed to send
"""
import argparse
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from bunkerdesk.workers import reminders_queue
from bunkerdesk.workers.reminder_jobs import run_reminder_digest_job
from bunkerdesk.utils.logging_utils import logger


def main(argv=None):
    parser = argparse.ArgumentParser(description="Send call reminder digests")
    parser.add_argument("--user", type=int, default=None, help="Only send for this user id")
    parser.add_argument("--queue", action="store_true", help="Enqueue on the reminders queue")
    args = parser.parse_args(argv)

    if args.queue:
        if reminders_queue is None:
            logger.error("Redis is not available; cannot enqueue")
            return 1
        job = reminders_queue.enqueue(run_reminder_digest_job, args.user)
        logger.info(f"Queued reminder digest job {job.id}")
        return 0

    result = run_reminder_digest_job(args.user)
    logger.info(f"Reminder digests: {result}")
    return 1 if result["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
