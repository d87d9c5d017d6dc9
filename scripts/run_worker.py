#!/usr/bin/env python
"""
RQ worker startup script.

Usage:
    python scripts/run_worker.py

Starts an RQ worker that processes jobs from the 'reminders' queue.
Run this as a separate process alongside the web app.
"""
import sys
import os

# Add parent directory to path so we can import bunkerdesk modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from rq import Worker
from bunkerdesk.workers import redis_conn, reminders_queue
from bunkerdesk.utils.logging_utils import logger


def main():
    """Start the RQ worker for reminder digest jobs."""
    if reminders_queue is None:
        logger.error("Redis is not available; set REDIS_URL and try again")
        sys.exit(1)

    logger.info("Starting RQ worker for reminders queue...")
    worker = Worker([reminders_queue], connection=redis_conn)

    logger.info(f"Worker listening on queue: {reminders_queue.name}")
    logger.info("Press Ctrl+C to stop")

    try:
        worker.work(with_scheduler=True)
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")


if __name__ == "__main__":
    main()
