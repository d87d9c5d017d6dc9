#!/usr/bin/env python
"""
Development bootstrap for the BunkerDesk backend.

Creates the tables, reports whether the reminder queue is usable and
optionally seeds an admin login.

Usage:
    python setup_dev.py [--no-user]
"""
import sys

from sqlalchemy.exc import SQLAlchemyError


def initialize_database():
    from bunkerdesk.config import SQLALCHEMY_DATABASE_URI
    from bunkerdesk.database import init_db

    print(f"Database: {SQLALCHEMY_DATABASE_URI}")
    try:
        init_db()
    except SQLAlchemyError as e:
        print(f"[FAIL] Could not create tables: {e}")
        return False
    print("[OK] Tables created")
    return True


def report_reminder_queue():
    # Importing the workers package pings Redis once
    from bunkerdesk.workers import reminders_queue

    if reminders_queue is None:
        print("[WARN] Redis unreachable: reminder digests will be mailed inline")
    else:
        print("[OK] Reminder queue ready; start a worker with: python scripts/run_worker.py")


def seed_admin():
    email = input("Admin email [test@example.com]: ").strip() or "test@example.com"
    password = input("Admin password [testpass123]: ").strip() or "testpass123"
    from create_test_user import create_test_user
    create_test_user(email, password)


def main(argv):
    if not initialize_database():
        sys.exit(1)
    report_reminder_queue()
    if "--no-user" not in argv:
        seed_admin()
    print("\nRun the API with: hypercorn asgi:app --bind 0.0.0.0:8000 --reload")


if __name__ == "__main__":
    try:
        main(sys.argv[1:])
    except KeyboardInterrupt:
        sys.exit(1)
