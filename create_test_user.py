"""
Create a development user with the admin role.

Usage:
    python create_test_user.py [email] [password]
"""
import sys

import bcrypt

from bunkerdesk.database import SessionLocal, init_db
from bunkerdesk.models import User, Role, NotificationSettings, Workspace
from bunkerdesk.constants import DEFAULT_WORKSPACE_NAME, DEFAULT_WORKSPACE_COLOR


def create_test_user(email="test@example.com", password="testpass123", full_name="Test Trader"):
    """Create (or reset) a development user and return its id."""
    init_db()
    session = SessionLocal()
    try:
        admin_role = session.query(Role).filter_by(name='admin').first()
        if not admin_role:
            admin_role = Role(name='admin')
            session.add(admin_role)
            session.flush()
            print("[OK] Created 'admin' role")

        password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

        user = session.query(User).filter_by(email=email.lower()).first()
        if user:
            print(f"User {email} already exists. Resetting password...")
            user.password_hash = password_hash
            user.is_active = True
        else:
            user = User(
                email=email.lower(),
                password_hash=password_hash,
                full_name=full_name,
                is_active=True,
            )
            session.add(user)
            session.flush()
            print(f"[OK] Created user: {user.email} (ID: {user.id})")

        if admin_role not in user.roles:
            user.roles.append(admin_role)

        if not session.query(NotificationSettings).filter_by(user_id=user.id).first():
            session.add(NotificationSettings(user_id=user.id, user_email=user.email, days_before_reminder=1))

        if not session.query(Workspace).filter_by(user_id=user.id, is_default=True).first():
            session.add(Workspace(
                user_id=user.id,
                name=DEFAULT_WORKSPACE_NAME,
                color=DEFAULT_WORKSPACE_COLOR,
                is_default=True,
            ))

        session.commit()

        print("\n=== Login ===")
        print(f"  Email:    {email}")
        print(f"  Password: {password}")
        return user.id
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    create_test_user(*sys.argv[1:3])
