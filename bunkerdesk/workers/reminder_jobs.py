"""
Call reminder digest job: find contacts due a call and mail the owner.
"""
from datetime import datetime

from sqlalchemy import func

from bunkerdesk.database import SessionLocal
from bunkerdesk.models import Contact, ContactPerson, Call, NotificationSettings
from bunkerdesk.utils.email_utils import send_email_sync
from bunkerdesk.utils.reminder_digest import find_due_reminders, render_digest_html
from bunkerdesk.utils.logging_utils import logger, timing_logger


def build_reminder_digest(session, settings, now: datetime) -> dict:
    """
    Compose the digest for one user's settings and stamp last_check.

    The caller commits.
    """
    contacts = session.query(Contact).filter(
        Contact.user_id == settings.user_id,
        Contact.reminder_days.isnot(None),
        Contact.reminder_days > 0
    ).all()
    ids = [c.id for c in contacts]

    last_call_dates = {}
    primary_persons = {}
    if ids:
        last_call_dates = dict(
            session.query(Call.contact_id, func.max(Call.call_date))
            .filter(Call.contact_id.in_(ids))
            .group_by(Call.contact_id)
            .all()
        )
        for person in session.query(ContactPerson).filter(
            ContactPerson.contact_id.in_(ids),
            ContactPerson.is_primary == True
        ).order_by(ContactPerson.id):
            primary_persons.setdefault(person.contact_id, person)

    reminders = find_due_reminders(
        contacts, last_call_dates, primary_persons, settings.days_before_reminder, now
    )
    settings.last_check = now

    return {
        "subject": f"Call Reminders - {len(reminders)} contact(s) due",
        "recipient": settings.user_email,
        "reminders": reminders,
        "html": render_digest_html(reminders, now),
    }


@timing_logger("reminder_digest_job")
def run_reminder_digest_job(user_id: int = None) -> dict:
    """
    Send reminder digests for every enabled user, or just user_id.

    Digests with no due contacts are not mailed.
    """
    session = SessionLocal()
    sent, skipped, failed = 0, 0, 0
    try:
        query = session.query(NotificationSettings).filter(NotificationSettings.enabled == True)
        if user_id is not None:
            query = query.filter(NotificationSettings.user_id == user_id)

        now = datetime.utcnow()
        for settings in query.all():
            digest = build_reminder_digest(session, settings, now)
            if not digest["reminders"]:
                skipped += 1
                continue

            if send_email_sync(digest["subject"], digest["recipient"], digest["html"], html=True):
                sent += 1
            else:
                failed += 1

        session.commit()
        logger.info(f"[Reminders] Digest run complete: sent={sent} skipped={skipped} failed={failed}")
        return {"sent": sent, "skipped": skipped, "failed": failed}
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
