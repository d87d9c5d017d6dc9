from datetime import datetime, timedelta
from types import SimpleNamespace

from bunkerdesk.database import SessionLocal
from bunkerdesk.models import Call, Contact, ContactPerson, NotificationSettings
from bunkerdesk.utils.reminder_digest import find_due_reminders, render_digest_html
from bunkerdesk.workers import reminder_jobs

NOW = datetime(2024, 5, 10, 9, 0)


def test_only_contacts_due_in_exactly_n_days_are_picked():
    contacts = [
        SimpleNamespace(id=1, name="Due tomorrow", company="Harbour Marine", reminder_days=7,
                        created_at=NOW - timedelta(days=30)),
        SimpleNamespace(id=2, name="Due in three", company=None, reminder_days=5,
                        created_at=NOW - timedelta(days=2)),
        SimpleNamespace(id=3, name="No reminder", company=None, reminder_days=None,
                        created_at=NOW - timedelta(days=30)),
    ]
    person = SimpleNamespace(name="Ana Lim", phone="+6561234567", email="ana@harbour.example")

    reminders = find_due_reminders(contacts, {1: NOW - timedelta(days=6)}, {1: person}, 1, NOW)

    assert [r["contact_id"] for r in reminders] == [1]
    assert reminders[0]["primary_person"] == "Ana Lim"
    assert reminders[0]["next_call_date"] == NOW + timedelta(days=1)

    assert [r["contact_id"] for r in find_due_reminders(contacts, {}, {}, 3, NOW)] == [2]


def test_digest_html_escapes_names():
    html = render_digest_html([{
        "contact": "<Lion> & Co",
        "company": None,
        "days_until_due": 1,
        "primary_person": None,
    }], NOW)

    assert "Call Reminders - 10/05/2024" in html
    assert "&lt;Lion&gt; &amp; Co" in html
    assert "You have 1 contact(s)" in html


def seed_due_contact(user_id, email="me@example.com", enabled=True):
    session = SessionLocal()
    try:
        contact = Contact(user_id=user_id, name="Lion City Bunkers", reminder_days=7)
        contact.persons.append(ContactPerson(name="Ana Lim", phone="+6561234567", is_primary=True))
        session.add(contact)
        session.flush()
        session.add(Call(user_id=user_id, contact_id=contact.id, call_date=datetime.utcnow() - timedelta(days=6)))
        session.add(NotificationSettings(user_id=user_id, user_email=email,
                                         days_before_reminder=1, enabled=enabled))
        session.commit()
    finally:
        session.close()


def test_build_digest_stamps_last_check(user_id):
    seed_due_contact(user_id)
    session = SessionLocal()
    try:
        settings = session.query(NotificationSettings).filter_by(user_id=user_id).one()
        now = datetime.utcnow()
        digest = reminder_jobs.build_reminder_digest(session, settings, now)

        assert digest["recipient"] == "me@example.com"
        assert digest["subject"] == "Call Reminders - 1 contact(s) due"
        assert digest["reminders"][0]["primary_phone"] == "+6561234567"
        assert settings.last_check == now
    finally:
        session.close()


def test_job_sends_one_mail_per_user_with_due_contacts(user_id, monkeypatch):
    seed_due_contact(user_id)
    outbox = []

    def fake_send(subject, recipient, body, html=False):
        outbox.append((subject, recipient, html))
        return True

    monkeypatch.setattr(reminder_jobs, "send_email_sync", fake_send)

    result = reminder_jobs.run_reminder_digest_job()

    assert result == {"sent": 1, "skipped": 0, "failed": 0}
    assert outbox == [("Call Reminders - 1 contact(s) due", "me@example.com", True)]

    session = SessionLocal()
    try:
        assert session.query(NotificationSettings).filter_by(user_id=user_id).one().last_check is not None
    finally:
        session.close()


def test_job_skips_disabled_settings(user_id, monkeypatch):
    seed_due_contact(user_id, enabled=False)
    monkeypatch.setattr(reminder_jobs, "send_email_sync", lambda *a, **k: True)

    assert reminder_jobs.run_reminder_digest_job() == {"sent": 0, "skipped": 0, "failed": 0}
