"""
Call reminder digest: which contacts are due a call in N days.
"""
import html
from datetime import datetime

from bunkerdesk.utils.contact_activity import compute_next_call_due


def find_due_reminders(contacts, last_call_dates: dict, primary_persons: dict,
                       days_before_reminder: int, now: datetime):
    """
    Pick contacts whose next call falls exactly days_before_reminder days out.

    last_call_dates maps contact id to its latest call date; primary_persons
    maps contact id to its primary ContactPerson (or nothing).
    """
    reminders = []
    for contact in contacts:
        next_call, days_until_due, _ = compute_next_call_due(
            contact.reminder_days, last_call_dates.get(contact.id), contact.created_at, now
        )
        if next_call is None or days_until_due != days_before_reminder:
            continue

        person = primary_persons.get(contact.id)
        reminders.append({
            "contact_id": contact.id,
            "contact": contact.name,
            "company": contact.company,
            "primary_person": person.name if person else None,
            "primary_phone": person.phone if person else None,
            "primary_email": person.email if person else None,
            "days_until_due": days_until_due,
            "next_call_date": next_call,
        })
    return reminders


def _e(value) -> str:
    return html.escape(str(value))


def render_digest_html(reminders, now: datetime) -> str:
    body = [f"<h2>Call Reminders - {now.strftime('%d/%m/%Y')}</h2>"]
    body.append(f"<p>You have {len(reminders)} contact(s) that need calling soon:</p>")
    body.append("<ul>")

    for reminder in reminders:
        item = f"<li><strong>{_e(reminder['contact'])}</strong>"
        if reminder.get("company"):
            item += f" ({_e(reminder['company'])})"
        item += f"<br/>Call due in {reminder['days_until_due']} day(s)"
        if reminder.get("primary_person"):
            item += f"<br/>PIC: {_e(reminder['primary_person'])}"
            if reminder.get("primary_phone"):
                item += f" - {_e(reminder['primary_phone'])}"
            if reminder.get("primary_email"):
                item += f" - {_e(reminder['primary_email'])}"
        item += "</li><br/>"
        body.append(item)

    body.append("</ul>")
    return "".join(body)
