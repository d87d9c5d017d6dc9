"""
Call schedule generation and slot layout.

Candidates are plain dicts holding contact fields (id, name, company,
timezone, is_client, is_jammed, has_traction) merged with the contact's
activity summary (last_call_date, last_email_date, total_deals,
pending_tasks, is_overdue).

Slots are any objects with scheduled_time, call_duration_mins and
display_order attributes, so the layout helpers work on ORM rows directly.
"""
import math
from collections import OrderedDict
from datetime import datetime, timedelta

from bunkerdesk.config import CALL_BUFFER_MINUTES, DEFAULT_TIMEZONE
from bunkerdesk.utils.timezones import end_of_business_utc, timezone_label

PRIORITY_WEIGHTS = OrderedDict([
    ("Warm", 0.3),
    ("Follow-Up", 0.25),
    ("High Value", 0.25),
    ("Cold", 0.2),
])

WARM_WITHIN_DAYS = 7
STALE_AFTER_DAYS = 30


class ScheduleError(ValueError):
    """Raised when a schedule change would break the slot layout."""


def _last_contacted(candidate):
    dates = [d for d in (candidate.get("last_call_date"), candidate.get("last_email_date")) if d]
    return max(dates) if dates else None


def analyze_contact_priority(candidate: dict, now: datetime) -> str:
    """Classify a contact as Warm, High Value, Follow-Up or Cold."""
    last = _last_contacted(candidate)
    days_since = (now - last).total_seconds() / 86400 if last else None

    if days_since is not None and days_since <= WARM_WITHIN_DAYS:
        return "Warm"
    if (candidate.get("total_deals") or 0) > 0 or candidate.get("is_client"):
        return "High Value"
    if candidate.get("is_overdue") or (candidate.get("pending_tasks") or 0) > 0:
        return "Follow-Up"
    if days_since is not None and days_since >= STALE_AFTER_DAYS:
        return "Follow-Up"
    return "Cold"


def reason_text(candidate: dict, priority: str) -> str:
    if priority == "Warm":
        return "Recent activity"
    if priority == "Follow-Up":
        return "Overdue follow-up" if candidate.get("is_overdue") else "Needs follow-up"
    if priority == "High Value":
        return "Existing client" if candidate.get("is_client") else "Strategic target"
    return "New prospect"


def contact_status(candidate: dict) -> str:
    if candidate.get("is_jammed"):
        return "jammed"
    if candidate.get("is_client"):
        return "client"
    if candidate.get("has_traction"):
        return "traction"
    return "none"


def suggest_contacts(candidates, count: int, priority: str, now: datetime):
    """Pick up to count candidates with the given priority, best first."""
    matching = [c for c in candidates if analyze_contact_priority(c, now) == priority]

    if priority in ("Warm", "Follow-Up"):
        matching.sort(key=lambda c: c.get("last_call_date") or datetime.min, reverse=True)
    elif priority == "High Value":
        matching.sort(
            key=lambda c: (10 if c.get("is_client") else 0) + (c.get("total_deals") or 0),
            reverse=True,
        )

    return [
        {
            "candidate": c,
            "contact_name": c.get("name") or c.get("company") or "Unknown",
            "priority_label": priority,
            "timezone_label": timezone_label(c.get("timezone") or DEFAULT_TIMEZONE),
            "reason": reason_text(c, priority),
        }
        for c in matching[:count]
    ]


def generate_call_schedule(candidates, total_calls: int, deadline: datetime,
                           call_duration_mins: int, now: datetime,
                           buffer_minutes: int = CALL_BUFFER_MINUTES, start: datetime = None):
    """
    Plan up to total_calls slots between start (default now) and deadline.

    Returns a list of slot field dicts in display order.
    """
    step = timedelta(minutes=call_duration_mins + buffer_minutes)
    current = max(start, now) if start else now
    schedule = []

    by_timezone = OrderedDict()
    for candidate in candidates:
        if candidate.get("is_jammed"):
            continue
        by_timezone.setdefault(candidate.get("timezone") or DEFAULT_TIMEZONE, []).append(candidate)

    zones = sorted(by_timezone, key=lambda name: end_of_business_utc(name, now))

    def add_slot(**fields):
        nonlocal current
        fields.update({
            "scheduled_time": current,
            "call_duration_mins": call_duration_mins,
            "completed": False,
            "display_order": len(schedule),
        })
        schedule.append(fields)
        current = current + step

    if zones:
        calls_per_zone = math.ceil(total_calls / len(zones))
        for zone in zones:
            for priority, weight in PRIORITY_WEIGHTS.items():
                count = math.ceil(calls_per_zone * weight)
                for suggestion in suggest_contacts(by_timezone[zone], count, priority, now):
                    if len(schedule) >= total_calls or current >= deadline:
                        break
                    candidate = suggestion["candidate"]
                    add_slot(
                        contact_id=candidate.get("id"),
                        contact_name=suggestion["contact_name"],
                        priority_label=priority,
                        contact_status=contact_status(candidate),
                        is_suggested=False,
                        timezone_label=suggestion["timezone_label"],
                        notes=suggestion["reason"],
                    )

    while len(schedule) < total_calls and current < deadline:
        add_slot(
            contact_id=None,
            contact_name=f"Prospect #{len(schedule) + 1}",
            priority_label="Cold",
            contact_status="none",
            is_suggested=True,
            timezone_label="To be assigned",
            notes="New prospect - manual assignment needed",
        )

    return schedule[:total_calls]


def relayout_slots(slots, anchor: datetime, buffer_minutes: int = CALL_BUFFER_MINUTES):
    """Number slots 0..n-1 and chain their times back to back from anchor."""
    current = anchor
    for index, slot in enumerate(slots):
        slot.display_order = index
        slot.scheduled_time = current
        current = current + timedelta(minutes=(slot.call_duration_mins or 0) + buffer_minutes)
    return slots


def next_free_time(slots, buffer_minutes: int = CALL_BUFFER_MINUTES):
    """When the last slot in display order ends plus the buffer, or None if no slot is timed."""
    timed = [s for s in slots if s.scheduled_time is not None]
    if not timed:
        return None
    last = max(timed, key=lambda s: s.display_order)
    return last.scheduled_time + timedelta(minutes=(last.call_duration_mins or 0) + buffer_minutes)


def _earliest(slots):
    times = [s.scheduled_time for s in slots if s.scheduled_time is not None]
    return min(times) if times else None


def reorder_slots(slots, ordered_ids, buffer_minutes: int = CALL_BUFFER_MINUTES):
    """
    Put slots in the order given by ordered_ids and retime them.

    ordered_ids must name every slot exactly once.
    """
    by_id = {s.id: s for s in slots}
    if len(ordered_ids) != len(by_id) or set(ordered_ids) != set(by_id):
        raise ScheduleError("Slot ids must be a permutation of the schedule")

    anchor = _earliest(slots)
    ordered = [by_id[i] for i in ordered_ids]
    return relayout_slots(ordered, anchor, buffer_minutes)


def insert_slot(slots, new_slot, position: int, now: datetime,
                buffer_minutes: int = CALL_BUFFER_MINUTES):
    """Insert new_slot at position (clamped to the list) and retime."""
    ordered = sorted(slots, key=lambda s: s.display_order)
    anchor = _earliest(ordered)
    if anchor is None:
        anchor = new_slot.scheduled_time or now

    position = max(0, min(position, len(ordered)))
    ordered.insert(position, new_slot)
    return relayout_slots(ordered, anchor, buffer_minutes)


def remove_slot(slots, slot_id):
    """Drop a slot and close the gap in display_order; times are left alone."""
    ordered = sorted((s for s in slots if s.id != slot_id), key=lambda s: s.display_order)
    if len(ordered) == len(slots):
        raise ScheduleError("Slot not found in schedule")
    for index, slot in enumerate(ordered):
        slot.display_order = index
    return ordered
