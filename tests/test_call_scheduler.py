from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from bunkerdesk.utils.call_scheduler import (
    ScheduleError,
    analyze_contact_priority,
    generate_call_schedule,
    insert_slot,
    next_free_time,
    remove_slot,
    reorder_slots,
)
from bunkerdesk.utils.timezones import end_of_business_utc

NOW = datetime(2024, 5, 1, 8, 0)


def candidate(id, name, **fields):
    return {"id": id, "name": name, "company": None, **fields}


def slot(id, minutes, order, duration=10):
    return SimpleNamespace(
        id=id,
        scheduled_time=NOW + timedelta(minutes=minutes),
        call_duration_mins=duration,
        display_order=order,
    )


def test_priority_classification():
    assert analyze_contact_priority({"last_call_date": NOW - timedelta(days=7)}, NOW) == "Warm"
    assert analyze_contact_priority({"is_client": True}, NOW) == "High Value"
    assert analyze_contact_priority({"total_deals": 2, "last_email_date": NOW - timedelta(days=20)}, NOW) == "High Value"
    assert analyze_contact_priority({"is_overdue": True}, NOW) == "Follow-Up"
    assert analyze_contact_priority({"last_call_date": NOW - timedelta(days=45)}, NOW) == "Follow-Up"
    assert analyze_contact_priority({}, NOW) == "Cold"


def test_end_of_business_uses_fixed_offsets():
    assert end_of_business_utc("Asia/Singapore", NOW) == datetime(2024, 5, 1, 10, 0)
    assert end_of_business_utc("Europe/London", NOW) == datetime(2024, 5, 1, 17, 0)
    assert end_of_business_utc("Not/AZone", NOW) == datetime(2024, 5, 1, 17, 0)


def test_generate_schedules_earliest_closing_zone_first_and_pads_with_prospects():
    candidates = [
        candidate(1, "Harbour Marine", timezone="Europe/London", is_client=True),
        candidate(2, "Lion City Bunkers", timezone="Asia/Singapore", last_call_date=NOW - timedelta(days=2)),
        candidate(3, "Blocked Co", timezone="Europe/London", is_jammed=True),
        candidate(4, "Fresh Lead"),
    ]

    schedule = generate_call_schedule(candidates, total_calls=5, deadline=NOW + timedelta(hours=4),
                                      call_duration_mins=10, now=NOW)

    assert [s["contact_name"] for s in schedule] == [
        "Lion City Bunkers", "Harbour Marine", "Fresh Lead", "Prospect #4", "Prospect #5",
    ]
    assert [s["priority_label"] for s in schedule[:3]] == ["Warm", "High Value", "Cold"]
    assert [s["timezone_label"] for s in schedule[:3]] == ["Singapore", "UK", "UK"]
    assert schedule[1]["contact_status"] == "client"
    assert schedule[3]["is_suggested"] is True
    assert schedule[3]["contact_id"] is None
    assert [s["display_order"] for s in schedule] == [0, 1, 2, 3, 4]
    assert [s["scheduled_time"] for s in schedule] == [NOW + timedelta(minutes=15 * i) for i in range(5)]


def test_generate_stops_at_deadline():
    schedule = generate_call_schedule([], total_calls=10, deadline=NOW + timedelta(minutes=20),
                                      call_duration_mins=10, now=NOW)
    assert len(schedule) == 2


def test_reorder_retimes_from_earliest_slot():
    slots = [slot(1, 0, 0), slot(2, 15, 1, duration=20), slot(3, 50, 2)]

    ordered = reorder_slots(slots, [3, 1, 2])

    assert [s.id for s in ordered] == [3, 1, 2]
    assert [s.display_order for s in ordered] == [0, 1, 2]
    assert [s.scheduled_time for s in ordered] == [
        NOW, NOW + timedelta(minutes=15), NOW + timedelta(minutes=30),
    ]


@pytest.mark.parametrize("ids", [[1, 2], [1, 2, 2], [1, 2, 4]])
def test_reorder_requires_a_permutation(ids):
    with pytest.raises(ScheduleError):
        reorder_slots([slot(1, 0, 0), slot(2, 15, 1), slot(3, 30, 2)], ids)


def test_insert_at_front_shifts_the_rest():
    slots = [slot(1, 0, 0), slot(2, 15, 1)]
    new = SimpleNamespace(id=None, scheduled_time=None, call_duration_mins=30, display_order=2)

    ordered = insert_slot(slots, new, 0, NOW)

    assert ordered[0] is new
    assert [s.display_order for s in ordered] == [0, 1, 2]
    assert ordered[1].scheduled_time == NOW + timedelta(minutes=35)
    assert ordered[2].scheduled_time == NOW + timedelta(minutes=50)


def test_insert_into_empty_schedule_uses_requested_time():
    new = SimpleNamespace(id=None, scheduled_time=NOW + timedelta(hours=1), call_duration_mins=10, display_order=0)
    ordered = insert_slot([], new, 5, NOW)
    assert ordered == [new]
    assert new.scheduled_time == NOW + timedelta(hours=1)


def test_remove_compacts_order_and_keeps_times():
    slots = [slot(1, 0, 0), slot(2, 15, 1), slot(3, 30, 2)]

    remaining = remove_slot(slots, 2)

    assert [s.id for s in remaining] == [1, 3]
    assert [s.display_order for s in remaining] == [0, 1]
    assert remaining[1].scheduled_time == NOW + timedelta(minutes=30)

    with pytest.raises(ScheduleError):
        remove_slot(remaining, 99)


def test_next_free_time_follows_the_last_slot_in_order():
    slots = [slot(1, 0, 0), slot(2, 15, 1, duration=30)]

    assert next_free_time(slots) == NOW + timedelta(minutes=15 + 30 + 5)
    assert next_free_time([]) is None


def test_generate_can_start_after_existing_slots():
    start = NOW + timedelta(minutes=45)

    schedule = generate_call_schedule([], total_calls=2, deadline=NOW + timedelta(hours=2),
                                      call_duration_mins=10, now=NOW, start=start)

    assert [s["scheduled_time"] for s in schedule] == [start, start + timedelta(minutes=15)]


def test_generate_never_starts_in_the_past():
    schedule = generate_call_schedule([], total_calls=1, deadline=NOW + timedelta(hours=2),
                                      call_duration_mins=10, now=NOW, start=NOW - timedelta(hours=1))

    assert schedule[0]["scheduled_time"] == NOW
