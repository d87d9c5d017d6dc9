from datetime import date, datetime
from types import SimpleNamespace

import pytest

from bunkerdesk.utils.goal_progress import calculate_goal_progress, format_time_remaining, parse_hhmm


def make_goal(target=10, start_time="09:00", target_time="17:00", manual_count=0):
    return SimpleNamespace(
        id=1,
        goal_type="calls",
        target_amount=target,
        start_time=start_time,
        target_time=target_time,
        target_date=date(2024, 5, 1),
        manual_count=manual_count,
    )


def test_only_activity_on_the_target_day_counts():
    stamps = [
        datetime(2024, 5, 1, 9, 30),
        datetime(2024, 5, 1, 10, 15),
        datetime(2024, 4, 30, 23, 59),
        None,
    ]
    progress = calculate_goal_progress(make_goal(), stamps, datetime(2024, 5, 1, 11, 0))

    assert progress["current_amount"] == 2
    assert progress["time_remaining"] == "6h 0m"


def test_manual_count_is_added_to_logged_activity():
    progress = calculate_goal_progress(make_goal(manual_count=3), [datetime(2024, 5, 1, 9, 30)],
                                       datetime(2024, 5, 1, 10, 0))
    assert progress["current_amount"] == 4


def test_on_track_compares_against_linear_pace():
    # Half way through a 09:00-17:00 window
    now = datetime(2024, 5, 1, 13, 0)
    ahead = calculate_goal_progress(make_goal(manual_count=5), [], now)
    behind = calculate_goal_progress(make_goal(manual_count=4), [], now)

    assert ahead["on_track"] is True
    assert ahead["status"] == "on_track"
    assert behind["on_track"] is False
    assert behind["status"] == "behind"
    assert behind["required_rate"] == pytest.approx(6 / 4)


def test_percent_can_exceed_hundred_but_bar_is_capped():
    progress = calculate_goal_progress(make_goal(target=4, manual_count=6), [], datetime(2024, 5, 1, 12, 0))

    assert progress["percent_complete"] == pytest.approx(150.0)
    assert progress["bar_percent"] == 100.0
    assert progress["status"] == "complete"
    assert progress["required_rate"] == 0.0


def test_expired_goal():
    now = datetime(2024, 5, 1, 18, 0)
    missed = calculate_goal_progress(make_goal(manual_count=2), [], now)
    met = calculate_goal_progress(make_goal(manual_count=10), [], now)

    assert missed["status"] == "expired"
    assert missed["on_track"] is False
    assert missed["time_remaining"] == "Expired"
    assert missed["required_rate"] == 0.0
    assert met["status"] == "complete"
    assert met["on_track"] is True


def test_window_defaults_to_midnight_without_start_time():
    # 12:00 is 12/17 of the way to a 17:00 deadline, so 12 calls are due by now
    progress = calculate_goal_progress(make_goal(target=17, start_time=None, manual_count=13), [],
                                       datetime(2024, 5, 1, 12, 0))
    assert progress["on_track"] is True

    progress = calculate_goal_progress(make_goal(target=17, start_time=None, manual_count=11), [],
                                       datetime(2024, 5, 1, 12, 0))
    assert progress["on_track"] is False


def test_format_time_remaining_minutes_only():
    assert format_time_remaining(datetime(2024, 5, 1, 17, 0), datetime(2024, 5, 1, 16, 15)) == "45m"


def test_parse_hhmm_rejects_garbage():
    with pytest.raises(ValueError):
        parse_hhmm("noon")
    with pytest.raises(ValueError):
        parse_hhmm("12:75")
