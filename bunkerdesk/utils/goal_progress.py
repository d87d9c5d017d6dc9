"""
Daily goal progress calculations.

All times are naive UTC datetimes. A goal's window runs from its
start_time (or midnight) to target_time on target_date.
"""
from datetime import datetime, date, time
from typing import Iterable, Optional


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" (seconds are tolerated and ignored)."""
    parts = value.split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return time(hour, minute)


def goal_deadline(goal) -> datetime:
    return datetime.combine(goal.target_date, parse_hhmm(goal.target_time))


def goal_window_start(goal) -> datetime:
    start = parse_hhmm(goal.start_time) if goal.start_time else time(0, 0)
    return datetime.combine(goal.target_date, start)


def format_time_remaining(deadline: datetime, now: datetime) -> str:
    remaining = (deadline - now).total_seconds()
    if remaining <= 0:
        return "Expired"
    hours = int(remaining // 3600)
    minutes = int((remaining % 3600) // 60)
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


def count_on_day(timestamps: Iterable[Optional[datetime]], day: date) -> int:
    return sum(1 for ts in timestamps if ts is not None and ts.date() == day)


def calculate_goal_progress(goal, activity_timestamps: Iterable[Optional[datetime]], now: datetime) -> dict:
    """
    Work out how far along a daily goal is.

    activity_timestamps are the call, email or deal dates matching the
    goal's type; only those on target_date count, plus manual_count.
    """
    current = count_on_day(activity_timestamps, goal.target_date) + (goal.manual_count or 0)
    target = goal.target_amount

    percent_complete = current / target * 100
    bar_percent = min(percent_complete, 100.0)

    deadline = goal_deadline(goal)
    window_start = goal_window_start(goal)
    expired = deadline <= now

    hours_remaining = max(0.0, (deadline - now).total_seconds() / 3600)
    remaining = max(0, target - current)
    required_rate = remaining / hours_remaining if (not expired and remaining > 0) else 0.0

    if expired:
        on_track = current >= target
    else:
        window = (deadline - window_start).total_seconds()
        if window <= 0:
            fraction = 1.0
        else:
            fraction = (now - window_start).total_seconds() / window
        expected = min(max(fraction, 0.0), 1.0) * target
        on_track = current >= expected

    if current >= target:
        status = "complete"
    elif expired:
        status = "expired"
    elif on_track:
        status = "on_track"
    else:
        status = "behind"

    return {
        "goal_id": goal.id,
        "goal_type": goal.goal_type,
        "current_amount": current,
        "target_amount": target,
        "percent_complete": percent_complete,
        "bar_percent": bar_percent,
        "time_remaining": format_time_remaining(deadline, now),
        "required_rate": required_rate,
        "on_track": on_track,
        "status": status,
        "deadline": deadline,
    }
