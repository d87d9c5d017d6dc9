from bunkerdesk.constants import PRIORITY_RANKS, PRIORITY_RANK_LABELS, PRIORITY_RANK_COLORS

STATUS_SEGMENTS = [
    ("client", "Client", "#16a34a"),
    ("traction", "Traction", "#eab308"),
    ("jammed", "Jammed", "#dc2626"),
    ("none", "None", "#6b7280"),
]


def exclusive_status(contact) -> str:
    """Single status bucket for a contact: client beats traction beats jammed."""
    if contact.is_client:
        return "client"
    if contact.has_traction:
        return "traction"
    if contact.is_jammed:
        return "jammed"
    return "none"


def pie_segments(items):
    """
    Turn (label, value, color) items into pie segments.

    Zero-value items are dropped. Angles start at -90 degrees (12 o'clock)
    and each segment sweeps its share of 360.
    """
    items = [item for item in items if item[1] > 0]
    total = sum(value for _, value, _ in items)
    if total == 0:
        return []

    segments = []
    current = -90.0
    for label, value, color in items:
        sweep = value / total * 360
        segments.append({
            "label": label,
            "value": value,
            "color": color,
            "percentage": value / total * 100,
            "start_angle": current,
            "end_angle": current + sweep,
        })
        current += sweep
    return segments


def contact_statistics(contacts) -> dict:
    status_counts = {key: 0 for key, _, _ in STATUS_SEGMENTS}
    priority_counts = {rank: 0 for rank in PRIORITY_RANKS}
    no_priority = 0

    for contact in contacts:
        status_counts[exclusive_status(contact)] += 1
        if contact.priority_rank is None:
            no_priority += 1
        elif contact.priority_rank in priority_counts:
            priority_counts[contact.priority_rank] += 1

    status_segments = pie_segments(
        [(label, status_counts[key], color) for key, label, color in STATUS_SEGMENTS]
    )
    priority_segments = pie_segments(
        [(PRIORITY_RANK_LABELS[r], priority_counts[r], PRIORITY_RANK_COLORS[r]) for r in PRIORITY_RANKS]
    )

    return {
        "total": len(contacts),
        "status_counts": status_counts,
        "status_segments": status_segments,
        "priority_counts": {str(r): c for r, c in priority_counts.items()},
        "priority_segments": priority_segments,
        "with_priority": sum(priority_counts.values()),
        "no_priority": no_priority,
    }


def priority_board(contacts) -> dict:
    """Contacts ranked 1-5 grouped by rank, each group sorted by name."""
    board = {str(rank): [] for rank in PRIORITY_RANKS if rank > 0}
    for contact in contacts:
        if contact.priority_rank and 1 <= contact.priority_rank <= 5:
            board[str(contact.priority_rank)].append(contact)
    for rank in board:
        board[rank].sort(key=lambda c: (c.name or "").lower())
    return board
