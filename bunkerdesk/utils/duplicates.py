from collections import defaultdict
from datetime import datetime


def normalize_name(name) -> str:
    return (name or "").strip().lower()


def find_duplicate_groups(records, name_attr: str = "name"):
    """
    Group records whose names match after trimming and lower-casing.

    Only groups with two or more records are returned. Records inside a
    group are newest first; groups are largest first.
    """
    buckets = defaultdict(list)
    for record in records:
        key = normalize_name(getattr(record, name_attr))
        if key:
            buckets[key].append(record)

    groups = []
    for key, members in buckets.items():
        if len(members) < 2:
            continue
        members.sort(key=lambda r: r.created_at or datetime.min, reverse=True)
        groups.append({"name": key, "records": members})

    groups.sort(key=lambda g: len(g["records"]), reverse=True)
    return groups


def ids_to_delete(groups, keep: str = "newest", keep_ids=None):
    """
    Pick the record ids to remove from each duplicate group.

    keep is "newest" or "oldest". keep_ids maps a group name, in any case or
    spacing, to the id the caller chose to keep and takes precedence for
    that group. A chosen id that belongs to a group also wins under any key.
    """
    if keep not in ("newest", "oldest"):
        raise ValueError("keep must be 'newest' or 'oldest'")

    keep_ids = {normalize_name(name): record_id for name, record_id in (keep_ids or {}).items()}
    doomed = []
    for group in groups:
        members = group["records"]
        member_ids = [r.id for r in members]
        chosen = keep_ids.get(group["name"])
        if chosen not in member_ids:
            chosen = next((i for i in keep_ids.values() if i in member_ids), None)
        if chosen not in member_ids:
            chosen = member_ids[0] if keep == "newest" else member_ids[-1]
        doomed.extend(i for i in member_ids if i != chosen)
    return doomed
