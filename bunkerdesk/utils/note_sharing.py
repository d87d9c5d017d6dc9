"""
Access rules for saved notes shared between users.
"""


class ShareError(ValueError):
    """Raised when a share request is not allowed."""


def find_share(note, user_id):
    for share in note.shares:
        if share.shared_with == user_id:
            return share
    return None


def can_view(note, user_id) -> bool:
    return note.user_id == user_id or find_share(note, user_id) is not None


def can_edit(note, user_id) -> bool:
    if note.user_id == user_id:
        return True
    share = find_share(note, user_id)
    return bool(share and share.can_edit)


def check_share_allowed(note, sharer_id, recipient_id):
    """Only the owner may share, and never with themselves."""
    if note.user_id != sharer_id:
        raise ShareError("Only the note owner can share it")
    if recipient_id == sharer_id:
        raise ShareError("You cannot share a note with yourself")
