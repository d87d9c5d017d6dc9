import re


def clean_phone_number(raw: str) -> str:
    """
    Normalize a phone number for storage.

    Keeps a leading "+" and the digits, drops spacing and punctuation.
    International numbers are the norm for shipping contacts, so no
    national format is applied.
    """
    if not raw:
        return raw
    raw = raw.strip()
    plus = raw.startswith("+") or raw.startswith("00")
    digits = re.sub(r"\D", "", raw)
    if raw.startswith("00"):
        digits = digits[2:]
    if not digits:
        return None
    return f"+{digits}" if plus else digits
