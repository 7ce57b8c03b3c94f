"""
Turns a free-text chat line like "Pérez 12345" into a BookingDraft.

The accepted shape is <last name><whitespace><booking number>, anchored at
both ends. Most conversational messages will not match and parse() returns
None for them; callers ignore those messages instead of replying with an error.
"""
from typing import Optional

from novadesk.models.db_models import BookingDraft

MIN_BOOKING_DIGITS = 4

ASCII_DIGITS = frozenset("0123456789")

# Latin letters, accented vowels, Ü/Ñ, apostrophe, hyphen and space.
# Other Unicode letters are rejected on purpose.
NAME_ALPHABET = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "ÁÉÍÓÚÜÑáéíóúüñ"
    "'- "
)


def is_booking_number(text: str) -> bool:
    return len(text) >= MIN_BOOKING_DIGITS and all(ch in ASCII_DIGITS for ch in text)


def is_last_name(text: str) -> bool:
    return bool(text) and all(ch in NAME_ALPHABET for ch in text)


def _split_trailing_digits(text: str):
    """Returns (prefix, digits) where digits is the maximal trailing ASCII digit run."""
    end = len(text)
    start = end
    while start > 0 and text[start - 1] in ASCII_DIGITS:
        start -= 1
    return text[:start], text[start:]


def parse(raw_text: Optional[str]) -> Optional[BookingDraft]:
    """
    Returns a BookingDraft for "<name> <digits>" messages, None otherwise.
    """
    if not raw_text:
        return None

    text = raw_text.strip()
    prefix, digits = _split_trailing_digits(text)

    if not is_booking_number(digits):
        return None

    # At least one whitespace character must separate name and number
    if not prefix or not prefix[-1].isspace():
        return None

    name_part = prefix.rstrip()
    if not is_last_name(name_part):
        return None

    last_name = name_part.strip()
    if not last_name:
        return None

    return BookingDraft(last_name=last_name, booking_number=digits)
