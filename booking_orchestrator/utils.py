"""Shared utilities used across the booking orchestrator."""

import difflib
import re
from typing import Iterable, Optional

import phonenumbers

_WORD_DIGITS = {
    "zero": "0", "oh": "0", "o": "0",
    "one": "1", "two": "2", "three": "3", "four": "4", "five": "5",
    "six": "6", "seven": "7", "eight": "8", "nine": "9",
}


def words_to_digits(spoken: str) -> str:
    """Replace spoken digit words with digits, leaving everything else intact.

    Examples:
        >>> words_to_digits("five five five, one two three")
        '555123'
    """
    tokens = re.split(r"[\s\-,.]+", spoken.lower().strip())
    return "".join(_WORD_DIGITS.get(token, token) for token in tokens)


def normalize_phone(value: str, default_region: str = "US") -> str:
    """Normalize a typed or spoken phone number to E.164.

    Numbers that ``phonenumbers`` cannot validate fall back to ``+`` plus
    the bare digits, so a contact upsert still receives something usable.

    Examples:
        >>> normalize_phone("(555) 010-9999 ", "US")
        '+15550109999'
        >>> normalize_phone("+61 412 345 678")
        '+61412345678'
    """
    raw = value.strip()
    converted = words_to_digits(raw) if re.search(r"[a-zA-Z]", raw) else raw
    digits = re.sub(r"[^\d]", "", converted)
    candidate = "+" + digits if converted.lstrip().startswith("+") else digits
    try:
        parsed = phonenumbers.parse(candidate, default_region)
    except phonenumbers.NumberParseException:
        return "+" + digits
    if phonenumbers.is_possible_number(parsed):
        return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
    return "+" + digits


def split_name(full_name: str) -> tuple[str, str]:
    """Split a caller's name into (first, last); last may be empty."""
    parts = full_name.strip().split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def title_case(value: str) -> str:
    """Title-case each space-separated word: ``"deep tissue"`` -> ``"Deep Tissue"``."""
    return " ".join(word[:1].upper() + word[1:] for word in value.lower().split(" "))


def casefold_equal(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return a.strip().casefold() == b.strip().casefold()


def suggest_name(query: str, candidates: Iterable[str]) -> Optional[str]:
    """Return the most plausible candidate for a misheard or partial name.

    Containment wins over fuzzy similarity: "Deluxe" suggests
    "Deluxe Spa Day" even though the edit distance is large.
    """
    options = [c for c in candidates if c]
    needle = query.strip().casefold()
    if not needle or not options:
        return None
    for option in options:
        folded = option.casefold()
        if needle in folded or folded in needle:
            return option
    by_folded = {option.casefold(): option for option in options}
    close = difflib.get_close_matches(needle, list(by_folded), n=1, cutoff=0.6)
    return by_folded[close[0]] if close else None
