"""
Name parsing utilities for citation rendering.
"""
from typing import Tuple


def split_name(name: str) -> Tuple[str, str]:
    """
    Split a display name into (given, last).

    The final whitespace-separated token is the last name and everything
    before it is the given name(s). Single-token names come back as
    ("", name) so callers can pass them through unchanged.

    Examples:
        "Jane A. Doe" -> ("Jane A.", "Doe")
        "Plato" -> ("", "Plato")
    """
    parts = (name or "").split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return "", parts[0]
    return " ".join(parts[:-1]), parts[-1]


def initials(given: str) -> str:
    """
    Turn given names into initials.

    Hyphenated given names keep the hyphen ("Jean-Paul" -> "J.-P.").
    """
    result = []
    for token in given.split():
        pieces = [p for p in token.split("-") if p]
        if not pieces:
            continue
        result.append("-".join(p[0].upper() + "." for p in pieces))
    return " ".join(result)


def last_first_initials(name: str) -> str:
    """Jane A. Doe -> Doe, J. A. (APA)."""
    given, last = split_name(name)
    if not given:
        return last
    return f"{last}, {initials(given)}"


def last_first_full(name: str) -> str:
    """Jane A. Doe -> Doe, Jane A. (Chicago, first author)."""
    given, last = split_name(name)
    if not given:
        return last
    return f"{last}, {given}"


def initials_last(name: str) -> str:
    """Jane A. Doe -> J. A. Doe (IEEE)."""
    given, last = split_name(name)
    if not given:
        return last
    return f"{initials(given)} {last}"


def full_name(name: str) -> str:
    """Collapse runs of whitespace in a display name."""
    return " ".join((name or "").split())
