"""Display helpers for player names."""
import re

_COMBINED_SEPARATOR = re.compile(r"\s*(?:&|\band\b)\s*", re.IGNORECASE)


def first_name(full_name: str) -> str:
    """'Mary Jane Watson' -> 'Mary'. Empty or missing names come back as ''."""
    if not full_name or not full_name.strip():
        return ""
    return full_name.split()[0]


def combined_first_names(combined: str) -> str:
    """'John Smith & Mary Johnson' -> 'John & Mary'. Accepts '&' or 'and' as separator."""
    if not combined or not combined.strip():
        return ""
    parts = [p for p in _COMBINED_SEPARATOR.split(combined.strip()) if p.strip()]
    return " & ".join(first_name(p) for p in parts)


def pod_display_name(players) -> str:
    """'John Smith', 'Mary Jones' -> 'John Smith & Mary Jones'."""
    return " & ".join(p.strip() for p in players if p and p.strip())
