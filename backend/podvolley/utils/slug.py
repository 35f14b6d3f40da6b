import re
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

MONTH_NAMES = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")

MAX_SLUG_ATTEMPTS = 100


def generate_slug(name: str, date: datetime) -> str:
    """
    Slug from tournament name and date: "{name}-{month}-{year}".
    "Two Peas in a Pod", Dec 2025 -> "two-peas-in-a-pod-dec-2025". Not guaranteed unique.
    """
    base = name.lower()
    base = re.sub(r"[^a-z0-9\s-]", "", base)
    base = re.sub(r"\s+", "-", base)
    base = re.sub(r"-+", "-", base).strip("-")
    return f"{base}-{MONTH_NAMES[date.month - 1]}-{date.year}"


def is_valid_slug(slug: str) -> bool:
    return bool(SLUG_PATTERN.match(slug))


def ensure_unique_slug(session: Session, base_slug: str, exclude_tournament_id: Optional[int] = None) -> str:
    """Append -2, -3, ... until no other tournament uses the slug."""
    from podvolley.models.tournament import Tournament

    slug = base_slug
    counter = 2
    while True:
        query = select(Tournament.id).where(Tournament.slug == slug)
        if exclude_tournament_id is not None:
            query = query.where(Tournament.id != exclude_tournament_id)
        if session.exec(query).first() is None:
            return slug
        slug = f"{base_slug}-{counter}"
        counter += 1
        if counter > MAX_SLUG_ATTEMPTS:
            raise ValueError(f"Could not generate unique slug after {MAX_SLUG_ATTEMPTS} attempts")
