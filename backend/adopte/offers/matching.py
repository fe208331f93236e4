"""Match score between a student's skills and an offer's required skills."""

from collections.abc import Iterable
from datetime import datetime


def calculate_match_score(student_skills: Iterable[str], offer_skills: Iterable[str]) -> int:
    """Percentage (0-100) of the offer's required skills the student has.

    Extra student skills neither help nor hurt. An offer with no required
    skills, or a student with none, scores 0. Halves round up.
    """
    required = {name.casefold() for name in offer_skills if name}
    if not required:
        return 0
    owned = {name.casefold() for name in student_skills if name}
    if not owned:
        return 0
    matched = len(required & owned)
    return (200 * matched + len(required)) // (2 * len(required))


def relevance_key(score: int, created_at: datetime | None, offer_id) -> tuple:
    """Sort key: highest score first, then newest, then id for a stable order."""
    timestamp = created_at.timestamp() if created_at else 0.0
    return (-score, -timestamp, str(offer_id))
