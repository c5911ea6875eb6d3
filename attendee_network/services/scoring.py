"""
Compatibility scoring between two attendees.

The score is made of three parts:

- shared interests: 15 points each, capped at 60
- same company: 20 points
- complementary roles (e.g. an engineer and a designer): 25 points

and is capped at 100. Each contributing part adds one human readable reason.
Scoring is pure and symmetric: ``score_pair(a, b).score == score_pair(b, a).score``.
"""
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import ValidationError

from attendee_network.config.constants import (
    INTEREST_POINTS_PER_SHARED,
    INTEREST_SCORE_CAP,
    SAME_COMPANY_SCORE,
    COMPLEMENTARY_ROLE_SCORE,
    MAX_MATCH_SCORE,
    ROLE_CATEGORY_KEYWORDS,
    COMPLEMENTARY_ROLE_PAIRS,
)
from attendee_network.core.errors import InvalidError
from attendee_network.schemas.profile import AttendeeProfile

_WORD_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class CompatibilityResult:
    score: int
    reasons: List[str] = field(default_factory=list)


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def shared_interests(a: AttendeeProfile, b: AttendeeProfile) -> List[str]:
    """
    Interests both attendees listed, compared trimmed and case-insensitively.

    Returned in ``a``'s order and spelling, without duplicates.
    """
    other = {_normalize(i) for i in b.interests if _normalize(i)}
    shared = []
    seen = set()
    for interest in a.interests:
        key = _normalize(interest)
        if key and key in other and key not in seen:
            seen.add(key)
            shared.append(interest.strip())
    return shared


def classify_role(position: Optional[str]) -> Optional[str]:
    """Map a free-text position to a role category, or None if nothing matches."""
    words = _WORD_RE.findall(_normalize(position))
    if not words:
        return None
    padded = f" {' '.join(words)} "
    tokens = set(words)
    for category, keywords in ROLE_CATEGORY_KEYWORDS:
        for keyword in keywords:
            if " " in keyword:
                if f" {keyword} " in padded:
                    return category
            elif keyword in tokens:
                return category
    return None


def are_complementary(position_a: Optional[str], position_b: Optional[str]) -> bool:
    category_a = classify_role(position_a)
    category_b = classify_role(position_b)
    if not category_a or not category_b or category_a == category_b:
        return False
    return frozenset([category_a, category_b]) in COMPLEMENTARY_ROLE_PAIRS


def _coerce(profile: Any) -> AttendeeProfile:
    if isinstance(profile, AttendeeProfile):
        return profile
    try:
        return AttendeeProfile.model_validate(profile)
    except ValidationError as e:
        raise InvalidError(f"Malformed profile: {e}") from e


def score_pair(viewer: Any, other: Any) -> CompatibilityResult:
    """
    Score how well ``other`` fits ``viewer``.

    Args:
        viewer: Profile of the attendee the suggestion is shown to.
        other: Profile of the suggested attendee.

    Returns:
        CompatibilityResult with an integer score in [0, 100] and the reasons
        of every contributing part, in the order interests, company, role.

    Raises:
        InvalidError: if a profile is malformed or both profiles are the same attendee.
    """
    a = _coerce(viewer)
    b = _coerce(other)
    if a.id == b.id:
        raise InvalidError(f"Cannot score attendee {a.id} against itself")

    reasons: List[str] = []

    shared = shared_interests(a, b)
    interest_score = min(len(shared) * INTEREST_POINTS_PER_SHARED, INTEREST_SCORE_CAP)
    if interest_score > 0:
        plural = "s" if len(shared) != 1 else ""
        reasons.append(f"{len(shared)} shared interest{plural}: {', '.join(shared)}")

    company_score = 0
    company_a, company_b = _normalize(a.company), _normalize(b.company)
    if company_a and company_a == company_b:
        company_score = SAME_COMPANY_SCORE
        reasons.append(f"Also works at {b.company.strip()}")

    role_score = 0
    if are_complementary(a.position, b.position):
        role_score = COMPLEMENTARY_ROLE_SCORE
        reasons.append(f"Complementary role: {b.position.strip()}")

    score = min(interest_score + company_score + role_score, MAX_MATCH_SCORE)
    return CompatibilityResult(score=score, reasons=reasons)
