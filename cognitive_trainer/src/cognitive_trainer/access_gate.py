"""
Access Gate

Readiness-based unlock check for premium categories. Independent of the
subscription entitlement consulted when a session starts.
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Union

from cognitive_trainer.config import DEFAULT_REQUIRED_LEVEL
from cognitive_trainer.readiness_calculator import ReadinessLevel, ReadinessProfile


@dataclass(frozen=True)
class AccessDecision:
    """Result of an access check."""
    granted: bool
    remaining: int
    level: int
    required_level: int


class AccessGate:
    """Pure predicate over a readiness profile."""

    def __init__(self, required_level: int = DEFAULT_REQUIRED_LEVEL):
        self.required_level = required_level

    def has_access(
        self,
        profile: Union[ReadinessProfile, Mapping[str, Union[int, ReadinessLevel]]],
        category: str,
        required_level: Optional[int] = None
    ) -> AccessDecision:
        """
        Check whether a category is unlocked.

        Args:
            profile: ReadinessProfile or mapping of category -> level
            category: Category to check; unknown categories read as level 0
            required_level: Threshold override (default: the gate's threshold)

        Returns:
            AccessDecision with remaining = max(0, required - level)
        """
        required = self.required_level if required_level is None else required_level
        level = _level_of(profile, category)
        return AccessDecision(
            granted=level >= required,
            remaining=max(0, required - level),
            level=level,
            required_level=required,
        )


def _level_of(profile, category: str) -> int:
    if isinstance(profile, ReadinessProfile):
        return profile.level(category)
    value = (profile or {}).get(category, 0)
    if isinstance(value, ReadinessLevel):
        return value.level
    return int(value or 0)
