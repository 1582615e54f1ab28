"""
Readiness Calculator

Readiness level (0-100) per category from recent session completion.

    completion_ratio = min(completed, expected) / expected
    level            = min(100, floor(completion_ratio * 100 * modifier))
    overall          = floor(mean of the named category levels)

Only entries inside the rolling window count. Levels are floored, so a raw
82.5 reads as 82. The result is a signal; what it unlocks is decided by
AccessGate.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from cognitive_trainer.config import (
    DEFAULT_CATEGORY_MODIFIERS,
    DEFAULT_EXPECTED_SESSIONS,
    DEFAULT_READINESS_WINDOW_DAYS,
    OVERALL_CATEGORY,
)
from cognitive_trainer.session_state import HistoryEntry

# Guards floor() against float noise such as 0.29 * 100 == 28.999999999999996
_FLOOR_EPSILON = 1e-9


def floor_level(value: float) -> int:
    return max(0, min(100, int(math.floor(value + _FLOOR_EPSILON))))


@dataclass(frozen=True)
class ReadinessLevel:
    """Readiness of one category and the inputs it came from."""
    category: str
    level: int
    completed: int = 0
    expected: int = 0
    modifier: float = 1.0


class ReadinessProfile(Mapping):
    """Read-only mapping of category -> ReadinessLevel, including 'overall'."""

    def __init__(self, levels: Mapping[str, ReadinessLevel]):
        self._levels: Dict[str, ReadinessLevel] = dict(levels)

    def __getitem__(self, category: str) -> ReadinessLevel:
        return self._levels[category]

    def __iter__(self) -> Iterator[str]:
        return iter(self._levels)

    def __len__(self) -> int:
        return len(self._levels)

    def level(self, category: str) -> int:
        entry = self._levels.get(category)
        return entry.level if entry else 0

    @property
    def overall(self) -> int:
        return self.level(OVERALL_CATEGORY)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            name: {
                "level": entry.level,
                "completed": entry.completed,
                "expected": entry.expected,
                "modifier": entry.modifier,
            }
            for name, entry in self._levels.items()
        }


class ReadinessCalculator:
    """
    Compute readiness levels from the history log.

    Modifiers and expected counts are configuration, keyed by category
    name; categories without an explicit modifier use 1.0.
    """

    DEFAULT_MODIFIER = 1.0

    def __init__(
        self,
        category_modifiers: Optional[Mapping[str, float]] = None,
        expected_sessions: int = DEFAULT_EXPECTED_SESSIONS,
        window_days: int = DEFAULT_READINESS_WINDOW_DAYS,
        expected_by_category: Optional[Mapping[str, int]] = None
    ):
        """
        Initialize ReadinessCalculator.

        Args:
            category_modifiers: Per-category multiplier (default: DEFAULT_CATEGORY_MODIFIERS)
            expected_sessions: Sessions expected per category inside the window
            window_days: Length of the rolling window in days
            expected_by_category: Per-category override of expected_sessions
        """
        if expected_sessions <= 0:
            raise ValueError("expected_sessions must be positive")
        if category_modifiers is None:
            category_modifiers = DEFAULT_CATEGORY_MODIFIERS
        self.category_modifiers: Dict[str, float] = dict(category_modifiers)
        self.expected_sessions = expected_sessions
        self.window = timedelta(days=window_days)
        self.expected_by_category: Dict[str, int] = dict(expected_by_category or {})

    @property
    def categories(self) -> List[str]:
        """Named categories that make up 'overall'."""
        return [c for c in self.category_modifiers if c != OVERALL_CATEGORY]

    def modifier_for(self, category: str) -> float:
        return self.category_modifiers.get(category, self.DEFAULT_MODIFIER)

    def expected_for(self, category: str) -> int:
        return max(1, self.expected_by_category.get(category, self.expected_sessions))

    def _in_window(self, entries: Iterable[HistoryEntry], now: datetime) -> List[HistoryEntry]:
        start = now - self.window
        return [e for e in entries or [] if start <= e.completed_at <= now]

    def _category_level(self, window_entries: List[HistoryEntry], category: str) -> ReadinessLevel:
        completed = sum(1 for e in window_entries if e.category_tag == category)
        expected = self.expected_for(category)
        modifier = self.modifier_for(category)
        ratio = min(completed, expected) / expected
        return ReadinessLevel(
            category=category,
            level=floor_level(ratio * 100 * modifier),
            completed=completed,
            expected=expected,
            modifier=modifier,
        )

    def compute_readiness(
        self,
        entries: Iterable[HistoryEntry],
        category: str,
        now: Optional[datetime] = None
    ) -> int:
        """
        Readiness level for one category, or 'overall'.

        Args:
            entries: History entries (empty history gives 0)
            category: Category tag or 'overall'
            now: End of the rolling window (default: current UTC time)

        Returns:
            Level in [0, 100]
        """
        return self.compute_profile(entries, now=now, extra_categories=[category]).level(category)

    def compute_profile(
        self,
        entries: Iterable[HistoryEntry],
        now: Optional[datetime] = None,
        extra_categories: Optional[Iterable[str]] = None
    ) -> ReadinessProfile:
        """
        Readiness for every configured category plus 'overall'.

        Args:
            entries: History entries
            now: End of the rolling window (default: current UTC time)
            extra_categories: Categories to include beyond the configured ones
                (they do not count toward 'overall')
        """
        now = now or datetime.now(timezone.utc)
        window_entries = self._in_window(entries, now)

        levels: Dict[str, ReadinessLevel] = {}
        for category in self.categories:
            levels[category] = self._category_level(window_entries, category)

        named = [levels[c].level for c in self.categories]
        overall = floor_level(sum(named) / len(named)) if named else 0
        levels[OVERALL_CATEGORY] = ReadinessLevel(category=OVERALL_CATEGORY, level=overall)

        for category in extra_categories or []:
            if category not in levels:
                levels[category] = self._category_level(window_entries, category)

        return ReadinessProfile(levels)
