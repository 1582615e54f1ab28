"""
Streak Tracker

Consecutive-day completion streaks derived from the session history.

A day counts when at least one session was completed on it. The current
streak may start yesterday: a user who trained yesterday but not yet today
keeps the streak until the day ends.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, List, Optional, Set
from zoneinfo import ZoneInfo

from cognitive_trainer.session_state import HistoryEntry

# Streak milestones with celebrations
STREAK_MILESTONES = {
    3: "🔥 Three days in a row! A habit is forming.",
    7: "⚡ One full week of training!",
    14: "🏆 Two weeks strong! Consistency is compounding.",
    30: "💪 A month of daily practice!",
    60: "🌟 Two months! This is part of who you are now.",
    100: "🎯 100 days! Elite consistency.",
    365: "👑 ONE YEAR! Daily training mastered.",
}


@dataclass(frozen=True)
class StreakState:
    """Current streak information"""
    current_streak_days: int
    longest_streak_days: int
    last_active_day: Optional[date] = None
    is_at_risk: bool = False  # Streak alive but nothing completed today yet
    milestone: Optional[str] = None


class StreakTracker:
    """Stateless streak computation over history entries."""

    def __init__(self, timezone: Optional[tzinfo] = None):
        """
        Args:
            timezone: Zone whose calendar days are counted (default: UTC)
        """
        self.timezone = timezone or ZoneInfo("UTC")

    def active_days(self, entries: Iterable[HistoryEntry]) -> Set[date]:
        """Distinct calendar days with at least one completed session."""
        return {entry.completed_at.astimezone(self.timezone).date() for entry in entries or []}

    def today(self) -> date:
        return datetime.now(self.timezone).date()

    def compute_streak(self, entries: Iterable[HistoryEntry], today: Optional[date] = None) -> StreakState:
        """
        Calculate current and longest streaks.

        Args:
            entries: History entries in any order
            today: Reference day (defaults to the current day in the timezone)

        Returns:
            StreakState
        """
        today = today or self.today()
        days = self.active_days(entries)
        if not days:
            return StreakState(current_streak_days=0, longest_streak_days=0)

        ordered: List[date] = sorted(days, reverse=True)

        # Count back from today, or from yesterday if today has no entry yet
        anchor = today if today in days else today - timedelta(days=1)
        current = 0
        check_day = anchor
        while check_day in days:
            current += 1
            check_day -= timedelta(days=1)

        longest = 0
        run = 0
        previous: Optional[date] = None
        for day in ordered:
            if previous is not None and previous - day == timedelta(days=1):
                run += 1
            else:
                run = 1
            longest = max(longest, run)
            previous = day

        return StreakState(
            current_streak_days=current,
            longest_streak_days=max(longest, current),
            last_active_day=ordered[0],
            is_at_risk=current > 0 and today not in days,
            milestone=STREAK_MILESTONES.get(current),
        )
