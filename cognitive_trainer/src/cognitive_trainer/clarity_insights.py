"""
Clarity Insights

Statistics and daily recommendation for mental-clarity resets, computed
from history entries.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Sequence

from cognitive_trainer.activity_catalog import ActivityCatalog
from cognitive_trainer.scoring_engine import round_half_up
from cognitive_trainer.session_state import ActivityInfo, HistoryEntry, SessionKind
from cognitive_trainer.streak_tracker import StreakTracker

DEFAULT_FOG_LEVEL = 3
RECENT_SESSIONS = 5
HIGH_FOG_THRESHOLD = 4
LOW_FOG_THRESHOLD = 2
STRONG_STREAK_DAYS = 7
CONSISTENCY_SCORE_THRESHOLD = 75


@dataclass(frozen=True)
class ClarityStats:
    todays_sessions: int
    week_sessions: int
    avg_score: int
    total_sessions: int
    current_streak: int
    last_session: Optional[HistoryEntry] = None


@dataclass(frozen=True)
class ClarityRecommendation:
    activity: ActivityInfo
    reason: str
    stats: ClarityStats


def thinking_score_impact(mental_fog_level: Optional[int]) -> int:
    """Estimated thinking-score gain from one reset; clearer heads gain more."""
    fog = DEFAULT_FOG_LEVEL if mental_fog_level is None else mental_fog_level
    return 2 + max(0, 5 - fog)


def _clarity_entries(history: Sequence[HistoryEntry]) -> List[HistoryEntry]:
    entries = [e for e in history or [] if e.kind == SessionKind.CLARITY_RESET]
    return sorted(entries, key=lambda e: e.completed_at)


def compute_clarity_stats(
    history: Sequence[HistoryEntry],
    now: Optional[datetime] = None,
    streak_tracker: Optional[StreakTracker] = None
) -> ClarityStats:
    """
    Summary of clarity resets.

    Args:
        history: Full or clarity-only history
        now: Reference time (default: current UTC time)
        streak_tracker: Tracker whose timezone defines "today"
    """
    tracker = streak_tracker or StreakTracker()
    now = now or datetime.now(timezone.utc)
    today: date = now.astimezone(tracker.timezone).date()
    week_start = now - timedelta(days=7)

    entries = _clarity_entries(history)
    todays = [e for e in entries if e.completed_at.astimezone(tracker.timezone).date() == today]
    week = [e for e in entries if e.completed_at >= week_start]
    avg_score = round_half_up(sum(e.composite_score for e in entries) / len(entries)) if entries else 0

    return ClarityStats(
        todays_sessions=len(todays),
        week_sessions=len(week),
        avg_score=avg_score,
        total_sessions=len(entries),
        current_streak=tracker.compute_streak(entries, today=today).current_streak_days,
        last_session=entries[-1] if entries else None,
    )


def _recommendation_reason(stats: ClarityStats) -> str:
    if stats.todays_sessions == 0:
        return "Start your day with a quick focus reset to boost mental clarity"
    if stats.current_streak > STRONG_STREAK_DAYS:
        return "Amazing streak! Try an advanced technique to challenge yourself"
    if stats.avg_score < CONSISTENCY_SCORE_THRESHOLD:
        return "Build consistency with fundamental breathing techniques"
    return "Continue your mental fitness journey with today's recommended exercise"


def recommend_clarity_exercise(
    history: Sequence[HistoryEntry],
    catalog: Optional[ActivityCatalog] = None,
    is_premium: bool = False,
    now: Optional[datetime] = None,
    streak_tracker: Optional[StreakTracker] = None
) -> ClarityRecommendation:
    """
    Pick today's breathing exercise from recent fog reports.

    - no history: 4-7-8 breathing
    - high fog (avg > 4): energy boost (premium) or box breathing
    - low fog (avg < 2): progressive reset (premium) or box breathing
    - otherwise: 4-7-8 breathing
    """
    catalog = catalog or ActivityCatalog()
    stats = compute_clarity_stats(history, now=now, streak_tracker=streak_tracker)
    entries = _clarity_entries(history)

    reference_id = "1"
    if entries:
        recent = entries[-RECENT_SESSIONS:]
        fog_levels = [
            (e.subjective_metrics or {}).get("mental_fog_level") or DEFAULT_FOG_LEVEL
            for e in recent
        ]
        avg_fog = sum(fog_levels) / len(fog_levels)
        if avg_fog > HIGH_FOG_THRESHOLD:
            reference_id = "4" if is_premium else "2"
        elif avg_fog < LOW_FOG_THRESHOLD:
            reference_id = "3" if is_premium else "2"

    return ClarityRecommendation(
        activity=catalog.lookup(SessionKind.CLARITY_RESET, reference_id),
        reason=_recommendation_reason(stats),
        stats=stats,
    )
