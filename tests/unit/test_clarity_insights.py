"""
Unit Tests for Clarity Insights

Tests clarity reset statistics and the daily exercise recommendation.
"""

import pytest
import sys
import os
from datetime import datetime, timedelta, timezone

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "cognitive_trainer", "src"))

from cognitive_trainer.clarity_insights import (
    compute_clarity_stats,
    recommend_clarity_exercise,
    thinking_score_impact,
)
from cognitive_trainer.session_state import HistoryEntry, SessionKind

NOW = datetime(2026, 3, 15, 18, 0, tzinfo=timezone.utc)


def reset(days_ago: int, score: int = 80, fog=3, index: int = 0) -> HistoryEntry:
    metrics = None if fog is None else {"mental_fog_level": fog}
    return HistoryEntry(
        session_id=f"reset-{days_ago}-{index}",
        kind=SessionKind.CLARITY_RESET,
        reference_id="1",
        completed_at=NOW - timedelta(days=days_ago, hours=1, minutes=index),
        duration_actual_ms=120_000,
        composite_score=score,
        category_tag="mentalClarity",
        subjective_metrics=metrics,
    )


class TestThinkingScoreImpact:

    def test_clearer_head_gains_more(self):
        assert thinking_score_impact(1) == 6
        assert thinking_score_impact(5) == 2

    def test_missing_fog_uses_middle_level(self):
        assert thinking_score_impact(None) == 4


class TestClarityStats:
    """Test suite for compute_clarity_stats."""

    def test_empty_history(self):
        stats = compute_clarity_stats([], now=NOW)
        assert stats.total_sessions == 0
        assert stats.avg_score == 0
        assert stats.current_streak == 0
        assert stats.last_session is None

    def test_counts_and_average(self):
        history = [reset(0, score=90), reset(0, score=85, index=1), reset(3, score=70), reset(10, score=76)]
        stats = compute_clarity_stats(history, now=NOW)

        assert stats.todays_sessions == 2
        assert stats.week_sessions == 3
        assert stats.total_sessions == 4
        assert stats.avg_score == 80  # 80.25
        assert stats.current_streak == 1
        assert stats.last_session.session_id == "reset-0-0"

    def test_ignores_other_kinds(self):
        workout = HistoryEntry(
            session_id="w",
            kind=SessionKind.WORKOUT,
            reference_id="1",
            completed_at=NOW,
            duration_actual_ms=60_000,
            composite_score=10,
            category_tag="exercises",
        )
        stats = compute_clarity_stats([workout, reset(1)], now=NOW)
        assert stats.total_sessions == 1
        assert stats.todays_sessions == 0


class TestRecommendation:
    """Test suite for recommend_clarity_exercise."""

    def test_no_history_recommends_478(self):
        recommendation = recommend_clarity_exercise([], now=NOW)

        assert recommendation.activity.reference_id == "1"
        assert "Start your day" in recommendation.reason

    def test_high_fog_premium_gets_energy_boost(self):
        history = [reset(1, fog=5), reset(2, fog=5), reset(3, fog=5)]
        recommendation = recommend_clarity_exercise(history, is_premium=True, now=NOW)
        assert recommendation.activity.reference_id == "4"

    def test_high_fog_free_gets_box_breathing(self):
        history = [reset(1, fog=5), reset(2, fog=5)]
        recommendation = recommend_clarity_exercise(history, is_premium=False, now=NOW)
        assert recommendation.activity.reference_id == "2"

    def test_low_fog_premium_gets_progressive_reset(self):
        history = [reset(1, fog=1), reset(2, fog=1)]
        recommendation = recommend_clarity_exercise(history, is_premium=True, now=NOW)
        assert recommendation.activity.reference_id == "3"

    def test_only_last_five_sessions_count(self):
        old_foggy = [reset(days, fog=5) for days in (10, 11, 12)]
        recent_clear = [reset(days, fog=3) for days in (1, 2, 3, 4, 5)]
        recommendation = recommend_clarity_exercise(old_foggy + recent_clear, now=NOW)
        assert recommendation.activity.reference_id == "1"

    def test_fifth_most_recent_session_is_averaged(self):
        # The four most recent average 1.5; the fifth lifts the mean to 2.2
        history = [reset(1, fog=1), reset(2, fog=1), reset(3, fog=2), reset(4, fog=2), reset(5, fog=5)]
        recommendation = recommend_clarity_exercise(history, is_premium=True, now=NOW)
        assert recommendation.activity.reference_id == "1"

    def test_missing_fog_counts_as_three(self):
        history = [reset(1, fog=None), reset(2, fog=None)]
        recommendation = recommend_clarity_exercise(history, is_premium=True, now=NOW)
        assert recommendation.activity.reference_id == "1"

    @pytest.mark.parametrize("history,expected", [
        ([reset(0, score=60)], "Build consistency"),
        ([reset(0, score=90)], "Continue your mental fitness journey"),
        ([reset(d, score=90) for d in range(9)], "Amazing streak"),
    ])
    def test_reason_text(self, history, expected):
        recommendation = recommend_clarity_exercise(history, now=NOW)
        assert expected in recommendation.reason
