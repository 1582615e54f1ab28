"""
Unit Tests for Scoring Engine

Tests the prompt, clarity-reset and workout heuristics.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "cognitive_trainer", "src"))

from cognitive_trainer.errors import InvalidArtifactError
from cognitive_trainer.scoring_engine import (
    ScoringContext,
    ScoringEngine,
    ScoringWeights,
    parse_fog_level,
    round_half_up,
)
from cognitive_trainer.session_state import SessionKind

DETAILED_PROMPT = (
    "Act as a pricing analyst and review [Company X] pricing against three named competitors "
    "in the mid-market segment, then propose a strategy with specific price points for next quarter?"
)


class TestRounding:
    """Composite scores round half up."""

    def test_half_rounds_up(self):
        assert round_half_up(82.5) == 83
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1

    def test_below_half_rounds_down(self):
        assert round_half_up(67.49) == 67


class TestPromptScoring:
    """Test suite for prompt drill scoring."""

    @pytest.fixture
    def engine(self):
        return ScoringEngine()

    def test_short_prompt_gets_baselines(self, engine):
        result = engine.score(SessionKind.PROMPT_DRILL, "Analyze competitor pricing")

        assert result.sub_scores["clarity"] == 60
        # "analyze" earns the action bonus
        assert result.sub_scores["efficacy"] == 60
        assert result.composite == 60
        assert result.details["word_count"] == 3

    def test_detailed_prompt_earns_every_bonus(self, engine):
        result = engine.score(SessionKind.PROMPT_DRILL, DETAILED_PROMPT)

        assert result.sub_scores["clarity"] == 100
        assert result.sub_scores["efficacy"] == 100
        assert result.composite == 100
        assert result.details["has_specifics"] is True
        assert result.details["has_question"] is True

    def test_composite_is_mean_rounded_half_up(self, engine):
        text = "How can we improve retention for our subscription customers over the next year?"
        result = engine.score(SessionKind.PROMPT_DRILL, text)

        assert result.details["word_count"] == 13
        assert result.sub_scores["clarity"] == 70
        assert result.sub_scores["efficacy"] == 65
        assert result.composite == 68  # 67.5 rounds up

    def test_specific_keyword_is_case_insensitive(self, engine):
        result = engine.score(SessionKind.PROMPT_DRILL, "Give SPECIFIC numbers")
        assert result.details["has_specifics"] is True
        assert result.sub_scores["clarity"] == 75

    def test_mapping_artifact(self, engine):
        from_text = engine.score(SessionKind.PROMPT_DRILL, DETAILED_PROMPT)
        from_mapping = engine.score(SessionKind.PROMPT_DRILL, {"prompt_text": DETAILED_PROMPT})
        assert from_mapping.to_dict() == from_text.to_dict()

    @pytest.mark.parametrize("artifact", ["", "   \n\t", {"prompt_text": ""}, 42])
    def test_unscorable_prompt_rejected(self, engine, artifact):
        with pytest.raises(InvalidArtifactError):
            engine.score(SessionKind.PROMPT_DRILL, artifact)

    def test_feedback_praises_detailed_prompt(self, engine):
        result = engine.score(SessionKind.PROMPT_DRILL, DETAILED_PROMPT)
        assert "clear and well-structured" in result.feedback
        assert "actionable" in result.feedback

    def test_feedback_asks_for_specifics(self, engine):
        result = engine.score(SessionKind.PROMPT_DRILL, "Tell me about marketing")
        assert "more specific context" in result.feedback
        assert "specific examples or constraints" in result.feedback

    def test_scoring_is_deterministic(self, engine):
        first = engine.score(SessionKind.PROMPT_DRILL, DETAILED_PROMPT)
        second = engine.score(SessionKind.PROMPT_DRILL, DETAILED_PROMPT)
        assert first.to_dict() == second.to_dict()

    def test_custom_weights(self):
        engine = ScoringEngine(ScoringWeights(clarity_baseline=40, efficacy_baseline=40))
        result = engine.score(SessionKind.PROMPT_DRILL, "Summarize this")
        assert result.sub_scores == {"clarity": 40, "efficacy": 40}


class TestClarityResetScoring:
    """Test suite for clarity reset completion scoring."""

    @pytest.fixture
    def engine(self):
        return ScoringEngine()

    def test_full_session_clear_head_is_capped(self, engine):
        context = ScoringContext(elapsed_ms=120_000, total_duration_ms=120_000)
        result = engine.score(
            SessionKind.CLARITY_RESET,
            {"mental_fog_level": 1, "pre_workout_intent": True},
            context,
        )
        # 70 + 20 + 10 + 5 + 5 = 110
        assert result.composite == 100
        assert result.sub_scores["completion"] == 100

    def test_half_session_average_fog(self, engine):
        context = ScoringContext(elapsed_ms=60_000, total_duration_ms=120_000)
        result = engine.score(SessionKind.CLARITY_RESET, {"mental_fog_level": 3}, context)
        assert result.composite == 80

    def test_fractional_duration_bonus_rounds_half_up(self, engine):
        context = ScoringContext(elapsed_ms=40_000, total_duration_ms=120_000)
        result = engine.score(SessionKind.CLARITY_RESET, {}, context)
        # 70 + 6.67
        assert result.composite == 77

    def test_fog_bonus_tiers(self, engine):
        context = ScoringContext(elapsed_ms=30_000, total_duration_ms=120_000)
        scores = {
            fog: engine.score(SessionKind.CLARITY_RESET, {"mental_fog_level": fog}, context).composite
            for fog in (1, 2, 3, 5)
        }
        assert scores == {1: 90, 2: 85, 3: 75, 5: 75}

    def test_missing_fog_earns_no_bonus(self, engine):
        context = ScoringContext(elapsed_ms=0, total_duration_ms=120_000)
        result = engine.score(SessionKind.CLARITY_RESET, None, context)
        assert result.composite == 70
        assert result.details["mental_fog_level"] is None

    @pytest.mark.parametrize("fog", [0, 6, "very", -1])
    def test_out_of_range_fog_rejected(self, engine, fog):
        with pytest.raises(InvalidArtifactError):
            engine.score(SessionKind.CLARITY_RESET, {"mental_fog_level": fog}, ScoringContext(0, 120_000))

    def test_parse_fog_level_accepts_numeric_strings(self):
        assert parse_fog_level("4") == 4
        assert parse_fog_level(None) is None
        assert parse_fog_level("") is None


class TestWorkoutScoring:
    """Test suite for workout scoring."""

    @pytest.fixture
    def engine(self):
        return ScoringEngine()

    def test_points_plus_time_bonus(self, engine):
        context = ScoringContext(elapsed_ms=30_000, total_duration_ms=60_000)
        result = engine.score(SessionKind.WORKOUT, {"points": 1000}, context)

        assert result.details["seconds_remaining"] == 30
        assert result.details["raw_points"] == 1300
        assert result.composite == 93  # 92.86
        assert dict(result.sub_scores) == {}

    def test_partial_seconds_do_not_count(self, engine):
        context = ScoringContext(elapsed_ms=30_400, total_duration_ms=60_000)
        result = engine.score(SessionKind.WORKOUT, {"points": 0}, context)
        assert result.details["seconds_remaining"] == 29

    def test_composite_capped_at_100(self, engine):
        context = ScoringContext(elapsed_ms=0, total_duration_ms=60_000)
        result = engine.score(SessionKind.WORKOUT, {"points": 2000}, context)
        assert result.composite == 100

    def test_half_point_rounds_up(self, engine):
        context = ScoringContext(elapsed_ms=60_000, total_duration_ms=60_000)
        result = engine.score(SessionKind.WORKOUT, {"points": 7}, context)
        # 7 * 100 / 1400 = 0.5
        assert result.composite == 1

    def test_negative_raw_clamps_to_zero(self, engine):
        context = ScoringContext(elapsed_ms=60_000, total_duration_ms=60_000)
        result = engine.score(SessionKind.WORKOUT, {"points": -50}, context)
        assert result.composite == 0

    def test_ceiling_is_configurable(self):
        engine = ScoringEngine(ScoringWeights(workout_points_ceiling=700))
        context = ScoringContext(elapsed_ms=60_000, total_duration_ms=60_000)
        assert engine.score(SessionKind.WORKOUT, {"points": 350}, context).composite == 50

    @pytest.mark.parametrize("artifact", [{"points": "lots"}, {"points": True}])
    def test_bad_points_rejected(self, engine, artifact):
        with pytest.raises(InvalidArtifactError):
            engine.score(SessionKind.WORKOUT, artifact, ScoringContext(0, 60_000))
