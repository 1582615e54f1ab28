"""
Scoring Engine

Deterministic heuristic scoring for every session kind:
1. Prompt drills: clarity and efficacy sub-scores from the prompt text
2. Clarity resets: completion score from time spent and the fog report
3. Workouts: composite from game points plus a time-remaining bonus

Same inputs always give the same ScoreResult; nothing here reads a clock
or a random source.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from cognitive_trainer.errors import InvalidArtifactError
from cognitive_trainer.session_state import ScoreResult, SessionKind

FEEDBACK_TEMPLATES = {
    "clarity": {
        "good": "Your prompt is clear and well-structured with specific objectives.",
        "improve": "Consider adding more specific context and desired output format for better clarity.",
    },
    "efficacy": {
        "good": "This prompt would generate highly actionable and relevant insights.",
        "improve": "Try to include more specific parameters to get more targeted AI responses.",
    },
    "specificity": {
        "good": "Excellent level of detail and specific requirements provided.",
        "improve": "Add more specific examples or constraints to narrow down the scope.",
    },
}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (82.5 -> 83)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


@dataclass
class ScoringWeights:
    """Baselines, thresholds and bonuses used by the heuristics."""
    # Prompt drill: clarity
    clarity_baseline: int = 60
    clarity_short_threshold: int = 10
    clarity_long_threshold: int = 25
    clarity_length_bonus: int = 10
    clarity_specificity_bonus: int = 15
    clarity_context_threshold: int = 15
    clarity_context_bonus: int = 5
    # Prompt drill: efficacy
    efficacy_baseline: int = 55
    efficacy_specificity_bonus: int = 20
    efficacy_question_bonus: int = 10
    efficacy_length_threshold: int = 20
    efficacy_length_bonus: int = 10
    efficacy_action_bonus: int = 5
    action_verbs: Tuple[str, ...] = ("analyze", "strategy", "optimize")
    specificity_markers: Tuple[str, ...] = ("[", "specific")
    # Clarity reset
    completion_baseline: int = 70
    completion_duration_bonus: int = 20
    fog_clear_threshold: int = 3
    fog_clear_bonus: int = 10
    fog_very_clear_threshold: int = 2
    fog_very_clear_bonus: int = 5
    intent_bonus: int = 5
    # Workout
    seconds_remaining_points: int = 10
    workout_points_ceiling: int = 1400


@dataclass(frozen=True)
class ScoringContext:
    """Session timing at the moment an artifact is scored."""
    elapsed_ms: int = 0
    total_duration_ms: int = 0

    @property
    def remaining_ms(self) -> int:
        return max(0, self.total_duration_ms - self.elapsed_ms)


class ScoringEngine:
    """
    Scores submissions and completions on a 0-100 scale.

    Composite = unweighted mean of the sub-scores, rounded half up.
    """

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def score(
        self,
        kind: SessionKind,
        artifact: Any,
        context: Optional[ScoringContext] = None
    ) -> ScoreResult:
        """
        Score one artifact.

        Args:
            kind: Session kind the artifact belongs to
            artifact: Prompt text (prompt drill), completion form (clarity
                reset) or points mapping (workout)
            context: Session timing; required for clarity resets and workouts

        Returns:
            ScoreResult with sub-scores and composite in [0, 100]
        """
        context = context or ScoringContext()
        if kind == SessionKind.PROMPT_DRILL:
            return self._score_prompt(artifact)
        if kind == SessionKind.CLARITY_RESET:
            return self._score_clarity_reset(artifact, context)
        if kind == SessionKind.WORKOUT:
            return self._score_workout(artifact, context)
        raise InvalidArtifactError(f"Unsupported session kind: {kind!r}")

    # ---- prompt drills ----

    def _prompt_text(self, artifact: Any) -> str:
        if isinstance(artifact, str):
            text = artifact
        elif isinstance(artifact, Mapping):
            text = artifact.get("prompt_text") or artifact.get("text") or ""
        else:
            raise InvalidArtifactError("Prompt drill submissions must be text")
        if not isinstance(text, str) or not text.strip():
            raise InvalidArtifactError("Prompt text must not be empty")
        return text

    def _score_prompt(self, artifact: Any) -> ScoreResult:
        w = self.weights
        text = self._prompt_text(artifact)
        text_lower = text.lower()

        word_count = len(text.split())
        has_specifics = any(marker in text_lower for marker in w.specificity_markers)
        has_question = "?" in text
        has_context = word_count > w.clarity_context_threshold
        has_action = any(verb in text_lower for verb in w.action_verbs)

        clarity = w.clarity_baseline
        if word_count > w.clarity_short_threshold:
            clarity += w.clarity_length_bonus
        if word_count > w.clarity_long_threshold:
            clarity += w.clarity_length_bonus
        if has_specifics:
            clarity += w.clarity_specificity_bonus
        if has_context:
            clarity += w.clarity_context_bonus

        efficacy = w.efficacy_baseline
        if has_specifics:
            efficacy += w.efficacy_specificity_bonus
        if has_question:
            efficacy += w.efficacy_question_bonus
        if word_count > w.efficacy_length_threshold:
            efficacy += w.efficacy_length_bonus
        if has_action:
            efficacy += w.efficacy_action_bonus

        sub_scores = {"clarity": clamp_score(clarity), "efficacy": clamp_score(efficacy)}
        return ScoreResult(
            kind=SessionKind.PROMPT_DRILL,
            composite=clamp_score(sum(sub_scores.values()) / len(sub_scores)),
            sub_scores=sub_scores,
            feedback=self.prompt_feedback(word_count, has_specifics),
            details={
                "word_count": word_count,
                "has_specifics": has_specifics,
                "has_question": has_question,
                "has_action_verb": has_action,
            },
        )

    def prompt_feedback(self, word_count: int, has_specifics: bool) -> str:
        """Coaching text shown next to a prompt's scores."""
        if word_count > self.weights.efficacy_length_threshold and has_specifics:
            lines = [FEEDBACK_TEMPLATES["clarity"]["good"], FEEDBACK_TEMPLATES["efficacy"]["good"]]
        else:
            lines = [FEEDBACK_TEMPLATES["clarity"]["improve"]]
            if not has_specifics:
                lines.append(FEEDBACK_TEMPLATES["specificity"]["improve"])
        return " ".join(lines)

    # ---- clarity resets ----

    def _score_clarity_reset(self, artifact: Any, context: ScoringContext) -> ScoreResult:
        w = self.weights
        form: Mapping[str, Any] = artifact or {}
        if not isinstance(form, Mapping):
            raise InvalidArtifactError("Clarity reset completion data must be a mapping")

        fog_level = parse_fog_level(form.get("mental_fog_level"))
        intent = bool(form.get("pre_workout_intent"))

        if context.total_duration_ms > 0:
            completion_ratio = min(1.0, context.elapsed_ms / context.total_duration_ms)
        else:
            completion_ratio = 0.0

        score = w.completion_baseline
        score += min(w.completion_duration_bonus, completion_ratio * w.completion_duration_bonus)
        if fog_level is not None:
            if fog_level < w.fog_clear_threshold:
                score += w.fog_clear_bonus
            if fog_level < w.fog_very_clear_threshold:
                score += w.fog_very_clear_bonus
        if intent:
            score += w.intent_bonus

        completion = clamp_score(score)
        return ScoreResult(
            kind=SessionKind.CLARITY_RESET,
            composite=completion,
            sub_scores={"completion": completion},
            details={
                "completion_ratio": round(completion_ratio, 4),
                "mental_fog_level": fog_level,
                "pre_workout_intent": intent,
            },
        )

    # ---- workouts ----

    def _score_workout(self, artifact: Any, context: ScoringContext) -> ScoreResult:
        w = self.weights
        points = workout_points(artifact)
        seconds_remaining = context.remaining_ms // 1000
        raw_points = max(0, points + seconds_remaining * w.seconds_remaining_points)

        ceiling = max(1, w.workout_points_ceiling)
        return ScoreResult(
            kind=SessionKind.WORKOUT,
            composite=min(100, round_half_up(raw_points * 100 / ceiling)),
            details={
                "points": points,
                "seconds_remaining": seconds_remaining,
                "raw_points": raw_points,
            },
        )


def parse_fog_level(value: Any) -> Optional[int]:
    """Self-reported fog level 1 (clear) to 5 (very foggy), or None."""
    if value is None or value == "":
        return None
    try:
        level = int(value)
    except (TypeError, ValueError):
        raise InvalidArtifactError(f"Mental fog level must be a number, got {value!r}")
    if not 1 <= level <= 5:
        raise InvalidArtifactError(f"Mental fog level must be between 1 and 5, got {level}")
    return level


def workout_points(artifact: Any) -> int:
    """In-game points from a workout artifact (mapping or bare number)."""
    if artifact is None:
        return 0
    if isinstance(artifact, Mapping):
        value = artifact.get("points", 0)
    else:
        value = artifact
    if isinstance(value, bool):
        raise InvalidArtifactError("Workout points must be a number")
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        raise InvalidArtifactError(f"Workout points must be a number, got {value!r}")
