"""
Activity Catalog

Read-only lookup of startable activities by (kind, reference_id). Ships
with the product's default content: breathing resets, business prompt
scenarios and brain-game workouts.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from cognitive_trainer.config import (
    CATEGORY_AI_TRAINING,
    CATEGORY_EXERCISES,
    CATEGORY_MENTAL_CLARITY,
)
from cognitive_trainer.errors import NotFoundError
from cognitive_trainer.session_state import ActivityInfo, SessionKind

PROMPT_DRILL_DURATION_MS = 5 * 60 * 1000
WORKOUT_DURATION_MS = 60 * 1000

BREATHING_EXERCISES = [
    ActivityInfo(SessionKind.CLARITY_RESET, "1", "4-7-8 Breathing", 120_000, CATEGORY_MENTAL_CLARITY,
                 description="Classic relaxation technique for instant calm"),
    ActivityInfo(SessionKind.CLARITY_RESET, "2", "Box Breathing", 120_000, CATEGORY_MENTAL_CLARITY,
                 description="Navy SEAL technique for focus and control"),
    ActivityInfo(SessionKind.CLARITY_RESET, "3", "Progressive Focus Reset", 120_000, CATEGORY_MENTAL_CLARITY,
                 is_premium=True, description="Advanced technique with body awareness"),
    ActivityInfo(SessionKind.CLARITY_RESET, "4", "Energy Boost Breathing", 90_000, CATEGORY_MENTAL_CLARITY,
                 is_premium=True, description="Quick energizer for mental fatigue"),
]

PROMPT_SCENARIOS = [
    ActivityInfo(SessionKind.PROMPT_DRILL, "1", "Competitor Pricing Analysis", PROMPT_DRILL_DURATION_MS,
                 CATEGORY_AI_TRAINING, description="Analyze competitor pricing strategies for market positioning"),
    ActivityInfo(SessionKind.PROMPT_DRILL, "2", "Customer Retention Strategy", PROMPT_DRILL_DURATION_MS,
                 CATEGORY_AI_TRAINING, description="Develop strategies to improve customer retention rates"),
    ActivityInfo(SessionKind.PROMPT_DRILL, "3", "Product Feature Prioritization", PROMPT_DRILL_DURATION_MS,
                 CATEGORY_AI_TRAINING, description="Prioritize product features based on user impact and business value"),
    ActivityInfo(SessionKind.PROMPT_DRILL, "4", "Marketing Campaign Optimization", PROMPT_DRILL_DURATION_MS,
                 CATEGORY_AI_TRAINING, description="Optimize campaign spend and messaging across channels"),
    ActivityInfo(SessionKind.PROMPT_DRILL, "5", "Operational Cost Reduction", PROMPT_DRILL_DURATION_MS,
                 CATEGORY_AI_TRAINING, is_premium=True, description="Find savings without hurting service quality"),
]

BRAIN_GAMES = [
    ActivityInfo(SessionKind.WORKOUT, "1", "Memory Match", WORKOUT_DURATION_MS, CATEGORY_EXERCISES,
                 description="Find all matching pairs before time runs out"),
    ActivityInfo(SessionKind.WORKOUT, "2", "Pattern Recall", WORKOUT_DURATION_MS, CATEGORY_EXERCISES,
                 description="Reproduce growing sequences from memory"),
    ActivityInfo(SessionKind.WORKOUT, "3", "Focus Sprint", WORKOUT_DURATION_MS, CATEGORY_EXERCISES,
                 description="Pick the odd symbol out as fast as you can"),
    ActivityInfo(SessionKind.WORKOUT, "4", "Logic Grid", WORKOUT_DURATION_MS, CATEGORY_EXERCISES,
                 is_premium=True, description="Deduce the hidden arrangement from clues"),
]

DEFAULT_ACTIVITIES = BREATHING_EXERCISES + PROMPT_SCENARIOS + BRAIN_GAMES


class ActivityCatalog:
    """In-memory activity catalog."""

    def __init__(self, activities: Optional[Iterable[ActivityInfo]] = None):
        if activities is None:
            activities = DEFAULT_ACTIVITIES
        self._activities: Dict[Tuple[SessionKind, str], ActivityInfo] = {
            (a.kind, a.reference_id): a for a in activities
        }

    def lookup(self, kind: SessionKind, reference_id) -> ActivityInfo:
        """
        Get one activity.

        Raises:
            NotFoundError: If the catalog has no such activity
        """
        activity = self._activities.get((kind, str(reference_id)))
        if activity is None:
            raise NotFoundError(f"No {kind.value} activity with id {reference_id!r}")
        return activity

    def list_activities(self, kind: Optional[SessionKind] = None) -> List[ActivityInfo]:
        return [a for a in self._activities.values() if kind is None or a.kind == kind]
