"""
Engine Configuration

Named defaults for every threshold the engine uses, overridable from the
environment (or a .env file).
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Readiness a category must reach before its premium content unlocks
DEFAULT_REQUIRED_LEVEL = 80

DEFAULT_TICK_INTERVAL_MS = 1000
DEFAULT_READINESS_WINDOW_DAYS = 30
DEFAULT_EXPECTED_SESSIONS = 20

# Readiness categories used by the default activity catalog
CATEGORY_MENTAL_CLARITY = "mentalClarity"
CATEGORY_AI_TRAINING = "aiTraining"
CATEGORY_EXERCISES = "exercises"
OVERALL_CATEGORY = "overall"

DEFAULT_CATEGORY_MODIFIERS = {
    CATEGORY_MENTAL_CLARITY: 1.1,
    CATEGORY_AI_TRAINING: 1.0,
    CATEGORY_EXERCISES: 0.9,
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"⚠️ [Config] {name}={raw!r} is not an integer, using {default}")
        return default


def _env_json_dict(name: str, default: Dict[str, float]) -> Dict[str, float]:
    raw = os.getenv(name)
    if not raw:
        return dict(default)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"⚠️ [Config] {name} is not valid JSON, using defaults")
        return dict(default)
    return {str(k): float(v) for k, v in data.items()}


@dataclass
class EngineSettings:
    """Settings shared by the session engine and the backend."""
    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS
    required_level: int = DEFAULT_REQUIRED_LEVEL
    readiness_window_days: int = DEFAULT_READINESS_WINDOW_DAYS
    expected_sessions: int = DEFAULT_EXPECTED_SESSIONS
    category_modifiers: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_CATEGORY_MODIFIERS))
    streak_timezone: str = "UTC"
    history_store: str = "memory"  # memory | file | supabase
    history_file_path: Optional[str] = None
    workout_points_ceiling: int = 1400

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from environment variables."""
        return cls(
            tick_interval_ms=_env_int("TICK_INTERVAL_MS", DEFAULT_TICK_INTERVAL_MS),
            required_level=_env_int("READINESS_REQUIRED_LEVEL", DEFAULT_REQUIRED_LEVEL),
            readiness_window_days=_env_int("READINESS_WINDOW_DAYS", DEFAULT_READINESS_WINDOW_DAYS),
            expected_sessions=_env_int("READINESS_EXPECTED_SESSIONS", DEFAULT_EXPECTED_SESSIONS),
            category_modifiers=_env_json_dict("READINESS_CATEGORY_MODIFIERS", DEFAULT_CATEGORY_MODIFIERS),
            streak_timezone=os.getenv("STREAK_TIMEZONE", "UTC"),
            history_store=os.getenv("HISTORY_STORE", "memory").lower(),
            history_file_path=os.getenv("HISTORY_FILE_PATH"),
            workout_points_ceiling=_env_int("WORKOUT_POINTS_CEILING", 1400),
        )
