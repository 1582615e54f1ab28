"""Session & readiness engine for the cognitive trainer."""

from cognitive_trainer.access_gate import AccessDecision, AccessGate
from cognitive_trainer.activity_catalog import ActivityCatalog
from cognitive_trainer.clock import Clock, CountdownHandle
from cognitive_trainer.config import DEFAULT_REQUIRED_LEVEL, EngineSettings
from cognitive_trainer.errors import (
    AccessDeniedError,
    ConflictError,
    EngineError,
    InvalidArtifactError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)
from cognitive_trainer.history_store import (
    HistoryStore,
    InMemoryHistoryStore,
    JsonlHistoryStore,
    SupabaseHistoryStore,
)
from cognitive_trainer.readiness_calculator import ReadinessCalculator, ReadinessProfile
from cognitive_trainer.scoring_engine import ScoringContext, ScoringEngine, ScoringWeights
from cognitive_trainer.session_manager import SessionManager
from cognitive_trainer.session_state import (
    HistoryEntry,
    ScoreResult,
    SessionKind,
    SessionStatus,
    TrainingSession,
)
from cognitive_trainer.streak_tracker import StreakState, StreakTracker

__all__ = [
    "AccessDecision",
    "AccessDeniedError",
    "AccessGate",
    "ActivityCatalog",
    "Clock",
    "ConflictError",
    "CountdownHandle",
    "DEFAULT_REQUIRED_LEVEL",
    "EngineError",
    "EngineSettings",
    "HistoryEntry",
    "HistoryStore",
    "InMemoryHistoryStore",
    "InvalidArtifactError",
    "InvalidStateError",
    "JsonlHistoryStore",
    "NotFoundError",
    "PersistenceError",
    "ReadinessCalculator",
    "ReadinessProfile",
    "ScoreResult",
    "ScoringContext",
    "ScoringEngine",
    "ScoringWeights",
    "SessionKind",
    "SessionManager",
    "SessionStatus",
    "StreakState",
    "StreakTracker",
    "SupabaseHistoryStore",
    "TrainingSession",
]
