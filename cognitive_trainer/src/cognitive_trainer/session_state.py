"""
Session State Data Model

Defines the training session, its score results and the durable history
entry written when a session completes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from cognitive_trainer.errors import InvalidStateError


class SessionKind(Enum):
    """Kinds of timed training activity."""
    WORKOUT = "workout"
    CLARITY_RESET = "clarity_reset"
    PROMPT_DRILL = "prompt_drill"


class SessionStatus(Enum):
    """Session lifecycle states."""
    READY = "ready"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"  # Stopped by the user, never written to history


TERMINAL_STATUSES = (SessionStatus.COMPLETED, SessionStatus.ABANDONED)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _frozen_mapping(value: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class ActivityInfo:
    """Catalog entry for a startable activity."""
    kind: SessionKind
    reference_id: str
    name: str
    total_duration_ms: int
    category: str
    is_premium: bool = False
    description: str = ""


@dataclass(frozen=True)
class ScoreResult:
    """Scored submission. Sub-scores and composite are integers in [0, 100]."""
    kind: SessionKind
    composite: int
    sub_scores: Mapping[str, int] = field(default_factory=dict)
    feedback: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "sub_scores", _frozen_mapping(self.sub_scores))
        object.__setattr__(self, "details", _frozen_mapping(self.details))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "composite": self.composite,
            "sub_scores": dict(self.sub_scores),
            "feedback": self.feedback,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable record of one completed session."""
    session_id: str
    kind: SessionKind
    reference_id: str
    completed_at: datetime
    duration_actual_ms: int
    composite_score: int
    category_tag: str
    subjective_metrics: Optional[Mapping[str, Any]] = None
    user_id: Optional[str] = None

    def __post_init__(self):
        if self.subjective_metrics is not None:
            object.__setattr__(self, "subjective_metrics", _frozen_mapping(self.subjective_metrics))

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert HistoryEntry to dictionary for storage.

        Returns:
            Dictionary with ISO-8601 timestamp and enum values as strings
        """
        return {
            "session_id": self.session_id,
            "kind": self.kind.value,
            "reference_id": self.reference_id,
            "completed_at": self.completed_at.isoformat(),
            "duration_actual_ms": self.duration_actual_ms,
            "composite_score": self.composite_score,
            "category_tag": self.category_tag,
            "subjective_metrics": dict(self.subjective_metrics) if self.subjective_metrics is not None else None,
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        """
        Convert stored dictionary back to a HistoryEntry.

        Naive timestamps are read as UTC.
        """
        completed_at = datetime.fromisoformat(data["completed_at"])
        if completed_at.tzinfo is None:
            completed_at = completed_at.replace(tzinfo=timezone.utc)

        return cls(
            session_id=data["session_id"],
            kind=SessionKind(data["kind"]),
            reference_id=str(data["reference_id"]),
            completed_at=completed_at,
            duration_actual_ms=int(data.get("duration_actual_ms") or 0),
            composite_score=int(data.get("composite_score") or 0),
            category_tag=data.get("category_tag") or "",
            subjective_metrics=data.get("subjective_metrics"),
            user_id=data.get("user_id"),
        )


@dataclass
class TrainingSession:
    """
    One in-progress or finished timed activity.

    Transitions:
    - ready -> active (activate)
    - active <-> paused (pause / resume)
    - active | paused -> completed (mark_completed)
    - active | paused -> abandoned (mark_abandoned)
    """
    session_id: str
    kind: SessionKind
    reference_id: str
    total_duration_ms: int
    category_tag: str = ""
    user_id: Optional[str] = None
    elapsed_ms: int = 0
    status: SessionStatus = SessionStatus.READY
    submissions: List[ScoreResult] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def remaining_ms(self) -> int:
        return max(0, self.total_duration_ms - self.elapsed_ms)

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _require(self, operation: str, *allowed: SessionStatus):
        if self.status not in allowed:
            raise InvalidStateError(self.session_id, self.status, operation)

    def record_elapsed(self, elapsed_ms: int):
        """Advance elapsed time; never moves backwards or past the total."""
        if self.status != SessionStatus.ACTIVE:
            return
        clamped = min(self.total_duration_ms, max(0, int(elapsed_ms)))
        if clamped > self.elapsed_ms:
            self.elapsed_ms = clamped

    def activate(self):
        self._require("start", SessionStatus.READY)
        self.status = SessionStatus.ACTIVE
        self.started_at = utc_now()

    def pause(self):
        self._require("pause", SessionStatus.ACTIVE)
        self.status = SessionStatus.PAUSED

    def resume(self):
        self._require("resume", SessionStatus.PAUSED)
        self.status = SessionStatus.ACTIVE

    def add_submission(self, result: ScoreResult):
        self._require("submit", SessionStatus.ACTIVE)
        self.submissions.append(result)

    def mark_completed(self, completed_at: Optional[datetime] = None):
        self._require("complete", SessionStatus.ACTIVE, SessionStatus.PAUSED)
        self.status = SessionStatus.COMPLETED
        self.completed_at = completed_at or utc_now()

    def mark_abandoned(self):
        self._require("abandon", SessionStatus.ACTIVE, SessionStatus.PAUSED)
        self.status = SessionStatus.ABANDONED
        self.completed_at = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert TrainingSession to a dictionary for API responses."""
        return {
            "session_id": self.session_id,
            "kind": self.kind.value,
            "reference_id": self.reference_id,
            "category_tag": self.category_tag,
            "status": self.status.value,
            "total_duration_ms": self.total_duration_ms,
            "elapsed_ms": self.elapsed_ms,
            "remaining_ms": self.remaining_ms,
            "submissions": [s.to_dict() for s in self.submissions],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
