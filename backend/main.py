"""
FastAPI Backend for the Cognitive Trainer

Provides REST API endpoints with:
- JWT Authentication
- Timed session lifecycle (start, submit, pause, resume, complete, abandon)
- History persistence (memory, JSON-lines file or Supabase)
- Streak, readiness and premium-access progress endpoints
"""

import logging
import os
import signal
import sys
import time
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from lib.logger import get_logger, setup_logging

setup_logging(level=logging.INFO, use_colors=True)

logger = get_logger("backend.main")

# Add the cognitive_trainer package to Python path
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)
package_src = os.path.join(project_root, 'cognitive_trainer', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from lib.auth import get_current_user, premium_predicate
from lib.supabase_client import get_supabase_client, supabase_configured

from cognitive_trainer.access_gate import AccessGate
from cognitive_trainer.activity_catalog import ActivityCatalog
from cognitive_trainer.clarity_insights import compute_clarity_stats, recommend_clarity_exercise
from cognitive_trainer.clock import Clock
from cognitive_trainer.config import EngineSettings
from cognitive_trainer.errors import (
    AccessDeniedError,
    ConflictError,
    EngineError,
    InvalidArtifactError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)
from cognitive_trainer.history_store import create_history_store
from cognitive_trainer.readiness_calculator import ReadinessCalculator
from cognitive_trainer.scoring_engine import ScoringEngine, ScoringWeights
from cognitive_trainer.session_manager import SessionManager
from cognitive_trainer.session_state import SessionKind
from cognitive_trainer.streak_tracker import StreakTracker

settings = EngineSettings.from_env()
catalog = ActivityCatalog()
scoring_engine = ScoringEngine(ScoringWeights(workout_points_ceiling=settings.workout_points_ceiling))
streak_tracker = StreakTracker(ZoneInfo(settings.streak_timezone))
readiness_calculator = ReadinessCalculator(
    category_modifiers=settings.category_modifiers,
    expected_sessions=settings.expected_sessions,
    window_days=settings.readiness_window_days,
)
access_gate = AccessGate(required_level=settings.required_level)

# One engine per user; sessions are single-user
_managers: Dict[str, SessionManager] = {}


def get_session_manager(user: dict) -> SessionManager:
    """Get or create the SessionManager for an authenticated user."""
    user_id = user["id"]
    manager = _managers.get(user_id)
    if manager is None:
        supabase = get_supabase_client() if settings.history_store == "supabase" else None
        manager = SessionManager(
            catalog=catalog,
            history_store=create_history_store(settings, user_id=user_id, supabase_client=supabase),
            clock=Clock(tick_interval_ms=settings.tick_interval_ms),
            scoring_engine=scoring_engine,
            user_id=user_id,
        )
        _managers[user_id] = manager
        logger.info("Session engine created", data={"user_id": user_id, "history_store": settings.history_store})
    # Entitlement can change between requests (upgrade, cancellation)
    manager.is_premium_unlocked = premium_predicate(user)
    return manager


app = FastAPI(
    title="Cognitive Trainer API",
    description="Timed training sessions, streaks and readiness gating",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== Pydantic Models ====================

class StartSessionRequest(BaseModel):
    kind: SessionKind
    reference_id: str


class SubmitRequest(BaseModel):
    prompt_text: Optional[str] = None
    points: Optional[int] = None


class CompleteRequest(BaseModel):
    mental_fog_level: Optional[int] = Field(None, ge=1, le=5)
    pre_workout_intent: Optional[bool] = None
    post_session_log: Optional[str] = None
    points: Optional[int] = None


class ActivityResponse(BaseModel):
    kind: SessionKind
    reference_id: str
    name: str
    description: str
    total_duration_ms: int
    category: str
    is_premium: bool


class StreakResponse(BaseModel):
    current_streak_days: int
    longest_streak_days: int
    last_active_day: Optional[str] = None
    is_at_risk: bool
    milestone: Optional[str] = None


class AccessResponse(BaseModel):
    category: str
    granted: bool
    remaining: int
    level: int
    required_level: int


# ==================== Error Handling ====================

ERROR_STATUS = {
    NotFoundError: 404,
    ConflictError: 409,
    InvalidStateError: 409,
    InvalidArtifactError: 422,
    AccessDeniedError: 402,
    PersistenceError: 503,
}


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    """Map engine errors to HTTP responses the UI can route on."""
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    body: Dict[str, Any] = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, AccessDeniedError):
        body["error"] = "upgrade_required"
    if status >= 500:
        logger.error(f"Engine failure on {request.url.path}", error=exc)
    else:
        logger.warning(f"{type(exc).__name__} on {request.url.path}", data={"detail": str(exc)})
    return JSONResponse(status_code=status, content=body)


def _kind_param(kind: Optional[str]) -> Optional[SessionKind]:
    if kind is None:
        return None
    try:
        return SessionKind(kind)
    except ValueError:
        raise InvalidArtifactError(f"Unknown session kind: {kind!r}")


# ==================== API Endpoints ====================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Cognitive Trainer API",
        "version": "1.0.0",
        "history_store": settings.history_store,
        "supabase_configured": supabase_configured(),
    }


@app.get("/api/activities", response_model=List[ActivityResponse])
async def list_activities(kind: Optional[str] = None, user: dict = Depends(get_current_user)):
    """Catalog of startable activities, optionally filtered by kind."""
    return [ActivityResponse(**a.__dict__) for a in catalog.list_activities(_kind_param(kind))]


@app.post("/api/sessions")
async def start_session(body: StartSessionRequest, user: dict = Depends(get_current_user)):
    """Start a timed session. 402 means the activity needs a premium plan."""
    start_time = time.time()
    logger.request("POST", "/api/sessions", user_id=user["id"], data={
        "kind": body.kind.value,
        "reference_id": body.reference_id,
    })
    manager = get_session_manager(user)
    session = await manager.start(body.kind, body.reference_id, user_id=user["id"])
    logger.response(201, "/api/sessions", duration=time.time() - start_time, data={"session_id": session.session_id})
    return JSONResponse(status_code=201, content=session.to_dict())


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: str, user: dict = Depends(get_current_user)):
    """Current state of a session (for rendering the countdown)."""
    manager = get_session_manager(user)
    return manager.get_session(session_id).to_dict()


@app.post("/api/sessions/{session_id}/submit")
async def submit_artifact(session_id: str, body: SubmitRequest, user: dict = Depends(get_current_user)):
    """Score a prompt (prompt drills) or record game points (workouts)."""
    manager = get_session_manager(user)
    artifact: Dict[str, Any] = body.model_dump(exclude_none=True)
    result = await manager.submit(session_id, artifact)
    return result.to_dict()


@app.post("/api/sessions/{session_id}/pause")
async def pause_session(session_id: str, user: dict = Depends(get_current_user)):
    manager = get_session_manager(user)
    return (await manager.pause(session_id)).to_dict()


@app.post("/api/sessions/{session_id}/resume")
async def resume_session(session_id: str, user: dict = Depends(get_current_user)):
    manager = get_session_manager(user)
    return (await manager.resume(session_id)).to_dict()


@app.post("/api/sessions/{session_id}/complete")
async def complete_session(
    session_id: str,
    body: Optional[CompleteRequest] = None,
    user: dict = Depends(get_current_user)
):
    """Finish a session and return the recorded history entry."""
    manager = get_session_manager(user)
    extra_data = body.model_dump(exclude_none=True) if body is not None else None
    # An empty form is the same as no form
    if not extra_data:
        extra_data = None
    entry = await manager.complete(session_id, extra_data)
    logger.success("Session completed", data={
        "session_id": session_id,
        "kind": entry.kind.value,
        "score": entry.composite_score,
    })
    return entry.to_dict()


@app.post("/api/sessions/{session_id}/abandon")
async def abandon_session(session_id: str, user: dict = Depends(get_current_user)):
    manager = get_session_manager(user)
    return (await manager.abandon(session_id)).to_dict()


@app.get("/api/history")
async def get_history(kind: Optional[str] = None, user: dict = Depends(get_current_user)):
    """Completed sessions, most recent first."""
    manager = get_session_manager(user)
    entries = await manager.load_history(_kind_param(kind))
    return [e.to_dict() for e in reversed(entries)]


@app.get("/api/progress/streak", response_model=StreakResponse)
async def get_streak(user: dict = Depends(get_current_user)):
    manager = get_session_manager(user)
    streak = streak_tracker.compute_streak(await manager.load_history())
    return StreakResponse(
        current_streak_days=streak.current_streak_days,
        longest_streak_days=streak.longest_streak_days,
        last_active_day=streak.last_active_day.isoformat() if streak.last_active_day else None,
        is_at_risk=streak.is_at_risk,
        milestone=streak.milestone,
    )


@app.get("/api/progress/readiness")
async def get_readiness(user: dict = Depends(get_current_user)):
    """Readiness per category plus overall, with the unlock threshold."""
    manager = get_session_manager(user)
    profile = readiness_calculator.compute_profile(await manager.load_history())
    return {
        "required_level": access_gate.required_level,
        "categories": profile.to_dict(),
    }


@app.get("/api/access/{category}", response_model=AccessResponse)
async def check_access(category: str, required_level: Optional[int] = None, user: dict = Depends(get_current_user)):
    """Whether a premium category is unlocked by readiness."""
    manager = get_session_manager(user)
    history = await manager.load_history()
    profile = readiness_calculator.compute_profile(history, extra_categories=[category])
    decision = access_gate.has_access(profile, category, required_level=required_level)
    return AccessResponse(category=category, **decision.__dict__)


@app.get("/api/clarity/stats")
async def get_clarity_stats(user: dict = Depends(get_current_user)):
    manager = get_session_manager(user)
    stats = compute_clarity_stats(await manager.load_history(SessionKind.CLARITY_RESET), streak_tracker=streak_tracker)
    return {
        "todays_sessions": stats.todays_sessions,
        "week_sessions": stats.week_sessions,
        "avg_score": stats.avg_score,
        "total_sessions": stats.total_sessions,
        "current_streak": stats.current_streak,
        "last_session": stats.last_session.to_dict() if stats.last_session else None,
    }


@app.get("/api/clarity/recommendation")
async def get_clarity_recommendation(user: dict = Depends(get_current_user)):
    """Today's recommended breathing exercise."""
    manager = get_session_manager(user)
    recommendation = recommend_clarity_exercise(
        await manager.load_history(SessionKind.CLARITY_RESET),
        catalog=catalog,
        is_premium=bool(user.get("is_premium")),
        streak_tracker=streak_tracker,
    )
    return {
        "activity": ActivityResponse(**recommendation.activity.__dict__).model_dump(mode="json"),
        "reason": recommendation.reason,
    }


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event - stop all countdowns."""
    for manager in _managers.values():
        await manager.shutdown()
    logger.info("🛑 Session engines stopped")


if __name__ == "__main__":
    import uvicorn

    def handle_exit(*args):
        """Handle graceful shutdown."""
        logger.section("SERVER SHUTDOWN", {"reason": "signal received"})
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    try:
        uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped.")
        sys.exit(0)
