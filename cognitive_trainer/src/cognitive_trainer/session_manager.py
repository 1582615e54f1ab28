"""
Session Manager

Owns the lifecycle of timed training sessions and the append-only history
log. One non-terminal session per kind; each runs its own countdown.

Lifecycle:
    start -> active <-> paused -> completed (explicit or on timeout)
    active | paused -> abandoned (no history)
"""

import asyncio
import inspect
import logging
import uuid
from collections import deque
from functools import partial
from typing import Any, Awaitable, Callable, Deque, Dict, List, Mapping, Optional, Set, Union

from cognitive_trainer.activity_catalog import ActivityCatalog
from cognitive_trainer.clarity_insights import thinking_score_impact
from cognitive_trainer.clock import Clock, CountdownHandle
from cognitive_trainer.errors import (
    AccessDeniedError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)
from cognitive_trainer.history_store import HistoryStore, InMemoryHistoryStore
from cognitive_trainer.scoring_engine import (
    ScoringContext,
    ScoringEngine,
    parse_fog_level,
    round_half_up,
)
from cognitive_trainer.session_state import (
    HistoryEntry,
    ScoreResult,
    SessionKind,
    SessionStatus,
    TrainingSession,
    utc_now,
)

logger = logging.getLogger(__name__)

EntitlementPredicate = Callable[[Optional[str]], Union[bool, Awaitable[bool]]]
CompletionListener = Callable[[HistoryEntry], Any]

DEFAULT_MAX_FINISHED_SESSIONS = 100


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class SessionManager:
    """
    Runs workout, clarity-reset and prompt-drill sessions.

    All methods are coroutines on one event loop. A per-session lock
    serializes manager calls with countdown expiry; a manager-wide lock
    keeps history in completion order.
    """

    def __init__(
        self,
        catalog: Optional[ActivityCatalog] = None,
        history_store: Optional[HistoryStore] = None,
        clock: Optional[Clock] = None,
        scoring_engine: Optional[ScoringEngine] = None,
        is_premium_unlocked: Optional[EntitlementPredicate] = None,
        user_id: Optional[str] = None,
        on_session_completed: Optional[CompletionListener] = None,
        max_finished_sessions: int = DEFAULT_MAX_FINISHED_SESSIONS
    ):
        """
        Initialize SessionManager.

        Args:
            catalog: Activity lookup (default: built-in catalog)
            history_store: Persistence adapter (default: in-memory)
            clock: Countdown scheduler (default: 1000 ms ticks)
            scoring_engine: Heuristic scorer (default weights if None)
            is_premium_unlocked: Entitlement predicate for premium activities;
                premium activities are denied when it is missing
            user_id: Default user for start() and history entries
            on_session_completed: Called with each new HistoryEntry
            max_finished_sessions: Completed/abandoned sessions kept for
                get_session(); older ones are forgotten (history keeps them)
        """
        self.catalog = catalog or ActivityCatalog()
        self.history_store = history_store or InMemoryHistoryStore()
        self.clock = clock or Clock()
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.is_premium_unlocked = is_premium_unlocked
        self.user_id = user_id
        self.on_session_completed = on_session_completed

        self._sessions: Dict[str, TrainingSession] = {}
        self._active_by_kind: Dict[SessionKind, str] = {}
        self._countdowns: Dict[str, CountdownHandle] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._history_lock = asyncio.Lock()
        # Completed entries not yet accepted by the store, oldest first
        self._pending_entries: List[HistoryEntry] = []
        self._expiry_tasks: Set[asyncio.Task] = set()
        self.max_finished_sessions = max_finished_sessions
        # Terminal session ids, oldest first
        self._finished: Deque[str] = deque()

    # ==================== Lookup ====================

    def get_session(self, session_id: str) -> TrainingSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    def active_session(self, kind: SessionKind) -> Optional[TrainingSession]:
        """The non-terminal session of this kind, if any."""
        session_id = self._active_by_kind.get(SessionKind(kind))
        return self._sessions.get(session_id) if session_id else None

    @property
    def pending_entries(self) -> List[HistoryEntry]:
        return list(self._pending_entries)

    async def load_history(self, kind: Optional[SessionKind] = None) -> List[HistoryEntry]:
        """Stored history plus entries still waiting to be written."""
        entries = await self.history_store.load_history(kind)
        pending = [e for e in self._pending_entries if kind is None or e.kind == kind]
        return entries + pending

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        # Unknown ids raise before a lock is created for them
        self.get_session(session_id)
        return self._locks.setdefault(session_id, asyncio.Lock())

    # ==================== Lifecycle ====================

    async def start(self, kind: SessionKind, reference_id: str, user_id: Optional[str] = None) -> TrainingSession:
        """
        Start a session for a catalog activity.

        Raises:
            NotFoundError: Unknown activity
            ConflictError: A session of this kind is still running
            AccessDeniedError: Premium activity without entitlement
        """
        kind = SessionKind(kind)
        user_id = user_id if user_id is not None else self.user_id
        activity = self.catalog.lookup(kind, reference_id)

        self._ensure_kind_free(kind)
        if activity.is_premium and not await self._is_entitled(user_id):
            logger.info(f"🔒 [SessionManager] Premium required for {kind.value} {activity.reference_id}")
            raise AccessDeniedError(activity.reference_id)
        # The entitlement check may have yielded to another start()
        self._ensure_kind_free(kind)

        session = TrainingSession(
            session_id=uuid.uuid4().hex,
            kind=kind,
            reference_id=activity.reference_id,
            total_duration_ms=activity.total_duration_ms,
            category_tag=activity.category,
            user_id=user_id,
        )
        session.activate()
        self._sessions[session.session_id] = session
        self._active_by_kind[kind] = session.session_id
        self._countdowns[session.session_id] = self.clock.start_countdown(
            activity.total_duration_ms,
            on_tick=partial(self._on_tick, session.session_id),
            on_expire=partial(self._on_expire, session.session_id),
        )

        logger.info(
            f"▶️ [SessionManager] Started {kind.value} session {session.session_id} "
            f"({activity.name}, {activity.total_duration_ms} ms)"
        )
        return session

    async def submit(self, session_id: str, artifact: Any) -> ScoreResult:
        """
        Score an artifact and record it on an active session.

        Raises:
            NotFoundError: Unknown session
            InvalidStateError: Session is not active
            InvalidArtifactError: Artifact cannot be scored
        """
        async with self._lock_for(session_id):
            session = self.get_session(session_id)
            if session.status != SessionStatus.ACTIVE:
                raise InvalidStateError(session_id, session.status, "submit")

            self._sync_elapsed(session)
            result = self.scoring_engine.score(session.kind, artifact, self._context(session))
            session.add_submission(result)
            logger.debug(
                f"📝 [SessionManager] Submission #{len(session.submissions)} on {session_id}: "
                f"composite={result.composite}"
            )
            return result

    async def pause(self, session_id: str) -> TrainingSession:
        """Freeze an active session's countdown."""
        async with self._lock_for(session_id):
            session = self.get_session(session_id)
            if session.status == SessionStatus.ACTIVE:
                self._sync_elapsed(session)
            session.pause()
            handle = self._countdowns.get(session_id)
            if handle is not None:
                self.clock.pause(handle)
            logger.info(f"⏸️ [SessionManager] Paused {session_id} at {session.elapsed_ms} ms")
            return session

    async def resume(self, session_id: str) -> TrainingSession:
        """Continue a paused session from its frozen elapsed time."""
        async with self._lock_for(session_id):
            session = self.get_session(session_id)
            session.resume()
            handle = self._countdowns.get(session_id)
            if handle is not None:
                self.clock.resume(handle)
            logger.info(f"▶️ [SessionManager] Resumed {session_id} at {session.elapsed_ms} ms")
            return session

    async def complete(self, session_id: str, extra_data: Optional[Mapping[str, Any]] = None) -> HistoryEntry:
        """
        Finish an active or paused session and append its history entry.

        Args:
            session_id: Session to finish
            extra_data: Completion form (clarity resets: mental_fog_level,
                pre_workout_intent, post_session_log; workouts: points)

        Returns:
            The new HistoryEntry

        Raises:
            NotFoundError: Unknown session
            InvalidStateError: Session already completed or abandoned
            PersistenceError: The store rejected the entry; it stays pending
                and is written before the next entry
        """
        async with self._lock_for(session_id):
            session = self.get_session(session_id)
            if session.status not in (SessionStatus.ACTIVE, SessionStatus.PAUSED):
                raise InvalidStateError(session_id, session.status, "complete")
            return await self._finalize(session, extra_data, reason="explicit")

    async def abandon(self, session_id: str) -> TrainingSession:
        """Stop a session without recording history."""
        async with self._lock_for(session_id):
            session = self.get_session(session_id)
            if session.status == SessionStatus.ACTIVE:
                self._sync_elapsed(session)
            session.mark_abandoned()
            self._release(session)
            self._retire(session)
            logger.info(f"⏹️ [SessionManager] Abandoned {session_id} after {session.elapsed_ms} ms")
            return session

    async def flush_pending(self) -> int:
        """Retry writing entries a previous completion could not store."""
        async with self._history_lock:
            return await self._drain_pending()

    async def shutdown(self):
        """Cancel every countdown and wait for in-flight expiry handling."""
        for handle in list(self._countdowns.values()):
            self.clock.cancel(handle)
        if self._expiry_tasks:
            await asyncio.gather(*list(self._expiry_tasks), return_exceptions=True)

    # ==================== Internals ====================

    def _ensure_kind_free(self, kind: SessionKind):
        active_id = self._active_by_kind.get(kind)
        if active_id is not None:
            raise ConflictError(kind, active_id)

    async def _is_entitled(self, user_id: Optional[str]) -> bool:
        if self.is_premium_unlocked is None:
            return False
        return bool(await _maybe_await(self.is_premium_unlocked(user_id)))

    def _context(self, session: TrainingSession) -> ScoringContext:
        return ScoringContext(elapsed_ms=session.elapsed_ms, total_duration_ms=session.total_duration_ms)

    def _sync_elapsed(self, session: TrainingSession):
        handle = self._countdowns.get(session.session_id)
        if handle is not None:
            session.record_elapsed(session.total_duration_ms - self.clock.remaining_ms(handle))

    def _release(self, session: TrainingSession):
        handle = self._countdowns.pop(session.session_id, None)
        if handle is not None:
            self.clock.cancel(handle)
        if self._active_by_kind.get(session.kind) == session.session_id:
            del self._active_by_kind[session.kind]

    def _retire(self, session: TrainingSession):
        self._finished.append(session.session_id)
        while len(self._finished) > self.max_finished_sessions:
            old_id = self._finished.popleft()
            self._sessions.pop(old_id, None)
            self._locks.pop(old_id, None)

    def _on_tick(self, session_id: str, remaining_ms: int):
        session = self._sessions.get(session_id)
        if session is not None:
            session.record_elapsed(session.total_duration_ms - remaining_ms)

    def _on_expire(self, session_id: str):
        task = asyncio.get_running_loop().create_task(self._expire(session_id))
        self._expiry_tasks.add(task)
        task.add_done_callback(self._expiry_tasks.discard)

    async def _expire(self, session_id: str):
        if session_id not in self._sessions:
            return
        async with self._lock_for(session_id):
            session = self._sessions[session_id]
            handle = self._countdowns.get(session_id)
            # Finished while the expiry was queued
            if handle is None or session.is_terminal():
                return
            # Paused after the countdown hit zero; resume() cannot restart it
            if session.status == SessionStatus.PAUSED:
                session.elapsed_ms = session.total_duration_ms
            session.record_elapsed(session.total_duration_ms)
            logger.info(f"⏰ [SessionManager] Time is up for {session_id}")
            try:
                await self._finalize(session, None, reason="timeout")
            except PersistenceError as e:
                logger.error(
                    f"❌ [SessionManager] Timed-out session {session_id} kept pending: {e}",
                    exc_info=e,
                )

    def _completion_result(self, session: TrainingSession, extra_data: Optional[Mapping[str, Any]]):
        """Composite score and subjective metrics for a finishing session."""
        context = self._context(session)

        if session.kind == SessionKind.PROMPT_DRILL:
            composites = [s.composite for s in session.submissions]
            composite = round_half_up(sum(composites) / len(composites)) if composites else 0
            return composite, None

        if session.kind == SessionKind.CLARITY_RESET:
            result = self.scoring_engine.score(session.kind, extra_data or {}, context)
            if extra_data is None:
                return result.composite, None
            fog_level = parse_fog_level(extra_data.get("mental_fog_level"))
            metrics = {
                "mental_fog_level": fog_level,
                "pre_workout_intent": bool(extra_data.get("pre_workout_intent")),
                "post_session_log": extra_data.get("post_session_log") or None,
                "thinking_score_impact": thinking_score_impact(fog_level),
            }
            return result.composite, metrics

        if extra_data is not None and "points" in extra_data:
            points = extra_data["points"]
        else:
            points = sum(int(s.details.get("points", 0)) for s in session.submissions)
        result = self.scoring_engine.score(session.kind, {"points": points}, context)
        return result.composite, None

    async def _finalize(
        self,
        session: TrainingSession,
        extra_data: Optional[Mapping[str, Any]],
        reason: str
    ) -> HistoryEntry:
        if session.status == SessionStatus.ACTIVE:
            self._sync_elapsed(session)

        # Score before any state change so a bad completion form leaves the
        # session running
        composite, metrics = self._completion_result(session, extra_data)

        self._release(session)
        session.mark_completed(utc_now())
        self._retire(session)
        entry = HistoryEntry(
            session_id=session.session_id,
            kind=session.kind,
            reference_id=session.reference_id,
            completed_at=session.completed_at,
            duration_actual_ms=session.elapsed_ms,
            composite_score=composite,
            category_tag=session.category_tag,
            subjective_metrics=metrics,
            user_id=session.user_id,
        )

        async with self._history_lock:
            self._pending_entries.append(entry)
            await self._drain_pending()

        logger.info(
            f"✅ [SessionManager] Completed {session.kind.value} session {session.session_id} "
            f"({reason}): score={composite}, duration={entry.duration_actual_ms} ms"
        )
        await self._notify(entry)
        return entry

    async def _drain_pending(self) -> int:
        written = 0
        while self._pending_entries:
            await self.history_store.append_history_entry(self._pending_entries[0])
            self._pending_entries.pop(0)
            written += 1
        return written

    async def _notify(self, entry: HistoryEntry):
        if self.on_session_completed is None:
            return
        try:
            await _maybe_await(self.on_session_completed(entry))
        except Exception as e:
            logger.error(f"❌ [SessionManager] Completion listener failed for {entry.session_id}: {e}", exc_info=e)
