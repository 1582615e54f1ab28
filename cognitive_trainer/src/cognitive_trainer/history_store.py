"""
History Store

Append-only persistence for completed-session history entries.

Implementations:
- InMemoryHistoryStore: process-local list (tests, local development)
- JsonlHistoryStore: one JSON object per line, flushed and fsynced per append
- SupabaseHistoryStore: rows in the `session_history` table, scoped per user
"""

import asyncio
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from cognitive_trainer.errors import PersistenceError
from cognitive_trainer.session_state import HistoryEntry, SessionKind

logger = logging.getLogger(__name__)


class HistoryStore(ABC):
    """Append-only log of HistoryEntry records."""

    @abstractmethod
    async def append_history_entry(self, entry: HistoryEntry) -> None:
        """Durably append one entry. Raises PersistenceError on failure."""

    @abstractmethod
    async def load_history(self, kind: Optional[SessionKind] = None) -> List[HistoryEntry]:
        """Entries in append order, optionally filtered by kind."""


class InMemoryHistoryStore(HistoryStore):
    """History kept in memory for the lifetime of the process."""

    def __init__(self, entries: Optional[List[HistoryEntry]] = None):
        self._entries: List[HistoryEntry] = list(entries or [])

    async def append_history_entry(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    async def load_history(self, kind: Optional[SessionKind] = None) -> List[HistoryEntry]:
        return [e for e in self._entries if kind is None or e.kind == kind]


class JsonlHistoryStore(HistoryStore):
    """
    History in a JSON-lines file.

    Each append is flushed and fsynced before returning. A torn last line
    (crash mid-write) is skipped on load.
    """

    def __init__(self, path: str):
        """
        Args:
            path: File to append to (created with its parent directory if missing)
        """
        self.path = Path(path)
        self._write_lock = threading.Lock()

    def _append_sync(self, entry: HistoryEntry):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._write_lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
                f.flush()
                os.fsync(f.fileno())

    def _load_sync(self) -> List[HistoryEntry]:
        if not self.path.exists():
            return []
        entries: List[HistoryEntry] = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(HistoryEntry.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning(f"⚠️ [HistoryStore] Skipping unreadable line {line_number} in {self.path}: {e}")
        return entries

    async def append_history_entry(self, entry: HistoryEntry) -> None:
        try:
            await asyncio.to_thread(self._append_sync, entry)
        except OSError as e:
            raise PersistenceError("append_history_entry", e) from e

    async def load_history(self, kind: Optional[SessionKind] = None) -> List[HistoryEntry]:
        try:
            entries = await asyncio.to_thread(self._load_sync)
        except OSError as e:
            raise PersistenceError("load_history", e) from e
        return [e for e in entries if kind is None or e.kind == kind]


class SupabaseHistoryStore(HistoryStore):
    """
    History rows in Supabase.

    Table `session_history` columns mirror HistoryEntry.to_dict(); rows are
    filtered by user_id and ordered by completed_at.
    """

    TABLE = "session_history"

    def __init__(self, supabase_client, user_id: Optional[str] = None):
        """
        Args:
            supabase_client: Supabase client instance
            user_id: Owner of the history rows (optional for single-user setups)
        """
        self.supabase = supabase_client
        self.user_id = user_id

    def _insert_sync(self, entry: HistoryEntry):
        row = entry.to_dict()
        if self.user_id and not row.get("user_id"):
            row["user_id"] = self.user_id
        result = self.supabase.table(self.TABLE).insert(row).execute()
        if not result.data:
            raise RuntimeError("insert returned no rows")

    def _select_sync(self, kind: Optional[SessionKind]) -> List[dict]:
        query = self.supabase.table(self.TABLE).select("*")
        if self.user_id:
            query = query.eq("user_id", self.user_id)
        if kind is not None:
            query = query.eq("kind", kind.value)
        result = query.order("completed_at", desc=False).execute()
        return result.data or []

    async def append_history_entry(self, entry: HistoryEntry) -> None:
        try:
            await asyncio.to_thread(self._insert_sync, entry)
        except Exception as e:
            logger.error(f"❌ [HistoryStore] Failed to save history entry {entry.session_id}: {e}")
            raise PersistenceError("append_history_entry", e) from e

    async def load_history(self, kind: Optional[SessionKind] = None) -> List[HistoryEntry]:
        try:
            rows = await asyncio.to_thread(self._select_sync, kind)
        except Exception as e:
            logger.error(f"❌ [HistoryStore] Failed to load history: {e}")
            raise PersistenceError("load_history", e) from e
        return [HistoryEntry.from_dict(row) for row in rows]


def create_history_store(settings, user_id: Optional[str] = None, supabase_client=None) -> HistoryStore:
    """
    Build the store selected by EngineSettings.history_store.

    Args:
        settings: EngineSettings
        user_id: Owner of the history (file store appends it to the file name)
        supabase_client: Required for the 'supabase' backend
    """
    backend = settings.history_store
    if backend == "supabase":
        if supabase_client is None:
            raise ValueError("HISTORY_STORE=supabase requires a Supabase client")
        return SupabaseHistoryStore(supabase_client, user_id=user_id)
    if backend == "file":
        base = Path(settings.history_file_path or "data/session_history.jsonl")
        if user_id:
            base = base.with_name(f"{base.stem}.{user_id}{base.suffix}")
        return JsonlHistoryStore(str(base))
    if backend != "memory":
        logger.warning(f"⚠️ [HistoryStore] Unknown HISTORY_STORE={backend!r}, using in-memory store")
    return InMemoryHistoryStore()
