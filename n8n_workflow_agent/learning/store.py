"""Learning store — append/query persistence for generation and feedback records.

The learning service keeps its own in-memory history; a store is an
optional write-through target that survives restarts.

SQLite schema:
    generations (
        seq               INTEGER PRIMARY KEY AUTOINCREMENT,  -- insertion order
        id                TEXT NOT NULL UNIQUE,
        prompt            TEXT NOT NULL,
        workflow_name     TEXT NOT NULL DEFAULT '',
        node_count        INTEGER NOT NULL DEFAULT 0,
        connection_count  INTEGER NOT NULL DEFAULT 0,
        timestamp         REAL NOT NULL,                      -- Unix timestamp
        provider          TEXT NOT NULL,
        model             TEXT,
        success           INTEGER NOT NULL DEFAULT 1,
        error             TEXT,
        node_types        TEXT NOT NULL DEFAULT '[]'          -- JSON array
    )
    feedback (
        seq, workflow_id, prompt, workflow_type, outcome, node_count,
        timestamp, error_message, execution_time
    )

Lifecycle:
    store = await SQLiteLearningStore.open(db_path)
    await store.append_generation(record)
    history = await store.load_generations(limit=500)
    await store.close()
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod

from n8n_workflow_agent.learning.models import FeedbackRecord, GenerationRecord

logger = logging.getLogger("n8n_workflow_agent.learning.store")


class LearningStore(ABC):
    """Opaque append/query store for learning records."""

    async def setup(self) -> None:
        """Prepare the backing storage. Safe to call more than once."""

    async def close(self) -> None:
        """Release resources held by the store."""

    @abstractmethod
    async def append_generation(self, record: GenerationRecord) -> None: ...

    @abstractmethod
    async def append_feedback(self, record: FeedbackRecord) -> None: ...

    @abstractmethod
    async def load_generations(self, limit: int = 500) -> list[GenerationRecord]:
        """Most recent `limit` generations, oldest first."""

    @abstractmethod
    async def load_feedback(self, limit: int = 1000) -> list[FeedbackRecord]:
        """Most recent `limit` feedback records, oldest first."""


class InMemoryLearningStore(LearningStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self) -> None:
        self._generations: list[GenerationRecord] = []
        self._feedback: list[FeedbackRecord] = []

    async def append_generation(self, record: GenerationRecord) -> None:
        self._generations.append(record)

    async def append_feedback(self, record: FeedbackRecord) -> None:
        self._feedback.append(record)

    async def load_generations(self, limit: int = 500) -> list[GenerationRecord]:
        return self._generations[-limit:] if limit > 0 else []

    async def load_feedback(self, limit: int = 1000) -> list[FeedbackRecord]:
        return self._feedback[-limit:] if limit > 0 else []


_CREATE_GENERATIONS = """
CREATE TABLE IF NOT EXISTS generations (
    seq               INTEGER PRIMARY KEY AUTOINCREMENT,
    id                TEXT    NOT NULL UNIQUE,
    prompt            TEXT    NOT NULL,
    workflow_name     TEXT    NOT NULL DEFAULT '',
    node_count        INTEGER NOT NULL DEFAULT 0,
    connection_count  INTEGER NOT NULL DEFAULT 0,
    timestamp         REAL    NOT NULL,
    provider          TEXT    NOT NULL,
    model             TEXT,
    success           INTEGER NOT NULL DEFAULT 1,
    error             TEXT,
    node_types        TEXT    NOT NULL DEFAULT '[]'
)
"""

_CREATE_FEEDBACK = """
CREATE TABLE IF NOT EXISTS feedback (
    seq               INTEGER PRIMARY KEY AUTOINCREMENT,
    workflow_id       TEXT    NOT NULL,
    prompt            TEXT    NOT NULL,
    workflow_type     TEXT    NOT NULL DEFAULT 'general',
    outcome           TEXT    NOT NULL,
    node_count        INTEGER NOT NULL DEFAULT 0,
    timestamp         REAL    NOT NULL,
    error_message     TEXT,
    execution_time    REAL
)
"""


class SQLiteLearningStore(LearningStore):
    """Async SQLite-backed learning store (aiosqlite)."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._conn = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def setup(self) -> None:
        """Open the SQLite connection and create tables."""
        if self._conn is not None:
            return
        import aiosqlite
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.execute(_CREATE_GENERATIONS)
        await self._conn.execute(_CREATE_FEEDBACK)
        await self._conn.commit()
        logger.info("SQLiteLearningStore ready: %s", self._db_path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @classmethod
    async def open(cls, db_path: str) -> SQLiteLearningStore:
        """Factory: create + setup in one call."""
        store = cls(db_path)
        await store.setup()
        return store

    def _require_conn(self):
        if not self._conn:
            raise RuntimeError("SQLiteLearningStore.setup() not called")
        return self._conn

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def append_generation(self, record: GenerationRecord) -> None:
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT INTO generations
                (id, prompt, workflow_name, node_count, connection_count,
                 timestamp, provider, model, success, error, node_types)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id, record.prompt, record.workflow_name, record.node_count,
                record.connection_count, record.timestamp, record.provider, record.model,
                1 if record.success else 0, record.error, json.dumps(list(record.node_types)),
            ),
        )
        await conn.commit()
        logger.debug("SQLiteLearningStore: saved generation %s", record.id)

    async def append_feedback(self, record: FeedbackRecord) -> None:
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT INTO feedback
                (workflow_id, prompt, workflow_type, outcome, node_count,
                 timestamp, error_message, execution_time)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.workflow_id, record.prompt, record.workflow_type, record.outcome,
                record.node_count, record.timestamp, record.error_message, record.execution_time,
            ),
        )
        await conn.commit()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def load_generations(self, limit: int = 500) -> list[GenerationRecord]:
        if not self._conn:
            return []
        async with self._conn.execute(
            "SELECT id, prompt, workflow_name, node_count, connection_count, timestamp, "
            "provider, model, success, error, node_types "
            "FROM generations ORDER BY seq DESC LIMIT ?",
            (limit,),
        ) as cur:
            rows = await cur.fetchall()

        records: list[GenerationRecord] = []
        for row in reversed(rows):
            try:
                node_types = json.loads(row[10] or "[]") or []
            except (ValueError, TypeError):
                node_types = []
            records.append(GenerationRecord(
                id=row[0],
                prompt=row[1],
                workflow_name=row[2],
                node_count=row[3],
                connection_count=row[4],
                timestamp=row[5],
                provider=row[6],
                model=row[7],
                success=bool(row[8]),
                error=row[9],
                node_types=tuple(node_types),
            ))
        return records

    async def load_feedback(self, limit: int = 1000) -> list[FeedbackRecord]:
        if not self._conn:
            return []
        async with self._conn.execute(
            "SELECT workflow_id, prompt, workflow_type, outcome, node_count, timestamp, "
            "error_message, execution_time "
            "FROM feedback ORDER BY seq DESC LIMIT ?",
            (limit,),
        ) as cur:
            rows = await cur.fetchall()
        return [
            FeedbackRecord(
                workflow_id=r[0],
                prompt=r[1],
                workflow_type=r[2],
                outcome=r[3],
                node_count=r[4],
                timestamp=r[5],
                error_message=r[6],
                execution_time=r[7],
            )
            for r in reversed(rows)
        ]
