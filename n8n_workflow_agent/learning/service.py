"""LearningService — generation history, feedback, and prompt enrichment.

The service owns an append-only log of GenerationRecords plus a bounded
list of FeedbackRecords. Readers work on tuple snapshots; writers take a
short threading.Lock around the append. Learned patterns are cached and
every write invalidates the cache, so the next read re-analyzes a fresh
snapshot (learning.analyzer).

Failures inside the learning subsystem never reach the caller:
record_* log and return, enhance_prompt falls back to the original prompt.

Usage:
    learning = LearningService(store=await SQLiteLearningStore.open(path))
    await learning.load()
    prompt = await learning.enhance_prompt(user_prompt)
    await learning.record_generation({"prompt": user_prompt, "nodeCount": 4})
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from typing import Any

from n8n_workflow_agent.config import AgentSettings
from n8n_workflow_agent.learning import analyzer
from n8n_workflow_agent.learning.models import (
    FeedbackInput,
    FeedbackRecord,
    GenerationInput,
    GenerationRecord,
    LearnedPattern,
    LearningContext,
    LearningMetrics,
)
from n8n_workflow_agent.learning.store import LearningStore, SQLiteLearningStore

logger = logging.getLogger("n8n_workflow_agent.learning.service")

MAX_PROMPT_PRACTICES = 3


class LearningService:
    """Records outcomes and turns them into prompt guidance."""

    def __init__(
        self,
        store: LearningStore | None = None,
        *,
        history_limit: int = 500,
        feedback_limit: int = 1000,
        persist_interval: float | None = None,
    ) -> None:
        self._store = store
        self._history_limit = history_limit
        self._feedback_limit = feedback_limit
        self._persist_interval = persist_interval or None
        self._lock = threading.Lock()
        self._history: list[GenerationRecord] = []
        self._feedback: list[FeedbackRecord] = []
        # None until analyzed; reset by every write
        self._patterns: list[LearnedPattern] | None = None
        self._version = 0
        self._task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @property
    def history(self) -> tuple[GenerationRecord, ...]:
        """Every recorded generation, oldest first."""
        with self._lock:
            return tuple(self._history)

    @property
    def feedback(self) -> tuple[FeedbackRecord, ...]:
        with self._lock:
            return tuple(self._feedback)

    @property
    def learned_patterns(self) -> tuple[LearnedPattern, ...]:
        """Patterns from the last analyze_patterns() run."""
        with self._lock:
            return tuple(self._patterns or ())

    def _window(self) -> tuple[tuple[GenerationRecord, ...], tuple[FeedbackRecord, ...]]:
        generations, feedback, _, _ = self._snapshot()
        return generations, feedback

    def _snapshot(self):
        """(generations, feedback, cached patterns or None, version) under one lock."""
        with self._lock:
            generations = self._history[-self._history_limit:] if self._history_limit > 0 else []
            return tuple(generations), tuple(self._feedback), self._patterns, self._version

    def _invalidate(self) -> None:
        # caller holds self._lock
        self._patterns = None
        self._version += 1

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def record_generation(self, data: GenerationInput | Mapping[str, Any]) -> None:
        """Append one generation attempt. Never raises."""
        try:
            if not isinstance(data, GenerationInput):
                data = GenerationInput.model_validate(dict(data))
            record = GenerationRecord.from_input(data)
            with self._lock:
                self._history.append(record)
                self._invalidate()
            logger.debug(
                "Recorded generation %s (nodes=%d, success=%s)",
                record.id, record.node_count, record.success,
            )
        except Exception:
            logger.exception("Failed to record generation")
            return

        if self._store is not None:
            try:
                await self._store.append_generation(record)
            except Exception:
                logger.warning("Learning store write failed for %s", record.id, exc_info=True)

    async def record_feedback(self, feedback: FeedbackInput | Mapping[str, Any]) -> None:
        """Append one execution outcome, dropping the oldest past feedback_limit."""
        try:
            if not isinstance(feedback, FeedbackInput):
                feedback = FeedbackInput.model_validate(dict(feedback))
            record = FeedbackRecord.from_input(feedback)
            with self._lock:
                self._feedback.append(record)
                overflow = len(self._feedback) - self._feedback_limit
                if overflow > 0:
                    del self._feedback[:overflow]
                self._invalidate()
            logger.debug("Recorded %s feedback for %s", record.outcome, record.workflow_id)
        except Exception:
            logger.exception("Failed to record feedback")
            return

        if self._store is not None:
            try:
                await self._store.append_feedback(record)
            except Exception:
                logger.warning(
                    "Learning store write failed for feedback %s", record.workflow_id, exc_info=True
                )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_learning_context(self, prompt: str) -> LearningContext:
        generations, feedback, patterns, version = self._snapshot()
        if patterns is None and (generations or feedback):
            patterns = self._analyze(generations, feedback, version)
        return analyzer.build_context(prompt, generations, feedback, patterns)

    async def enhance_prompt(self, prompt: str) -> str:
        """Append learned guidance to prompt; returns prompt unchanged when there is none."""
        try:
            context = await self.get_learning_context(prompt)
            if context.is_empty:
                return prompt

            sections = [prompt]
            if context.common_patterns:
                sections.append(
                    "Consider these successful patterns:\n"
                    + "\n".join(f"- {p}" for p in context.common_patterns)
                )
            if context.avoid_errors:
                sections.append(
                    "Avoid these common issues:\n"
                    + "\n".join(f"- {e}" for e in context.avoid_errors)
                )
            if context.best_practices:
                sections.append(
                    "Best practices:\n"
                    + "\n".join(f"- {b}" for b in context.best_practices[:MAX_PROMPT_PRACTICES])
                )
            return "\n\n".join(sections)
        except Exception:
            logger.exception("Prompt enhancement failed; using original prompt")
            return prompt

    def get_metrics(self) -> LearningMetrics:
        history = self.history
        generations, feedback = self._window()
        successes = sum(1 for g in history if g.success)
        patterns = analyzer.analyze_patterns(feedback, generations)
        return LearningMetrics(
            total_generations=len(history),
            success_rate=successes / len(history) if history else 0.0,
            common_errors=tuple(analyzer.common_errors(generations, feedback)),
            best_practices=tuple(analyzer.best_practices(generations, feedback, patterns)),
        )

    def analyze_patterns(self) -> list[LearnedPattern]:
        """Recompute learned patterns from the current window and cache them."""
        generations, feedback, _, version = self._snapshot()
        return self._analyze(generations, feedback, version)

    def _analyze(self, generations, feedback, version: int) -> list[LearnedPattern]:
        patterns = analyzer.analyze_patterns(feedback, generations)
        with self._lock:
            # a write landed mid-analysis; leave the cache invalid
            if self._version == version:
                self._patterns = list(patterns)
        logger.debug("Analyzed %d learned patterns", len(patterns))
        return patterns

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Seed history from the attached store."""
        if self._store is None:
            return
        await self._store.setup()
        generations = await self._store.load_generations(self._history_limit)
        feedback = await self._store.load_feedback(self._feedback_limit)
        with self._lock:
            known = {g.id for g in self._history}
            self._history[:0] = [g for g in generations if g.id not in known]
            seen = set(self._feedback)
            self._feedback[:0] = [f for f in feedback if f not in seen]
            overflow = len(self._feedback) - self._feedback_limit
            if overflow > 0:
                del self._feedback[:overflow]
            self._invalidate()
        logger.info(
            "LearningService loaded %d generations, %d feedback records",
            len(generations), len(feedback),
        )

    def start(self) -> None:
        """Schedule periodic analysis on the running loop (no-op without an interval)."""
        if self._persist_interval is None or self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._periodic())
        logger.info("LearningService periodic analysis every %ss", self._persist_interval)

    async def stop(self) -> None:
        """Cancel periodic work. History is kept."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def close(self) -> None:
        await self.stop()
        if self._store is not None:
            await self._store.close()

    async def _periodic(self) -> None:
        while True:
            await asyncio.sleep(self._persist_interval)
            try:
                self.analyze_patterns()
            except Exception:
                logger.exception("Periodic pattern analysis failed")


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_service: LearningService | None = None
_service_lock = threading.Lock()


def get_learning_service(settings: AgentSettings | None = None) -> LearningService:
    """Return the process-wide LearningService, creating it on first use.

    With LEARNING_DB_PATH set the service writes through to a SQLite store;
    otherwise history lives in memory only and no store is attached. Call
    `await service.load()` to seed from disk.
    """
    global _service
    with _service_lock:
        if _service is None:
            if settings is None:
                settings = AgentSettings()
            store: LearningStore | None = None
            if settings.learning_db_path:
                store = SQLiteLearningStore(settings.learning_db_path)
            _service = LearningService(
                store,
                history_limit=settings.history_limit,
                feedback_limit=settings.feedback_limit,
                persist_interval=settings.persist_interval,
            )
        return _service


def reset_learning_service() -> None:
    """Discard the process-wide instance (periodic task is cancelled)."""
    global _service
    with _service_lock:
        service, _service = _service, None
    if service is not None and service._task is not None:
        service._task.cancel()
        service._task = None
