"""Tests for LearningService and the pattern analyzer.

Covers:
  Test group 1 — record_generation: append-only history, ids, defaults, never raises.
  Test group 2 — enhance_prompt: identity on empty history, sections, failure fallback.
  Test group 3 — get_learning_context / analyzer helpers.
  Test group 4 — get_metrics shape and values.
  Test group 5 — Feedback bounds, store write-through, load() without duplicates.
  Test group 6 — Lifecycle: start/stop, process-wide instance.
"""

from __future__ import annotations

import asyncio
import re
import threading
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from n8n_workflow_agent.config import AgentSettings
from n8n_workflow_agent.learning import (
    FeedbackRecord,
    GenerationInput,
    GenerationRecord,
    InMemoryLearningStore,
    LearningService,
    SQLiteLearningStore,
    classify_structure,
    get_learning_service,
    normalize_error,
    reset_learning_service,
)
from n8n_workflow_agent.learning import analyzer


def _gen(prompt: str = "build a webhook", **overrides) -> dict:
    data = {"prompt": prompt, "workflowName": "wf", "nodeCount": 3, "connectionCount": 2,
            "provider": "anthropic", "success": True}
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# Test group 1 — record_generation
# ---------------------------------------------------------------------------


class TestRecordGeneration:

    @pytest.mark.asyncio
    async def test_append_only(self):
        service = LearningService()
        await service.record_generation(_gen("first"))
        before = service.history

        for i in range(5):
            await service.record_generation(_gen(f"prompt {i}"))

        after = service.history
        assert len(after) == len(before) + 5
        assert after[0] == before[0]
        assert [g.prompt for g in after[1:]] == [f"prompt {i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_id_shape_and_uniqueness(self):
        service = LearningService()
        for _ in range(20):
            await service.record_generation(_gen())
        ids = [g.id for g in service.history]
        assert len(set(ids)) == 20
        assert all(re.match(r"^gen_\d+_[0-9a-z]+$", i) for i in ids)

    @pytest.mark.asyncio
    async def test_missing_counts_default_to_zero(self):
        service = LearningService()
        await service.record_generation({"prompt": "p", "provider": "openai"})
        record = service.history[0]
        assert record.node_count == 0
        assert record.connection_count == 0
        assert record.workflow_name == ""

    @pytest.mark.asyncio
    async def test_accepts_pydantic_input(self):
        service = LearningService()
        await service.record_generation(GenerationInput(prompt="p", node_count=4))
        assert service.history[0].node_count == 4

    @pytest.mark.asyncio
    async def test_invalid_input_is_swallowed(self):
        service = LearningService()
        await service.record_generation({"nodeCount": -1})  # no prompt, negative count
        assert service.history == ()

    @pytest.mark.asyncio
    async def test_history_snapshot_is_immutable(self):
        service = LearningService()
        await service.record_generation(_gen())
        snapshot = service.history
        await service.record_generation(_gen())
        assert len(snapshot) == 1
        with pytest.raises(AttributeError):
            snapshot[0].prompt = "rewritten"

    def test_concurrent_appends(self):
        service = LearningService()

        def worker(n: int) -> None:
            for i in range(25):
                asyncio.run(service.record_generation(_gen(f"t{n}-{i}")))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        history = service.history
        assert len(history) == 100
        for n in range(4):
            mine = [g.prompt for g in history if g.prompt.startswith(f"t{n}-")]
            assert mine == [f"t{n}-{i}" for i in range(25)]


# ---------------------------------------------------------------------------
# Test group 2 — enhance_prompt
# ---------------------------------------------------------------------------


class TestEnhancePrompt:

    @pytest.mark.asyncio
    async def test_identity_on_empty_history(self):
        service = LearningService()
        assert await service.enhance_prompt("send a slack alert") == "send a slack alert"

    @pytest.mark.asyncio
    async def test_sections_added(self):
        service = LearningService()
        await service.record_generation(_gen("sync contacts", success=False,
                                             error="Request timed out after 30s"))
        for _ in range(3):
            await service.record_generation(_gen("sync contacts to crm"))

        enhanced = await service.enhance_prompt("sync contacts")
        assert enhanced.startswith("sync contacts\n\n")
        assert "Avoid these common issues:\n- Operation timeout" in enhanced
        assert "Best practices:" in enhanced

    @pytest.mark.asyncio
    async def test_best_practices_capped_at_three(self):
        service = LearningService()
        for kind in ("crm", "email", "sms", "reports"):
            for _ in range(2):
                await service.record_feedback({"workflowId": "w", "prompt": kind,
                                               "workflowType": kind, "outcome": "success",
                                               "nodeCount": 4})
        enhanced = await service.enhance_prompt("anything")
        practices = enhanced.split("Best practices:\n", 1)[1].split("\n\n", 1)[0]
        assert len(practices.splitlines()) == 3

    @pytest.mark.asyncio
    async def test_failure_returns_original_prompt(self):
        service = LearningService()
        await service.record_generation(_gen())
        with patch.object(service, "get_learning_context", AsyncMock(side_effect=RuntimeError("boom"))):
            assert await service.enhance_prompt("keep me") == "keep me"

    @pytest.mark.asyncio
    async def test_recording_does_not_depend_on_enhancement(self):
        service = LearningService()
        with patch.object(service, "get_learning_context", AsyncMock(side_effect=RuntimeError("boom"))):
            await service.enhance_prompt("x")
            await service.record_generation(_gen())
        assert len(service.history) == 1


# ---------------------------------------------------------------------------
# Test group 3 — Context and analyzer helpers
# ---------------------------------------------------------------------------


class TestContext:

    @pytest.mark.asyncio
    async def test_empty_context(self):
        context = await LearningService().get_learning_context("anything")
        assert context.is_empty
        assert context.similar_prompts == ()

    @pytest.mark.asyncio
    async def test_similar_prompts(self):
        service = LearningService()
        await service.record_generation(_gen("send daily sales report by email"))
        await service.record_generation(_gen("post tweets about new blog entries"))
        context = await service.get_learning_context("send weekly sales report by email")
        assert context.similar_prompts == ("send daily sales report by email",)

    @pytest.mark.asyncio
    async def test_common_patterns_from_feedback(self):
        service = LearningService()
        for outcome in ("success", "success", "success", "failure"):
            await service.record_feedback({"workflowId": "w1", "prompt": "p",
                                           "workflowType": "webhook", "outcome": outcome,
                                           "errorMessage": "Missing credential for Slack"})
        context = await service.get_learning_context("p")
        assert "webhook: 75% success rate" in context.common_patterns
        assert context.avoid_errors == ("Missing credentials",)

    @pytest.mark.asyncio
    async def test_context_reuses_cached_patterns(self):
        service = LearningService()
        await service.record_feedback({"workflowId": "w1", "prompt": "p",
                                       "workflowType": "webhook", "outcome": "success"})
        service.analyze_patterns()
        with patch.object(analyzer, "analyze_patterns", wraps=analyzer.analyze_patterns) as spy:
            context = await service.get_learning_context("p")
            assert spy.call_count == 0
            assert "webhook: 100% success rate" in context.common_patterns

            await service.record_feedback({"workflowId": "w2", "prompt": "p",
                                           "workflowType": "webhook", "outcome": "failure"})
            assert service.learned_patterns == ()
            context = await service.get_learning_context("p")
            assert spy.call_count == 1
        assert [p.frequency for p in service.learned_patterns if p.type == "webhook"] == [2]

    @pytest.mark.parametrize("message,label", [
        ("Node 'Set' is disconnected from the graph", "Disconnected nodes"),
        ("Merge node has only one input", "Merge node missing inputs"),
        ("Authentication failed for Gmail", "Missing credentials"),
        ("Operation timeout after 60s", "Operation timeout"),
        ("429: rate limit reached", "Rate limit exceeded"),
        ("short error", "short error"),
    ])
    def test_normalize_error(self, message, label):
        assert normalize_error(message) == label

    def test_normalize_error_truncates_long_messages(self):
        message = "x" * 80
        assert normalize_error(message) == "x" * 50 + "..."

    @pytest.mark.parametrize("nodes,connections,types,kind", [
        (3, 2, (), "linear"),
        (4, 4, ("n8n-nodes-base.if",), "branching"),
        (4, 4, ("n8n-nodes-base.splitInBatches",), "loop"),
        (3, 5, (), "parallel"),
        (5, 1, (), "complex"),
    ])
    def test_classify_structure(self, nodes, connections, types, kind):
        assert classify_structure(nodes, connections, types) == kind

    def test_analyze_patterns_structure_success_rate(self):
        generations = [
            GenerationRecord(id=f"g{i}", prompt="p", workflow_name="", node_count=3,
                             connection_count=2, timestamp=0.0, provider="x", success=i < 3)
            for i in range(4)
        ]
        patterns = {p.type: p for p in analyzer.analyze_patterns([], generations)}
        assert patterns["structure_linear"].frequency == 4
        assert patterns["structure_linear"].success_rate == 0.75

    def test_analyze_patterns_node_sequences(self):
        generations = [
            GenerationRecord(id="g1", prompt="notify on new order", workflow_name="",
                             node_count=2, connection_count=1, timestamp=0.0, provider="x",
                             node_types=("n8n-nodes-base.webhook", "n8n-nodes-base.slack")),
        ]
        feedback = [
            FeedbackRecord(workflow_id=f"w{i}", prompt="new order", workflow_type="orders",
                           outcome="success", node_count=2, timestamp=0.0)
            for i in range(2)
        ]
        patterns = {p.type: p for p in analyzer.analyze_patterns(feedback, generations)}
        assert patterns["orders"].common_configurations == [{
            "type": "node_sequence",
            "value": "n8n-nodes-base.webhook -> n8n-nodes-base.slack",
            "frequency": 2,
        }]


# ---------------------------------------------------------------------------
# Test group 4 — Metrics
# ---------------------------------------------------------------------------


class TestMetrics:

    def test_shape_on_empty_history(self):
        assert LearningService().get_metrics().to_dict() == {
            "totalGenerations": 0,
            "successRate": 0.0,
            "commonErrors": [],
            "bestPractices": [],
        }

    @pytest.mark.asyncio
    async def test_values(self):
        service = LearningService()
        await service.record_generation(_gen())
        await service.record_generation(_gen())
        await service.record_generation(_gen(success=False, error="Rate limit hit"))
        await service.record_generation(_gen(success=False, error="Rate limit hit"))

        metrics = service.get_metrics()
        assert metrics.total_generations == 4
        assert metrics.success_rate == 0.5
        assert metrics.common_errors == ("Rate limit exceeded",)
        assert set(metrics.to_dict()) == {"totalGenerations", "successRate", "commonErrors", "bestPractices"}


# ---------------------------------------------------------------------------
# Test group 5 — Feedback, store, load
# ---------------------------------------------------------------------------


class TestStoreIntegration:

    @pytest.mark.asyncio
    async def test_feedback_bounded(self):
        service = LearningService(feedback_limit=3)
        for i in range(5):
            await service.record_feedback({"workflowId": f"w{i}", "prompt": "p", "outcome": "success"})
        assert [f.workflow_id for f in service.feedback] == ["w2", "w3", "w4"]

    @pytest.mark.asyncio
    async def test_invalid_feedback_swallowed(self):
        service = LearningService()
        await service.record_feedback({"workflowId": "w", "prompt": "p", "outcome": "meh"})
        assert service.feedback == ()

    @pytest.mark.asyncio
    async def test_write_through(self):
        store = InMemoryLearningStore()
        service = LearningService(store)
        await service.record_generation(_gen("stored"))
        await service.record_feedback({"workflowId": "w", "prompt": "p", "outcome": "failure"})
        assert [g.prompt for g in await store.load_generations()] == ["stored"]
        assert len(await store.load_feedback()) == 1

    @pytest.mark.asyncio
    async def test_store_failure_does_not_lose_history(self):
        store = MagicMock(spec=InMemoryLearningStore)
        store.append_generation = AsyncMock(side_effect=OSError("disk full"))
        service = LearningService(store)
        await service.record_generation(_gen())
        assert len(service.history) == 1

    @pytest.mark.asyncio
    async def test_load_seeds_history(self, tmp_path):
        store = await SQLiteLearningStore.open(str(tmp_path / "learning.db"))
        first = LearningService(store)
        await first.record_generation(_gen("persisted one"))
        await first.record_generation(_gen("persisted two"))

        second = LearningService(store)
        await second.load()
        assert [g.prompt for g in second.history] == ["persisted one", "persisted two"]
        await store.close()

    @pytest.mark.asyncio
    async def test_repeated_load_does_not_duplicate_feedback(self):
        store = InMemoryLearningStore()
        service = LearningService(store, feedback_limit=2)
        for i in range(2):
            await service.record_feedback({"workflowId": f"w{i}", "prompt": "p", "outcome": "success"})

        await service.load()
        await service.load()
        assert [f.workflow_id for f in service.feedback] == ["w0", "w1"]

    @pytest.mark.asyncio
    async def test_load_respects_feedback_limit(self):
        store = InMemoryLearningStore()
        for i in range(3):
            await store.append_feedback(FeedbackRecord(
                workflow_id=f"old{i}", prompt="p", workflow_type="general",
                outcome="success", node_count=0, timestamp=float(i),
            ))
        service = LearningService(store, feedback_limit=3)
        await service.record_feedback({"workflowId": "new", "prompt": "p", "outcome": "success"})

        await service.load()
        assert [f.workflow_id for f in service.feedback] == ["old1", "old2", "new"]


# ---------------------------------------------------------------------------
# Test group 6 — Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_stop_keeps_history(self):
        service = LearningService(persist_interval=0.01)
        service.start()
        await service.record_generation(_gen())
        await asyncio.sleep(0.05)
        await service.stop()
        assert len(service.history) == 1
        assert service.learned_patterns  # periodic analysis ran at least once

    @pytest.mark.asyncio
    async def test_start_without_interval_is_noop(self):
        service = LearningService()
        service.start()
        await service.stop()

    def test_process_wide_instance(self):
        reset_learning_service()
        try:
            settings = AgentSettings()
            first = get_learning_service(settings)
            assert get_learning_service() is first
            reset_learning_service()
            assert get_learning_service(settings) is not first
        finally:
            reset_learning_service()

    def test_sqlite_store_chosen_from_settings(self, tmp_path):
        reset_learning_service()
        try:
            settings = AgentSettings(LEARNING_DB_PATH=str(tmp_path / "l.db"))
            service = get_learning_service(settings)
            assert isinstance(service._store, SQLiteLearningStore)
        finally:
            reset_learning_service()

    def test_no_store_without_db_path(self):
        reset_learning_service()
        try:
            service = get_learning_service(AgentSettings(LEARNING_DB_PATH="", _env_file=None))
            assert service._store is None
        finally:
            reset_learning_service()
