"""Pure aggregation over generation history and execution feedback.

Everything here is a function of its arguments, so the service can call it
on a snapshot without holding its lock.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from n8n_workflow_agent.learning.models import (
    FeedbackRecord,
    GenerationRecord,
    LearnedPattern,
    LearningContext,
)

COMMON_PATTERN_THRESHOLD = 0.7
BEST_PRACTICE_THRESHOLD = 0.8
SIMILARITY_THRESHOLD = 0.3
MAX_ERRORS = 10
MAX_PRACTICES = 10
MAX_SIMILAR = 5

_BRANCHING_TYPES = frozenset({"n8n-nodes-base.switch", "n8n-nodes-base.if"})
_LOOP_TYPES = frozenset({"n8n-nodes-base.splitInBatches"})


def normalize_error(message: str) -> str:
    """Collapse an error message to a canonical label."""
    lower = message.lower()
    if "disconnected" in lower or "not connected" in lower:
        return "Disconnected nodes"
    if "merge" in lower and "input" in lower:
        return "Merge node missing inputs"
    if "credential" in lower or "authentication" in lower:
        return "Missing credentials"
    if "timeout" in lower or "timed out" in lower:
        return "Operation timeout"
    if "rate limit" in lower:
        return "Rate limit exceeded"
    if len(message) <= 50:
        return message
    return message[:50] + "..."


def classify_structure(node_count: int, connection_count: int, node_types: Iterable[str] = ()) -> str:
    """Coarse shape of a workflow graph: linear | branching | loop | parallel | complex."""
    types = set(node_types)
    if node_count > 0 and connection_count == node_count - 1:
        return "linear"
    if types & _BRANCHING_TYPES:
        return "branching"
    if types & _LOOP_TYPES:
        return "loop"
    if connection_count > node_count:
        return "parallel"
    return "complex"


def _top(counter: Counter[str], limit: int) -> list[str]:
    # most_common keeps first-seen order for equal counts
    return [item for item, _ in counter.most_common(limit)]


def _error_counter(
    generations: Sequence[GenerationRecord], feedback: Sequence[FeedbackRecord]
) -> Counter[str]:
    errors: Counter[str] = Counter()
    for g in generations:
        if not g.success and g.error:
            errors[normalize_error(g.error)] += 1
    for f in feedback:
        if f.outcome == "failure" and f.error_message:
            errors[normalize_error(f.error_message)] += 1
    return errors


def analyze_patterns(
    feedback: Sequence[FeedbackRecord], generations: Sequence[GenerationRecord]
) -> list[LearnedPattern]:
    """Group outcomes by workflow type, then add graph-structure patterns."""
    patterns: dict[str, LearnedPattern] = {}

    by_type: dict[str, list[FeedbackRecord]] = {}
    for f in feedback:
        by_type.setdefault(f.workflow_type, []).append(f)

    for workflow_type, group in by_type.items():
        successful = [f for f in group if f.outcome == "success"]
        failed = [f for f in group if f.outcome == "failure"]
        patterns[workflow_type] = LearnedPattern(
            type=workflow_type,
            frequency=len(group),
            success_rate=len(successful) / len(group),
            common_configurations=_common_sequences(successful, generations),
            common_errors=_top(
                Counter(normalize_error(f.error_message) for f in failed if f.error_message), 5
            ),
        )

    structures: dict[str, list[GenerationRecord]] = {}
    for g in generations:
        if g.node_count <= 0:
            continue
        kind = classify_structure(g.node_count, g.connection_count, g.node_types)
        structures.setdefault(kind, []).append(g)

    for kind, group in structures.items():
        key = f"structure_{kind}"
        patterns[key] = LearnedPattern(
            type=key,
            frequency=len(group),
            success_rate=sum(1 for g in group if g.success) / len(group),
        )

    return list(patterns.values())


def _common_sequences(
    successful: Sequence[FeedbackRecord], generations: Sequence[GenerationRecord]
) -> list[dict[str, object]]:
    sequences: Counter[str] = Counter()
    for f in successful:
        needle = f.prompt.lower()
        generation = next((g for g in generations if needle in g.prompt.lower()), None)
        if generation and generation.node_types:
            sequences[" -> ".join(generation.node_types)] += 1
    return [
        {"type": "node_sequence", "value": seq, "frequency": count}
        for seq, count in sequences.most_common(5)
        if count > 1
    ]


def common_errors(
    generations: Sequence[GenerationRecord], feedback: Sequence[FeedbackRecord]
) -> list[str]:
    """Most frequent normalized errors, most frequent first."""
    return _top(_error_counter(generations, feedback), MAX_ERRORS)


def best_practices(
    generations: Sequence[GenerationRecord],
    feedback: Sequence[FeedbackRecord],
    patterns: Sequence[LearnedPattern],
) -> list[str]:
    practices: list[str] = []

    node_counts = [g.node_count for g in generations if g.success and g.node_count > 0]
    node_counts += [f.node_count for f in feedback if f.outcome == "success" and f.node_count > 0]
    if node_counts:
        practices.append(f"Optimal node count: {round(sum(node_counts) / len(node_counts))} nodes")

    type_stats: dict[str, list[int]] = {}
    for f in feedback:
        stats = type_stats.setdefault(f.workflow_type, [0, 0])
        stats[1] += 1
        if f.outcome == "success":
            stats[0] += 1
    for workflow_type, (ok, total) in type_stats.items():
        rate = ok / total * 100
        if rate > BEST_PRACTICE_THRESHOLD * 100:
            practices.append(f"{workflow_type} workflows have {rate:.1f}% success rate")

    for p in patterns:
        if p.success_rate > BEST_PRACTICE_THRESHOLD:
            practices.append(f"Use {p.type} pattern ({p.success_rate * 100:.1f}% success rate)")

    return practices[:MAX_PRACTICES]


def similar_prompts(prompt: str, generations: Sequence[GenerationRecord]) -> list[str]:
    """Prior prompts sharing more than 30% of their words with prompt."""
    words = prompt.lower().split()
    if not words:
        return []
    scored: list[tuple[float, str]] = []
    seen: set[str] = set()
    for g in reversed(generations):
        other = g.prompt.lower().split()
        if not other or g.prompt in seen:
            continue
        shared = sum(1 for w in words if w in other)
        similarity = shared / max(len(words), len(other))
        if similarity > SIMILARITY_THRESHOLD:
            seen.add(g.prompt)
            scored.append((similarity, g.prompt))
    scored.sort(key=lambda item: item[0], reverse=True)
    return [p for _, p in scored[:MAX_SIMILAR]]


def build_context(
    prompt: str,
    generations: Sequence[GenerationRecord],
    feedback: Sequence[FeedbackRecord],
    patterns: Sequence[LearnedPattern] | None = None,
) -> LearningContext:
    """LearningContext for prompt from a history snapshot.

    patterns, when given, must have been analyzed from the same snapshot.
    """
    if not generations and not feedback:
        return LearningContext()

    if patterns is None:
        patterns = analyze_patterns(feedback, generations)
    ranked = sorted(
        (p for p in patterns if p.success_rate > COMMON_PATTERN_THRESHOLD),
        key=lambda p: p.frequency,
        reverse=True,
    )
    return LearningContext(
        common_patterns=tuple(
            f"{p.type}: {p.success_rate * 100:.0f}% success rate" for p in ranked
        ),
        avoid_errors=tuple(common_errors(generations, feedback)),
        best_practices=tuple(best_practices(generations, feedback, patterns)),
        similar_prompts=tuple(similar_prompts(prompt, generations)),
    )
