"""Per-phase timing for a workflow generation run.

PhaseMetrics — snapshot of one phase's duration and token counters.
PhaseTimer   — context manager; read .result / .to_dict() after exit.

Usage::

    with PhaseTimer("complete") as t:
        response = await engine.complete(...)
        t.input_tokens = response.input_tokens
        t.output_tokens = response.output_tokens
    metrics.append(t.result)
"""

from __future__ import annotations

import dataclasses
import time
from typing import Any


@dataclasses.dataclass
class PhaseMetrics:
    """Timing snapshot for one generation phase.

    phase:         "match", "enhance", "complete", "build" or "record".
    start_ts:      Unix timestamp at phase start.
    end_ts:        Unix timestamp at phase end.
    duration_ms:   (end_ts - start_ts) * 1000.
    input_tokens:  Prompt tokens consumed (0 when the phase makes no LLM call).
    output_tokens: Completion tokens produced.
    """

    phase: str
    start_ts: float
    end_ts: float
    duration_ms: float
    input_tokens: int = 0
    output_tokens: int = 0


class PhaseTimer:
    """Records wall-clock duration of a block, including when it raises."""

    def __init__(self, phase: str) -> None:
        self.phase = phase
        self.input_tokens: int = 0
        self.output_tokens: int = 0
        self._start_ts: float = 0.0
        self._result: PhaseMetrics | None = None

    def __enter__(self) -> PhaseTimer:
        self._start_ts = time.time()
        return self

    def __exit__(self, *_args: object) -> None:
        end_ts = time.time()
        self._result = PhaseMetrics(
            phase=self.phase,
            start_ts=self._start_ts,
            end_ts=end_ts,
            duration_ms=(end_ts - self._start_ts) * 1000,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )

    @property
    def result(self) -> PhaseMetrics | None:
        return self._result

    def to_dict(self) -> dict[str, Any]:
        """Finalized metrics as a plain dict; empty before the block exits."""
        return dataclasses.asdict(self._result) if self._result is not None else {}
