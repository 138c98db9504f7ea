"""Records owned by the learning subsystem.

GenerationRecord / FeedbackRecord are immutable log entries. LearningContext
and LearningMetrics are derived views recomputed from them on demand.
GenerationInput / FeedbackInput validate what callers hand in.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_record_id(prefix: str = "gen") -> str:
    """Unique-enough id: epoch milliseconds plus a random base36 suffix."""
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class GenerationInput(BaseModel):
    """What the orchestrator reports after a generation attempt."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    prompt: str
    workflow_name: str = Field(default="", alias="workflowName")
    node_count: int = Field(default=0, ge=0, alias="nodeCount")
    connection_count: int = Field(default=0, ge=0, alias="connectionCount")
    provider: str = "unknown"
    model: str | None = None
    success: bool = True
    error: str | None = None
    node_types: list[str] = Field(default_factory=list, alias="nodeTypes")


class FeedbackInput(BaseModel):
    """Outcome reported for a deployed/executed workflow."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    workflow_id: str = Field(alias="workflowId")
    prompt: str
    workflow_type: str = Field(default="general", alias="workflowType")
    outcome: Literal["success", "failure", "partial"]
    node_count: int = Field(default=0, ge=0, alias="nodeCount")
    error_message: str | None = Field(default=None, alias="errorMessage")
    execution_time: float | None = Field(default=None, ge=0, alias="executionTime")


# ---------------------------------------------------------------------------
# Log entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GenerationRecord:
    """One attempt to produce a workflow from a prompt. Never mutated."""

    id: str
    prompt: str
    workflow_name: str
    node_count: int
    connection_count: int
    timestamp: float
    provider: str
    model: str | None = None
    success: bool = True
    error: str | None = None
    node_types: tuple[str, ...] = ()

    @classmethod
    def from_input(cls, data: GenerationInput) -> GenerationRecord:
        return cls(
            id=new_record_id("gen"),
            prompt=data.prompt,
            workflow_name=data.workflow_name,
            node_count=data.node_count,
            connection_count=data.connection_count,
            timestamp=time.time(),
            provider=data.provider,
            model=data.model,
            success=data.success,
            error=data.error,
            node_types=tuple(data.node_types),
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["node_types"] = list(self.node_types)
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> GenerationRecord:
        return cls(
            id=d["id"],
            prompt=d["prompt"],
            workflow_name=d.get("workflow_name") or "",
            node_count=int(d.get("node_count") or 0),
            connection_count=int(d.get("connection_count") or 0),
            timestamp=float(d.get("timestamp") or 0.0),
            provider=d.get("provider") or "unknown",
            model=d.get("model"),
            success=bool(d.get("success", True)),
            error=d.get("error"),
            node_types=tuple(d.get("node_types") or ()),
        )


@dataclass(frozen=True)
class FeedbackRecord:
    """Execution outcome of a generated workflow."""

    workflow_id: str
    prompt: str
    workflow_type: str
    outcome: str
    node_count: int
    timestamp: float
    error_message: str | None = None
    execution_time: float | None = None

    @classmethod
    def from_input(cls, data: FeedbackInput) -> FeedbackRecord:
        return cls(
            workflow_id=data.workflow_id,
            prompt=data.prompt,
            workflow_type=data.workflow_type,
            outcome=data.outcome,
            node_count=data.node_count,
            timestamp=time.time(),
            error_message=data.error_message,
            execution_time=data.execution_time,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FeedbackRecord:
        return cls(
            workflow_id=d["workflow_id"],
            prompt=d["prompt"],
            workflow_type=d.get("workflow_type") or "general",
            outcome=d["outcome"],
            node_count=int(d.get("node_count") or 0),
            timestamp=float(d.get("timestamp") or 0.0),
            error_message=d.get("error_message"),
            execution_time=d.get("execution_time"),
        )


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


@dataclass
class LearnedPattern:
    """Aggregate over outcomes sharing a workflow type or structure."""

    type: str
    frequency: int
    success_rate: float
    common_configurations: list[dict[str, Any]] = field(default_factory=list)
    common_errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class LearningContext:
    common_patterns: tuple[str, ...] = ()
    avoid_errors: tuple[str, ...] = ()
    best_practices: tuple[str, ...] = ()
    similar_prompts: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        """True when there is nothing worth adding to a prompt."""
        return not (self.common_patterns or self.avoid_errors or self.best_practices)


@dataclass(frozen=True)
class LearningMetrics:
    total_generations: int
    success_rate: float
    common_errors: tuple[str, ...]
    best_practices: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalGenerations": self.total_generations,
            "successRate": self.success_rate,
            "commonErrors": list(self.common_errors),
            "bestPractices": list(self.best_practices),
        }
