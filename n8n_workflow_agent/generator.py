"""WorkflowGenerator — prompt → AI draft → canonical n8n workflow.

Pipeline for one request:

    match      PatternMatcher ranks catalog patterns for the prompt
    enhance    LearningService appends learned guidance
    complete   ReasoningEngine drafts a workflow as JSON
    build      every draft node is rebuilt through the NodeTemplateRegistry
    record     the outcome goes back into the LearningService

The AI decides which nodes exist and how they connect; the registry
decides what each node's parameters look like. Connections are checked
for shape and otherwise pass through unchanged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from n8n_workflow_agent.config import AgentSettings
from n8n_workflow_agent.learning.service import LearningService
from n8n_workflow_agent.metrics import PhaseMetrics, PhaseTimer
from n8n_workflow_agent.nodes.factory import NodeTemplateRegistry, default_registry
from n8n_workflow_agent.nodes.models import NodeCreationConfig, WorkflowNode
from n8n_workflow_agent.patterns.catalog import WorkflowPattern
from n8n_workflow_agent.patterns.matcher import PatternMatcher
from n8n_workflow_agent.reasoning import Message, ReasoningEngine

logger = logging.getLogger("n8n_workflow_agent.generator")

MAX_REFERENCE_PATTERNS = 3
GRID_ORIGIN = (250, 300)
GRID_STEP = 200

_SYSTEM_PROMPT = """\
You are an n8n workflow architect. Turn the user's automation request into a
single n8n workflow.

Respond with ONE JSON object and nothing else:
{
  "name": "<workflow name>",
  "nodes": [
    {"id": "1", "name": "<unique display name>", "type": "n8n-nodes-base.<node>",
     "position": [x, y], "parameters": {...}}
  ],
  "connections": {
    "<source node name>": {"main": [[{"node": "<target node name>", "type": "main", "index": 0}]]}
  }
}

RULES:
1. Every node needs a unique id and a unique name; connections reference names.
2. Start with exactly one trigger (webhook, schedule, or errorTrigger).
3. For branching use n8n-nodes-base.if (two outputs) or n8n-nodes-base.switch;
   put the routing values in parameters.options and the routed field in
   parameters.field.
4. Every merge node must receive at least two inputs.
5. Do not invent credentials; leave credential fields out.
"""


class MalformedAIResponseError(ValueError):
    """The AI reply contained no parseable JSON object."""


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first well-formed JSON object in text.

    Tries the whole string first, then every "{" in turn, so prose or
    markdown fences around the object are tolerated.
    """
    stripped = (text or "").strip()
    try:
        value = json.loads(stripped)
        if isinstance(value, dict):
            return value
    except ValueError:
        pass

    decoder = json.JSONDecoder()
    start = stripped.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(stripped, start)
            if isinstance(value, dict):
                return value
        except ValueError:
            pass
        start = stripped.find("{", start + 1)

    raise MalformedAIResponseError("AI response was not valid JSON")


@dataclass
class GenerationResult:
    workflow: dict[str, Any]
    matched_patterns: list[WorkflowPattern] = field(default_factory=list)
    enhanced_prompt: str = ""
    phase_metrics: list[PhaseMetrics] = field(default_factory=list)

    @property
    def nodes(self) -> list[dict[str, Any]]:
        return self.workflow.get("nodes", [])


def _grid_position(index: int) -> tuple[float, float]:
    return (GRID_ORIGIN[0] + GRID_STEP * index, GRID_ORIGIN[1])


def _count_connections(connections: Mapping[str, Any]) -> int:
    count = 0
    for outputs in connections.values():
        if not isinstance(outputs, Mapping):
            continue
        for branches in outputs.values():
            for branch in branches or []:
                count += len(branch or [])
    return count


def _well_formed(connections: Mapping[str, Any]) -> bool:
    """True when every entry is source -> output -> [[link, ...], ...]."""
    for outputs in connections.values():
        if not isinstance(outputs, Mapping):
            return False
        for branches in outputs.values():
            if not isinstance(branches, list):
                return False
            for branch in branches:
                if branch is None:
                    continue
                if not isinstance(branch, list) or not all(isinstance(link, Mapping) for link in branch):
                    return False
    return True


def _reference_block(patterns: list[WorkflowPattern]) -> str:
    lines = ["Reference patterns that fit this request:"]
    for p in patterns:
        lines.append(f"- {p.name}: {p.description}")
    return "\n".join(lines)


class WorkflowGenerator:
    """Drives one prompt through match, enhance, complete, build and record."""

    def __init__(
        self,
        engine: ReasoningEngine,
        learning: LearningService,
        matcher: PatternMatcher | None = None,
        registry: NodeTemplateRegistry | None = None,
        *,
        temperature: float = 0.2,
        default_platform: str = "n8n",
    ) -> None:
        self._engine = engine
        self._temperature = temperature
        self._default_platform = default_platform
        self._learning = learning
        self._matcher = matcher or PatternMatcher()
        self._registry = registry or default_registry()

    @classmethod
    def from_settings(
        cls,
        engine: ReasoningEngine,
        learning: LearningService,
        settings: AgentSettings | None = None,
        **kwargs: Any,
    ) -> WorkflowGenerator:
        """Generator whose default platform comes from DEFAULT_PLATFORM."""
        settings = settings or AgentSettings()
        return cls(engine, learning, default_platform=settings.default_platform or "n8n", **kwargs)

    async def generate(
        self, prompt: str, platform: str | None = None, name: str | None = None
    ) -> GenerationResult:
        """Generate a workflow for prompt.

        platform defaults to the generator's default_platform.

        Raises MalformedAIResponseError when the reply holds no usable
        draft and NodeConfigurationError when a draft node cannot be built.
        Either way the failure is recorded before it propagates.
        """
        metrics: list[PhaseMetrics] = []
        platform = platform or self._default_platform

        with PhaseTimer("match") as t:
            patterns = self._matcher.match(prompt, platform)[:MAX_REFERENCE_PATTERNS]
        metrics.append(t.result)

        with PhaseTimer("enhance") as t:
            enhanced = await self._learning.enhance_prompt(prompt)
        metrics.append(t.result)

        request = enhanced
        if patterns:
            request = f"{enhanced}\n\n{_reference_block(patterns)}"

        try:
            with PhaseTimer("complete") as t:
                response = await self._engine.complete(
                    [Message(role="user", content=request)],
                    system=_SYSTEM_PROMPT,
                    temperature=self._temperature,
                )
                t.input_tokens = response.input_tokens
                t.output_tokens = response.output_tokens
            metrics.append(t.result)

            with PhaseTimer("build") as t:
                workflow = self._build(extract_json_object(response.content or ""), name)
            metrics.append(t.result)
        except Exception as e:
            logger.warning("Generation failed for %r: %s", prompt[:60], e)
            await self._learning.record_generation({
                "prompt": prompt,
                "workflowName": name or "",
                "provider": self._engine.provider,
                "model": self._engine.model,
                "success": False,
                "error": str(e),
            })
            raise

        with PhaseTimer("record") as t:
            await self._learning.record_generation({
                "prompt": prompt,
                "workflowName": workflow["name"],
                "nodeCount": len(workflow["nodes"]),
                "connectionCount": _count_connections(workflow["connections"]),
                "provider": self._engine.provider,
                "model": self._engine.model,
                "success": True,
                "nodeTypes": [n["type"] for n in workflow["nodes"]],
            })
        metrics.append(t.result)

        logger.info(
            "Generated %r: %d nodes via %s (%d reference patterns)",
            workflow["name"], len(workflow["nodes"]), self._engine.model_id, len(patterns),
        )
        return GenerationResult(
            workflow=workflow,
            matched_patterns=patterns,
            enhanced_prompt=enhanced,
            phase_metrics=metrics,
        )

    def _build(self, draft: dict[str, Any], name: str | None) -> dict[str, Any]:
        if isinstance(draft.get("workflow"), Mapping):
            draft = dict(draft["workflow"])

        raw_nodes = draft.get("nodes")
        if not isinstance(raw_nodes, list) or not raw_nodes:
            raise MalformedAIResponseError("AI response did not contain a nodes list")

        nodes: list[WorkflowNode] = []
        for index, raw in enumerate(raw_nodes):
            if not isinstance(raw, Mapping):
                raise MalformedAIResponseError(f"Draft node {index} is not an object")
            config = NodeCreationConfig.from_draft(
                raw, fallback_id=str(index + 1), fallback_position=_grid_position(index)
            )
            node_type = str(raw.get("type") or "n8n-nodes-base.noOp")
            nodes.append(self._registry.create_node(node_type, config))

        connections = draft.get("connections")
        if connections is None:
            connections = {}
        elif not isinstance(connections, Mapping) or not _well_formed(connections):
            raise MalformedAIResponseError("AI response contained malformed connections")
        return {
            "name": name or str(draft.get("name") or "Generated Workflow"),
            "nodes": [n.to_dict() for n in nodes],
            "connections": dict(connections),
            "settings": {"executionOrder": "v1"},
        }
