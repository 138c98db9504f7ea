"""Node records shared by the templates and the factory.

NodeCreationConfig is the transient per-node input assembled from the AI
draft; WorkflowNode is the canonical output in the n8n wire shape:

    {
      "id": "3",
      "name": "Route by Method",
      "type": "n8n-nodes-base.switch",
      "typeVersion": 1,
      "position": [450, 300],
      "parameters": {...},
      "webhookId": "..."        # only on webhook-triggered nodes
    }
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

# Canvas position for nodes created without one, clear of the origin.
DEFAULT_POSITION: tuple[float, float] = (250, 300)


class NodeConfigurationError(ValueError):
    """A node config is missing required fields or carries ill-typed options."""


@dataclass
class NodeCreationConfig:
    """Input to a node builder.

    id:            Node ID within the workflow.
    name:          Display name (n8n connections reference nodes by name).
    position:      (x, y) canvas coordinates; None → DEFAULT_POSITION.
    configuration: Hints extracted from the AI draft (conditions, mode,
                   field, options, ...). Each template reads only the keys
                   it declares in its options model.
    """

    id: str
    name: str
    position: tuple[float, float] | None = None
    configuration: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        if not str(self.id or "").strip():
            raise NodeConfigurationError("Node config is missing required field 'id'")
        if not str(self.name or "").strip():
            raise NodeConfigurationError(
                f"Node config {self.id!r} is missing required field 'name'"
            )
        if self.position is not None:
            if len(self.position) != 2 or not all(
                isinstance(v, (int, float)) and not isinstance(v, bool) for v in self.position
            ):
                raise NodeConfigurationError(
                    f"Node {self.id!r}: position must be an (x, y) pair of numbers, "
                    f"got {self.position!r}"
                )

    def resolved_position(self) -> list[float]:
        x, y = self.position if self.position is not None else DEFAULT_POSITION
        return [x, y]

    @classmethod
    def from_draft(
        cls,
        draft: Mapping[str, Any],
        *,
        fallback_id: str,
        fallback_position: Sequence[float] | None = None,
    ) -> NodeCreationConfig:
        """Build a config from one node of an AI-drafted workflow.

        The draft's ``parameters`` and ``configuration`` objects are merged
        (configuration wins) into the loosely-typed hint bag.
        """
        hints: dict[str, Any] = {}
        for key in ("parameters", "configuration"):
            value = draft.get(key)
            if isinstance(value, Mapping):
                hints.update(value)

        position = _as_point(draft.get("position"))
        if position is None and fallback_position is not None:
            position = (fallback_position[0], fallback_position[1])

        return cls(
            id=str(draft.get("id") or fallback_id),
            name=str(draft.get("name") or ""),
            position=position,
            configuration=hints,
        )


def _as_point(raw: Any) -> tuple[float, float] | None:
    """Coerce a draft position ([x, y] or {x, y}) to a tuple; None if unusable."""
    if isinstance(raw, Mapping):
        raw = (raw.get("x"), raw.get("y"))
    if not isinstance(raw, Sequence) or isinstance(raw, str) or len(raw) != 2:
        return None
    try:
        return (float(raw[0]), float(raw[1]))
    except (TypeError, ValueError):
        return None


@dataclass
class WorkflowNode:
    """A fully-typed workflow node ready for the automation engine."""

    id: str
    name: str
    type: str
    type_version: int
    position: list[float]
    parameters: dict[str, Any]
    webhook_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        node: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "typeVersion": self.type_version,
            "position": list(self.position),
            "parameters": self.parameters,
        }
        if self.webhook_id is not None:
            node["webhookId"] = self.webhook_id
        return node
