"""Per-node-type builders.

Every template declares a fixed ``node_type`` / ``type_version`` pair and a
pydantic options model listing exactly the configuration keys it reads.
``create_node(config)`` validates those options, applies the type's
defaulting rules and returns a WorkflowNode whose parameter shape depends
only on (type, typeVersion).

Unknown configuration keys are ignored; known keys with the wrong type
raise NodeConfigurationError.
"""

from __future__ import annotations

import random
from typing import Any, ClassVar, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from n8n_workflow_agent.nodes.models import (
    NodeConfigurationError,
    NodeCreationConfig,
    WorkflowNode,
)

# Field compared by branch/switch nodes when the draft names none.
DEFAULT_CONDITION_FIELD = "score"
DEFAULT_SWITCH_FIELD = "type"
DEFAULT_THRESHOLD = 50
DEFAULT_SWITCH_OPTIONS: tuple[str, ...] = ("option1", "option2", "option3")


@runtime_checkable
class NodeTemplate(Protocol):
    """Capability shared by all builders."""

    node_type: str
    type_version: int

    def create_node(self, config: NodeCreationConfig) -> WorkflowNode: ...


def generate_webhook_id(rng: random.Random | None = None) -> str:
    """Random RFC-4122-shaped identifier (version 4, variant 8/9/a/b).

    Not cryptographic; webhook ids are graph identifiers, not secrets.
    """
    source: Any = rng if rng is not None else random
    chars: list[str] = []
    for c in "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx":
        if c == "x":
            chars.append(format(source.randrange(16), "x"))
        elif c == "y":
            chars.append(format(source.randrange(16) & 0x3 | 0x8, "x"))
        else:
            chars.append(c)
    return "".join(chars)


class _Options(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _BaseTemplate:
    """Shared plumbing: option validation and node assembly."""

    node_type: ClassVar[str]
    type_version: ClassVar[int] = 1
    options_model: ClassVar[type[_Options] | None] = None

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng

    def _options(self, config: NodeCreationConfig) -> Any:
        if self.options_model is None:
            return None
        try:
            return self.options_model.model_validate(config.configuration or {})
        except ValidationError as exc:
            raise NodeConfigurationError(
                f"Invalid configuration for {self.node_type} node {config.id!r}: {exc}"
            ) from exc

    def _node(
        self,
        config: NodeCreationConfig,
        parameters: dict[str, Any],
        webhook_id: str | None = None,
    ) -> WorkflowNode:
        config.validate()
        return WorkflowNode(
            id=str(config.id),
            name=str(config.name),
            type=self.node_type,
            type_version=self.type_version,
            position=config.resolved_position(),
            parameters=parameters,
            webhook_id=webhook_id,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.node_type}@{self.type_version})"


# ---------------------------------------------------------------------------
# Branch / condition
# ---------------------------------------------------------------------------


class IfNodeOptions(_Options):
    conditions: Any = None


class IfNodeTemplate(_BaseTemplate):
    """Two-way branch.

    No ``conditions`` → one numeric threshold check
    ``$json.score <= 50``. Otherwise the condition set passes through as-is.
    """

    node_type = "n8n-nodes-base.if"
    type_version = 1
    options_model = IfNodeOptions

    def create_node(self, config: NodeCreationConfig) -> WorkflowNode:
        opts: IfNodeOptions = self._options(config)
        conditions: Any
        if opts.conditions is None:
            conditions = {
                "number": [
                    {
                        "value1": f"={{{{$json.{DEFAULT_CONDITION_FIELD}}}}}",
                        "operation": "smallerEqual",
                        "value2": DEFAULT_THRESHOLD,
                    }
                ]
            }
        else:
            conditions = config.configuration["conditions"]
        return self._node(config, {"conditions": conditions})


# ---------------------------------------------------------------------------
# Multi-way switch
# ---------------------------------------------------------------------------


class SwitchNodeOptions(_Options):
    options: list[str] = Field(default_factory=lambda: list(DEFAULT_SWITCH_OPTIONS))
    field: str = DEFAULT_SWITCH_FIELD

    @field_validator("options", mode="before")
    @classmethod
    def coerce_options(cls, v: object) -> object:
        if v is None:
            return list(DEFAULT_SWITCH_OPTIONS)
        if isinstance(v, (list, tuple)):
            return [str(o) for o in v] or list(DEFAULT_SWITCH_OPTIONS)
        return v

    @field_validator("field", mode="before")
    @classmethod
    def default_field(cls, v: object) -> object:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_SWITCH_FIELD
        return v


class SwitchNodeTemplate(_BaseTemplate):
    """Routes items to one output per option, plus a fallback output.

    Option i compares ``$json.<field>`` to its literal value and goes to
    output i; anything else leaves through output len(options).
    """

    node_type = "n8n-nodes-base.switch"
    type_version = 1
    options_model = SwitchNodeOptions

    def create_node(self, config: NodeCreationConfig) -> WorkflowNode:
        opts: SwitchNodeOptions = self._options(config)
        rules = [
            {"operation": "equal", "value2": option, "output": index}
            for index, option in enumerate(opts.options)
        ]
        parameters = {
            "dataType": "string",
            "value1": f"={{{{$json.{opts.field}}}}}",
            "rules": {"rules": rules},
            "fallbackOutput": len(opts.options),
        }
        return self._node(config, parameters)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


class MergeNodeOptions(_Options):
    mode: str = "append"
    input_count: int = Field(default=2, ge=2, alias="inputCount")

    @field_validator("mode", mode="before")
    @classmethod
    def default_mode(cls, v: object) -> object:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "append"
        return v


class MergeNodeTemplate(_BaseTemplate):
    """Joins branches; mode defaults to append.

    input_count is validated but not emitted: merge v2 always exposes two
    inputs. See DESIGN.md (open questions).
    """

    node_type = "n8n-nodes-base.merge"
    type_version = 2
    options_model = MergeNodeOptions

    def create_node(self, config: NodeCreationConfig) -> WorkflowNode:
        opts: MergeNodeOptions = self._options(config)
        return self._node(config, {"mode": opts.mode})


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------


class ErrorTriggerNodeTemplate(_BaseTemplate):
    """Graph anchor for error-handling edges. Parameters are always empty."""

    node_type = "n8n-nodes-base.errorTrigger"
    type_version = 1

    def create_node(self, config: NodeCreationConfig) -> WorkflowNode:
        return self._node(config, {})


# ---------------------------------------------------------------------------
# Triggers and responses
# ---------------------------------------------------------------------------


class WebhookNodeOptions(_Options):
    path: str = "webhook"
    http_method: str = Field(default="POST", alias="httpMethod")
    response_mode: str = Field(default="onReceived", alias="responseMode")


class WebhookNodeTemplate(_BaseTemplate):
    node_type = "n8n-nodes-base.webhook"
    type_version = 1
    options_model = WebhookNodeOptions

    def create_node(self, config: NodeCreationConfig) -> WorkflowNode:
        opts: WebhookNodeOptions = self._options(config)
        parameters = {
            "path": opts.path.strip("/") or "webhook",
            "httpMethod": opts.http_method.upper(),
            "responseMode": opts.response_mode,
            "options": {},
        }
        return self._node(config, parameters, webhook_id=generate_webhook_id(self._rng))


class ScheduleTriggerOptions(_Options):
    interval: Literal["seconds", "minutes", "hours", "days", "weeks", "months"] = "hours"
    amount: int = Field(default=1, ge=1)


class ScheduleTriggerNodeTemplate(_BaseTemplate):
    node_type = "n8n-nodes-base.scheduleTrigger"
    type_version = 1
    options_model = ScheduleTriggerOptions

    def create_node(self, config: NodeCreationConfig) -> WorkflowNode:
        opts: ScheduleTriggerOptions = self._options(config)
        rule = {"field": opts.interval, f"{opts.interval}Interval": opts.amount}
        return self._node(config, {"rule": {"interval": [rule]}})


class RespondToWebhookOptions(_Options):
    respond_with: str = Field(default="json", alias="respondWith")
    response_body: str = Field(default="={{$json}}", alias="responseBody")


class RespondToWebhookNodeTemplate(_BaseTemplate):
    node_type = "n8n-nodes-base.respondToWebhook"
    type_version = 1
    options_model = RespondToWebhookOptions

    def create_node(self, config: NodeCreationConfig) -> WorkflowNode:
        opts: RespondToWebhookOptions = self._options(config)
        parameters: dict[str, Any] = {"respondWith": opts.respond_with, "options": {}}
        if opts.respond_with == "json":
            parameters["responseBody"] = opts.response_body
        return self._node(config, parameters)


BUILTIN_TEMPLATES: tuple[type[_BaseTemplate], ...] = (
    IfNodeTemplate,
    SwitchNodeTemplate,
    MergeNodeTemplate,
    ErrorTriggerNodeTemplate,
    WebhookNodeTemplate,
    ScheduleTriggerNodeTemplate,
    RespondToWebhookNodeTemplate,
)
