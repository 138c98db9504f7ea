"""NodeTemplateRegistry — type-keyed lookup of node builders with a generic fallback.

Usage:
    registry = default_registry()
    node = registry.create_node(
        "n8n-nodes-base.switch",
        NodeCreationConfig(id="3", name="Route", configuration={"options": ["card", "paypal"]}),
    )

Every node type resolves to a node: registered types go through their
template, anything else goes through GenericNodeTemplate, which starts
from the quick default table, overlays the configured parameters and
stamps a webhook id on webhook-triggered types.
"""

from __future__ import annotations

import logging
import random

from n8n_workflow_agent.nodes.defaults import get_default_parameters
from n8n_workflow_agent.nodes.models import NodeCreationConfig, WorkflowNode
from n8n_workflow_agent.nodes.templates import (
    BUILTIN_TEMPLATES,
    NodeTemplate,
    generate_webhook_id,
)

logger = logging.getLogger("n8n_workflow_agent.nodes.factory")


def is_webhook_type(node_type: str) -> bool:
    """True for webhook-triggered node types (not respondToWebhook)."""
    short = node_type.rsplit(".", 1)[-1].lower()
    if short.startswith("respondto"):
        return False
    return short == "webhook" or short.endswith("webhook") or short.endswith("webhooktrigger")


class GenericNodeTemplate:
    """Fallback builder for node types without a dedicated template."""

    type_version = 1

    def __init__(self, node_type: str, rng: random.Random | None = None) -> None:
        self.node_type = node_type
        self._rng = rng

    def create_node(self, config: NodeCreationConfig) -> WorkflowNode:
        config.validate()
        parameters = get_default_parameters(self.node_type, config.name)
        # configured values win over defaults
        parameters.update(config.configuration or {})
        webhook_id = generate_webhook_id(self._rng) if is_webhook_type(self.node_type) else None
        return WorkflowNode(
            id=str(config.id),
            name=str(config.name),
            type=self.node_type,
            type_version=self.type_version,
            position=config.resolved_position(),
            parameters=parameters,
            webhook_id=webhook_id,
        )


class NodeTemplateRegistry:
    """Registry of node templates keyed by node type identifier."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._templates: dict[str, NodeTemplate] = {}
        self._rng = rng

    def register(self, template: NodeTemplate) -> None:
        """Register template under its node_type (replaces any existing entry)."""
        if not isinstance(template, NodeTemplate):
            raise TypeError(f"{template!r} does not implement create_node(config)")
        replaced = template.node_type in self._templates
        self._templates[template.node_type] = template
        logger.debug(
            "NodeTemplateRegistry: %s %s v%d",
            "replaced" if replaced else "registered",
            template.node_type, template.type_version,
        )

    def get(self, node_type: str) -> NodeTemplate | None:
        return self._templates.get(node_type)

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._templates

    def registered_types(self) -> list[str]:
        return sorted(self._templates)

    def create_node(self, node_type: str, config: NodeCreationConfig) -> WorkflowNode:
        """Build a node of node_type; unknown types use the generic fallback."""
        template = self._templates.get(node_type)
        if template is None:
            logger.debug("No template for %s; using generic defaults", node_type)
            template = GenericNodeTemplate(node_type, rng=self._rng)
        return template.create_node(config)


def default_registry(rng: random.Random | None = None) -> NodeTemplateRegistry:
    """Registry preloaded with every built-in template."""
    registry = NodeTemplateRegistry(rng=rng)
    for template_cls in BUILTIN_TEMPLATES:
        registry.register(template_cls(rng=rng))
    return registry
