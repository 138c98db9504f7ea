"""Node templates and the type-keyed factory that materializes workflow nodes."""

from n8n_workflow_agent.nodes.defaults import get_default_parameters
from n8n_workflow_agent.nodes.factory import (
    GenericNodeTemplate,
    NodeTemplateRegistry,
    default_registry,
    is_webhook_type,
)
from n8n_workflow_agent.nodes.models import (
    DEFAULT_POSITION,
    NodeConfigurationError,
    NodeCreationConfig,
    WorkflowNode,
)
from n8n_workflow_agent.nodes.templates import (
    ErrorTriggerNodeTemplate,
    IfNodeTemplate,
    MergeNodeTemplate,
    NodeTemplate,
    RespondToWebhookNodeTemplate,
    ScheduleTriggerNodeTemplate,
    SwitchNodeTemplate,
    WebhookNodeTemplate,
    generate_webhook_id,
)

__all__ = [
    "DEFAULT_POSITION",
    "NodeConfigurationError",
    "NodeCreationConfig",
    "WorkflowNode",
    "NodeTemplate",
    "IfNodeTemplate",
    "SwitchNodeTemplate",
    "MergeNodeTemplate",
    "ErrorTriggerNodeTemplate",
    "WebhookNodeTemplate",
    "ScheduleTriggerNodeTemplate",
    "RespondToWebhookNodeTemplate",
    "GenericNodeTemplate",
    "NodeTemplateRegistry",
    "default_registry",
    "generate_webhook_id",
    "get_default_parameters",
    "is_webhook_type",
]
