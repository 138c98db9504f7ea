"""Tests for node templates and the NodeTemplateRegistry.

Covers:
  Test group 1 — Branch (if) builder: default condition vs. pass-through.
  Test group 2 — Switch builder: one rule per option plus fallback output.
  Test group 3 — Merge and error-trigger builders.
  Test group 4 — Trigger/response builders (webhook, schedule, respondToWebhook).
  Test group 5 — Registry: lookup, replacement, generic fallback with configured overlay.
  Test group 6 — Config validation, positions, webhook ids, wire shape.
"""

from __future__ import annotations

import random
import re

import pytest

from n8n_workflow_agent.nodes import (
    DEFAULT_POSITION,
    ErrorTriggerNodeTemplate,
    GenericNodeTemplate,
    IfNodeTemplate,
    MergeNodeTemplate,
    NodeConfigurationError,
    NodeCreationConfig,
    NodeTemplateRegistry,
    RespondToWebhookNodeTemplate,
    ScheduleTriggerNodeTemplate,
    SwitchNodeTemplate,
    WebhookNodeTemplate,
    default_registry,
    generate_webhook_id,
    get_default_parameters,
    is_webhook_type,
)

_UUID4_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def _config(**configuration) -> NodeCreationConfig:
    return NodeCreationConfig(id="1", name="Node", configuration=configuration)


# ---------------------------------------------------------------------------
# Test group 1 — If
# ---------------------------------------------------------------------------


class TestIfNode:

    def test_default_condition(self):
        node = IfNodeTemplate().create_node(_config())
        numbers = node.parameters["conditions"]["number"]
        assert len(numbers) == 1
        assert numbers[0]["operation"] == "smallerEqual"
        assert numbers[0]["value2"] == 50
        assert numbers[0]["value1"] == "={{$json.score}}"
        assert list(node.parameters["conditions"]) == ["number"]

    def test_conditions_pass_through(self):
        conditions = {"string": [{"value1": "={{$json.status}}", "value2": "paid"}]}
        node = IfNodeTemplate().create_node(_config(conditions=conditions))
        assert node.parameters["conditions"] == conditions

    def test_conditions_list_passes_through(self):
        conditions = [{"leftValue": "={{$json.status}}", "rightValue": "paid"}]
        node = IfNodeTemplate().create_node(_config(conditions=conditions))
        assert node.parameters["conditions"] == conditions

    def test_type_and_version(self):
        node = IfNodeTemplate().create_node(_config())
        assert node.type == "n8n-nodes-base.if"
        assert node.type_version == 1


# ---------------------------------------------------------------------------
# Test group 2 — Switch
# ---------------------------------------------------------------------------


class TestSwitchNode:

    def test_two_options(self):
        node = SwitchNodeTemplate().create_node(_config(options=["card", "paypal"]))
        rules = node.parameters["rules"]["rules"]
        assert [r["output"] for r in rules] == [0, 1]
        assert [r["value2"] for r in rules] == ["card", "paypal"]
        assert all(r["operation"] == "equal" for r in rules)
        assert node.parameters["fallbackOutput"] == 2

    def test_default_options_and_field(self):
        node = SwitchNodeTemplate().create_node(_config())
        rules = node.parameters["rules"]["rules"]
        assert [r["value2"] for r in rules] == ["option1", "option2", "option3"]
        assert node.parameters["fallbackOutput"] == 3
        assert node.parameters["value1"] == "={{$json.type}}"

    def test_custom_field(self):
        node = SwitchNodeTemplate().create_node(_config(options=["a"], field="method"))
        assert node.parameters["value1"] == "={{$json.method}}"

    def test_empty_options_fall_back_to_defaults(self):
        node = SwitchNodeTemplate().create_node(_config(options=[]))
        assert node.parameters["fallbackOutput"] == 3

    def test_ill_typed_options_rejected(self):
        with pytest.raises(NodeConfigurationError):
            SwitchNodeTemplate().create_node(_config(options="card,paypal"))


# ---------------------------------------------------------------------------
# Test group 3 — Merge / ErrorTrigger
# ---------------------------------------------------------------------------


class TestMergeAndErrorTrigger:

    def test_merge_default_mode(self):
        node = MergeNodeTemplate().create_node(_config())
        assert node.parameters == {"mode": "append"}
        assert node.type_version == 2

    def test_merge_input_count_not_emitted(self):
        node = MergeNodeTemplate().create_node(_config(mode="combine", inputCount=3))
        assert node.parameters == {"mode": "combine"}

    def test_merge_input_count_below_two_rejected(self):
        with pytest.raises(NodeConfigurationError):
            MergeNodeTemplate().create_node(_config(inputCount=1))

    @pytest.mark.parametrize("configuration", [{}, {"anything": 1}, {"conditions": {"x": 1}}])
    def test_error_trigger_parameters_always_empty(self, configuration):
        node = ErrorTriggerNodeTemplate().create_node(_config(**configuration))
        assert node.parameters == {}
        assert node.type == "n8n-nodes-base.errorTrigger"


# ---------------------------------------------------------------------------
# Test group 4 — Triggers and responses
# ---------------------------------------------------------------------------


class TestTriggerNodes:

    def test_webhook_gets_id_and_defaults(self):
        node = WebhookNodeTemplate(rng=random.Random(7)).create_node(_config(path="/orders/"))
        assert node.parameters["path"] == "orders"
        assert node.parameters["httpMethod"] == "POST"
        assert _UUID4_RE.match(node.webhook_id)

    def test_schedule_rule(self):
        node = ScheduleTriggerNodeTemplate().create_node(_config(interval="days", amount=2))
        assert node.parameters == {"rule": {"interval": [{"field": "days", "daysInterval": 2}]}}

    def test_schedule_rejects_unknown_interval(self):
        with pytest.raises(NodeConfigurationError):
            ScheduleTriggerNodeTemplate().create_node(_config(interval="fortnights"))

    def test_respond_to_webhook_json(self):
        node = RespondToWebhookNodeTemplate().create_node(_config())
        assert node.parameters["respondWith"] == "json"
        assert node.parameters["responseBody"] == "={{$json}}"
        assert node.webhook_id is None


# ---------------------------------------------------------------------------
# Test group 5 — Registry
# ---------------------------------------------------------------------------


class TestRegistry:

    def test_default_registry_has_builtins(self):
        registry = default_registry()
        for node_type in (
            "n8n-nodes-base.if",
            "n8n-nodes-base.switch",
            "n8n-nodes-base.merge",
            "n8n-nodes-base.errorTrigger",
            "n8n-nodes-base.webhook",
        ):
            assert node_type in registry

    def test_unknown_type_uses_generic_fallback(self):
        node = default_registry().create_node("n8n-nodes-base.airtable", _config())
        assert node.type == "n8n-nodes-base.airtable"
        assert node.type_version == 1
        assert node.parameters == {}
        assert node.webhook_id is None

    def test_fallback_uses_quick_defaults(self):
        node = NodeTemplateRegistry().create_node(
            "n8n-nodes-base.httpRequest", _config()
        )
        assert node.parameters == get_default_parameters("n8n-nodes-base.httpRequest")

    def test_fallback_overlays_configured_parameters(self):
        config = _config(url="https://api.stripe.com/v1/charges", method="POST")
        node = NodeTemplateRegistry().create_node("n8n-nodes-base.httpRequest", config)
        defaults = get_default_parameters("n8n-nodes-base.httpRequest")
        assert node.parameters["url"] == "https://api.stripe.com/v1/charges"
        assert node.parameters["method"] == "POST"
        assert node.parameters["options"] == defaults["options"]

    def test_fallback_code_node_uses_name(self):
        config = NodeCreationConfig(id="2", name="Validate Input")
        node = NodeTemplateRegistry().create_node("n8n-nodes-base.code", config)
        assert "jsCode" in node.parameters
        assert node.parameters["jsCode"].startswith("// Validation logic for Validate Input")

    def test_fallback_webhook_type_gets_id(self):
        node = NodeTemplateRegistry().create_node("n8n-nodes-base.stripeWebhook", _config())
        assert _UUID4_RE.match(node.webhook_id)

    def test_register_replaces(self):
        registry = NodeTemplateRegistry()
        registry.register(GenericNodeTemplate("n8n-nodes-base.if"))
        registry.register(IfNodeTemplate())
        assert isinstance(registry.get("n8n-nodes-base.if"), IfNodeTemplate)
        assert registry.registered_types() == ["n8n-nodes-base.if"]

    def test_register_rejects_non_template(self):
        with pytest.raises(TypeError):
            NodeTemplateRegistry().register(object())

    def test_is_webhook_type(self):
        assert is_webhook_type("n8n-nodes-base.webhook")
        assert is_webhook_type("n8n-nodes-base.githubWebhookTrigger")
        assert not is_webhook_type("n8n-nodes-base.respondToWebhook")
        assert not is_webhook_type("n8n-nodes-base.set")


# ---------------------------------------------------------------------------
# Test group 6 — Config validation and wire shape
# ---------------------------------------------------------------------------


class TestNodeConfig:

    def test_default_position(self):
        node = IfNodeTemplate().create_node(_config())
        assert node.position == list(DEFAULT_POSITION)

    def test_explicit_position(self):
        config = NodeCreationConfig(id="1", name="If", position=(600, 120))
        assert IfNodeTemplate().create_node(config).position == [600, 120]

    @pytest.mark.parametrize("node_id,name", [("", "Name"), ("1", ""), ("1", "   ")])
    def test_missing_required_fields(self, node_id, name):
        with pytest.raises(NodeConfigurationError):
            default_registry().create_node(
                "n8n-nodes-base.set", NodeCreationConfig(id=node_id, name=name)
            )

    def test_from_draft_merges_hints_and_coerces_position(self):
        config = NodeCreationConfig.from_draft(
            {
                "name": "Route",
                "position": {"x": 10, "y": "20"},
                "parameters": {"field": "a", "options": ["x"]},
                "configuration": {"field": "b"},
            },
            fallback_id="7",
        )
        assert config.id == "7"
        assert config.position == (10.0, 20.0)
        assert config.configuration == {"field": "b", "options": ["x"]}

    def test_from_draft_bad_position_uses_fallback(self):
        config = NodeCreationConfig.from_draft(
            {"id": "3", "name": "N", "position": "left"},
            fallback_id="9",
            fallback_position=(450, 300),
        )
        assert config.id == "3"
        assert config.position == (450, 300)

    def test_to_dict_wire_shape(self):
        node = WebhookNodeTemplate().create_node(_config())
        d = node.to_dict()
        assert set(d) == {"id", "name", "type", "typeVersion", "position", "parameters", "webhookId"}
        assert "webhookId" not in IfNodeTemplate().create_node(_config()).to_dict()

    def test_webhook_id_shape(self):
        rng = random.Random(0)
        for _ in range(50):
            assert _UUID4_RE.match(generate_webhook_id(rng))

    def test_webhook_id_deterministic_with_seed(self):
        assert generate_webhook_id(random.Random(3)) == generate_webhook_id(random.Random(3))
