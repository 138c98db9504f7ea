"""Static catalog of known workflow patterns.

Each WorkflowPattern describes a common automation shape plus, per target
platform, a ready-made template (n8n node list, Make scenario modules,
Zapier steps, Vapi assistant). The catalog is built once at import time and
never mutated; PatternMatcher scores it against free-text requests.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


class Platform(str, enum.Enum):
    """Automation platforms a pattern can carry a template for."""

    N8N = "n8n"
    MAKE = "make"
    ZAPIER = "zapier"
    VAPI = "vapi"


DIFFICULTIES = frozenset({"simple", "intermediate", "complex"})


@dataclass(frozen=True)
class WorkflowPattern:
    """Immutable catalog entry.

    platforms maps a platform name to its template. A platform key that is
    present with a None value counts as absent for matching.
    """

    id: str
    name: str
    description: str
    keywords: frozenset[str]
    category: str
    difficulty: str
    platforms: Mapping[str, Any]
    required_services: tuple[str, ...] = ()
    examples: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.difficulty not in DIFFICULTIES:
            raise ValueError(
                f"Pattern {self.id!r}: difficulty must be one of {sorted(DIFFICULTIES)}, "
                f"got {self.difficulty!r}"
            )
        # Freeze the containers so catalog entries cannot be changed in place.
        object.__setattr__(self, "keywords", frozenset(self.keywords))
        object.__setattr__(self, "platforms", MappingProxyType(dict(self.platforms)))
        object.__setattr__(self, "required_services", tuple(self.required_services))
        object.__setattr__(self, "examples", tuple(self.examples))
        object.__setattr__(self, "tags", tuple(self.tags))

    def supports(self, platform: str | Platform) -> bool:
        """True when the pattern has a (non-empty) template for platform."""
        key = platform.value if isinstance(platform, Platform) else platform
        return self.platforms.get(key) is not None

    def template_for(self, platform: str | Platform) -> Any:
        key = platform.value if isinstance(platform, Platform) else platform
        return self.platforms.get(key)


def _n8n(nodes: list[dict[str, Any]], connections: dict[str, Any] | None = None) -> dict[str, Any]:
    """Wrap a node list into an n8n template, chaining nodes linearly by default."""
    if connections is None:
        connections = {}
        for src, dst in zip(nodes, nodes[1:]):
            connections[src["name"]] = {"main": [[{"node": dst["name"], "type": "main", "index": 0}]]}
    return {"nodes": nodes, "connections": connections}


def _node(name: str, node_type: str, x: int, parameters: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "name": name,
        "type": node_type,
        "typeVersion": 1,
        "position": [x, 300],
        "parameters": parameters or {},
    }


# ---------------------------------------------------------------------------
# E-commerce
# ---------------------------------------------------------------------------

_ECOMMERCE: list[WorkflowPattern] = [
    WorkflowPattern(
        id="order-fulfillment-automation",
        name="Order Fulfillment Automation",
        description="Automate order processing, inventory updates, shipping, and customer notifications",
        keywords=frozenset({"order", "fulfillment", "shipping", "inventory", "ecommerce", "notification"}),
        category="ecommerce",
        difficulty="complex",
        required_services=("ecommerce", "inventory", "shipping", "email"),
        examples=(
            "Automate order fulfillment from payment to shipping",
            "Process orders and update inventory automatically",
        ),
        tags=("orders", "fulfillment", "inventory", "shipping"),
        platforms={
            "n8n": _n8n([
                _node("New Order", "n8n-nodes-base.webhook", 250, {"path": "new-order", "responseMode": "onReceived"}),
                _node("Validate Order", "n8n-nodes-base.if", 450, {
                    "conditions": {"string": [{"value1": "={{$json.payment_status}}", "operation": "equal", "value2": "paid"}]},
                }),
                _node("Update Inventory", "n8n-nodes-base.httpRequest", 650, {"method": "POST", "url": "={{$env.INVENTORY_API}}/deduct"}),
                _node("Send Confirmation", "n8n-nodes-base.emailSend", 850, {"subject": "Your order is on its way"}),
            ]),
            "make": {"modules": ["webhooks:CustomWebHook", "builtin:BasicRouter", "http:ActionSendData", "email:ActionSendEmail"]},
            "zapier": {"steps": ["Webhooks by Zapier: Catch Hook", "Filter", "Webhooks by Zapier: POST", "Email by Zapier"]},
        },
    ),
    WorkflowPattern(
        id="abandoned-cart-recovery",
        name="Abandoned Cart Recovery",
        description="Send reminder emails with a discount to customers who abandoned their cart",
        keywords=frozenset({"abandoned", "cart", "recovery", "reminder", "discount"}),
        category="ecommerce",
        difficulty="intermediate",
        required_services=("ecommerce", "email"),
        examples=(
            "Email customers who abandoned their shopping cart",
            "Recover abandoned carts with a discount code",
        ),
        tags=("cart", "email", "marketing"),
        platforms={
            "n8n": _n8n([
                _node("Every Hour", "n8n-nodes-base.scheduleTrigger", 250, {"rule": {"interval": [{"field": "hours", "hoursInterval": 1}]}}),
                _node("Get Abandoned Carts", "n8n-nodes-base.httpRequest", 450, {"method": "GET", "url": "={{$env.SHOP_API}}/carts?status=abandoned"}),
                _node("Loop Carts", "n8n-nodes-base.splitInBatches", 650, {"batchSize": 10}),
                _node("Send Recovery Email", "n8n-nodes-base.emailSend", 850, {"subject": "You left something behind"}),
            ]),
            "make": {"modules": ["builtin:Scheduler", "http:ActionGetData", "builtin:BasicFeeder", "email:ActionSendEmail"]},
        },
    ),
    WorkflowPattern(
        id="payment-method-routing",
        name="Payment Method Routing",
        description="Route incoming payments to a different branch per payment method",
        keywords=frozenset({"payment", "card", "paypal", "route", "method"}),
        category="ecommerce",
        difficulty="intermediate",
        required_services=("payments",),
        examples=("Handle card and paypal payments differently",),
        tags=("payments", "routing"),
        platforms={
            "n8n": _n8n([
                _node("Payment Webhook", "n8n-nodes-base.webhook", 250, {"path": "payment"}),
                _node("Route by Method", "n8n-nodes-base.switch", 450, {
                    "dataType": "string",
                    "value1": "={{$json.method}}",
                    "rules": {"rules": [
                        {"operation": "equal", "value2": "card", "output": 0},
                        {"operation": "equal", "value2": "paypal", "output": 1},
                    ]},
                    "fallbackOutput": 2,
                }),
            ]),
            "zapier": {"steps": ["Webhooks by Zapier: Catch Hook", "Paths by Zapier"]},
        },
    ),
]

# ---------------------------------------------------------------------------
# CRM
# ---------------------------------------------------------------------------

_CRM: list[WorkflowPattern] = [
    WorkflowPattern(
        id="crm-contact-sync",
        name="Sync CRM Contact on Form Submit",
        description="Create or update a CRM contact whenever a web form is submitted",
        keywords=frozenset({"crm", "contact", "form", "submit", "hubspot", "salesforce", "sync"}),
        category="crm",
        difficulty="simple",
        required_services=("crm", "forms"),
        examples=(
            "Add new form submissions to HubSpot as contacts",
            "Sync typeform responses into salesforce",
        ),
        tags=("crm", "forms", "contacts"),
        platforms={
            "n8n": _n8n([
                _node("Form Submitted", "n8n-nodes-base.webhook", 250, {"path": "form-submit"}),
                _node("Upsert Contact", "n8n-nodes-base.hubspot", 450, {"resource": "contact", "operation": "upsert"}),
            ]),
            "make": {"modules": ["webhooks:CustomWebHook", "hubspotcrm:CreateUpdateContact"]},
            "zapier": {"steps": ["Typeform: New Entry", "HubSpot: Create or Update Contact"]},
        },
    ),
    WorkflowPattern(
        id="lead-scoring",
        name="Lead Scoring and Routing",
        description="Score inbound leads and route hot leads to sales",
        keywords=frozenset({"lead", "score", "scoring", "qualify", "sales", "risk score"}),
        category="crm",
        difficulty="intermediate",
        required_services=("crm", "slack"),
        examples=(
            "Score new leads and notify sales about hot ones",
            "Route leads with a high score to the sales team",
        ),
        tags=("leads", "sales", "scoring"),
        platforms={
            "n8n": _n8n([
                _node("New Lead", "n8n-nodes-base.webhook", 250, {"path": "lead"}),
                _node("Calculate Score", "n8n-nodes-base.code", 450, {"jsCode": "return items;"}),
                _node("Is Hot Lead", "n8n-nodes-base.if", 650, {
                    "conditions": {"number": [{"value1": "={{$json.score}}", "operation": "largerEqual", "value2": 70}]},
                }),
                _node("Notify Sales", "n8n-nodes-base.slack", 850, {"channel": "#sales"}),
            ]),
            "make": {"modules": ["webhooks:CustomWebHook", "util:SetVariable", "builtin:BasicRouter", "slack:CreateMessage"]},
        },
    ),
]

# ---------------------------------------------------------------------------
# Analytics / reporting
# ---------------------------------------------------------------------------

_ANALYTICS: list[WorkflowPattern] = [
    WorkflowPattern(
        id="scheduled-report",
        name="Scheduled Metrics Report",
        description="Collect metrics on a schedule, merge them, and email a report",
        keywords=frozenset({"report", "metrics", "daily", "weekly", "dashboard", "analytics", "kpi"}),
        category="analytics",
        difficulty="intermediate",
        required_services=("database", "email"),
        examples=(
            "Send a weekly KPI report by email",
            "Email me daily sales metrics",
        ),
        tags=("reporting", "metrics", "schedule"),
        platforms={
            "n8n": _n8n(
                [
                    _node("Every Monday", "n8n-nodes-base.scheduleTrigger", 250, {"rule": {"interval": [{"field": "weeks"}]}}),
                    _node("Get Sales", "n8n-nodes-base.postgres", 450, {"operation": "executeQuery", "query": "SELECT * FROM sales"}),
                    _node("Get Signups", "n8n-nodes-base.postgres", 450, {"operation": "executeQuery", "query": "SELECT * FROM signups"}),
                    _node("Merge Data", "n8n-nodes-base.merge", 650, {"mode": "append"}),
                    _node("Email Report", "n8n-nodes-base.emailSend", 850, {"subject": "Weekly KPI report"}),
                ],
                connections={
                    "Every Monday": {"main": [[
                        {"node": "Get Sales", "type": "main", "index": 0},
                        {"node": "Get Signups", "type": "main", "index": 0},
                    ]]},
                    "Get Sales": {"main": [[{"node": "Merge Data", "type": "main", "index": 0}]]},
                    "Get Signups": {"main": [[{"node": "Merge Data", "type": "main", "index": 1}]]},
                    "Merge Data": {"main": [[{"node": "Email Report", "type": "main", "index": 0}]]},
                },
            ),
            "make": {"modules": ["builtin:Scheduler", "postgres:ExecuteQuery", "util:TextAggregator", "email:ActionSendEmail"]},
            "zapier": {"steps": ["Schedule by Zapier", "PostgreSQL: Find Rows", "Email by Zapier"]},
        },
    ),
    WorkflowPattern(
        id="subscription-churn-alert",
        name="Subscription Churn Alert",
        description="Detect customers at risk of churning and alert the success team",
        keywords=frozenset({"churn", "subscription", "retention", "mrr", "at risk", "saas"}),
        category="analytics",
        difficulty="complex",
        required_services=("billing", "slack"),
        examples=("Alert the team when a customer is likely to churn",),
        tags=("saas", "retention"),
        platforms={
            "n8n": _n8n([
                _node("Daily", "n8n-nodes-base.scheduleTrigger", 250, {"rule": {"interval": [{"field": "days"}]}}),
                _node("Get Subscriptions", "n8n-nodes-base.stripe", 450, {"resource": "subscription", "operation": "getAll"}),
                _node("Identify At Risk", "n8n-nodes-base.code", 650, {"jsCode": "return items;"}),
                _node("Alert Team", "n8n-nodes-base.slack", 850, {"channel": "#customer-success"}),
            ]),
        },
    ),
]

# ---------------------------------------------------------------------------
# Social media
# ---------------------------------------------------------------------------

_SOCIAL: list[WorkflowPattern] = [
    WorkflowPattern(
        id="content-distribution-hub",
        name="Content Distribution Hub",
        description="Publish new content to several social networks at once",
        keywords=frozenset({"social", "media", "post", "twitter", "linkedin", "facebook", "publish"}),
        category="social-media",
        difficulty="intermediate",
        required_services=("twitter", "linkedin", "facebook"),
        examples=(
            "Post new blog articles to twitter and linkedin",
            "Share content across all social media accounts",
        ),
        tags=("social", "content", "publishing"),
        platforms={
            "n8n": _n8n([
                _node("New Content", "n8n-nodes-base.rssFeedRead", 250, {"url": "https://example.com/feed.xml"}),
                _node("Post to Twitter", "n8n-nodes-base.twitter", 450, {"text": "={{$json.title}} {{$json.link}}"}),
                _node("Post to LinkedIn", "n8n-nodes-base.linkedIn", 650, {"text": "={{$json.title}}"}),
            ]),
            "make": {"modules": ["rss:TriggerNewArticle", "twitter:CreateTweet", "linkedin:CreatePost"]},
            "zapier": {"steps": ["RSS by Zapier: New Item", "Twitter: Create Tweet", "LinkedIn: Create Share Update"]},
        },
    ),
    WorkflowPattern(
        id="rss-to-telegram",
        name="RSS to Telegram",
        description="Monitor an RSS feed and post new items to a Telegram channel",
        keywords=frozenset({"telegram", "rss", "feed", "channel", "monitor"}),
        category="social-media",
        difficulty="simple",
        examples=("Post new RSS feed items to my telegram channel",),
        tags=("rss", "telegram"),
        platforms={
            "n8n": _n8n([
                _node("Schedule Trigger", "n8n-nodes-base.scheduleTrigger", 250, {"rule": {"interval": [{"field": "hours", "hoursInterval": 1}]}}),
                _node("RSS Feed Read", "n8n-nodes-base.rssFeedRead", 450, {"url": "https://example.com/feed.xml"}),
                _node("Remove Duplicates", "n8n-nodes-base.removeDuplicates", 650, {"propertyName": "link"}),
                _node("Send to Telegram", "n8n-nodes-base.telegram", 850, {"chatId": "@channel", "text": "={{$json.title}}"}),
            ]),
            "make": None,
        },
    ),
]

# ---------------------------------------------------------------------------
# AI assistants
# ---------------------------------------------------------------------------

_AI_ASSISTANT: list[WorkflowPattern] = [
    WorkflowPattern(
        id="customer-support-bot",
        name="Customer Support Bot",
        description="AI assistant that answers support questions and escalates tickets",
        keywords=frozenset({"support", "customer", "bot", "assistant", "ticket", "chat"}),
        category="ai-assistant",
        difficulty="complex",
        required_services=("openai", "helpdesk"),
        examples=(
            "Build an AI chatbot that answers customer support questions",
            "Create a support assistant that opens tickets",
        ),
        tags=("ai", "support", "chatbot"),
        platforms={
            "vapi": {"assistant": {"name": "Support Bot", "firstMessage": "Hi! How can I help you today?"}},
            "n8n": _n8n([
                _node("Incoming Message", "n8n-nodes-base.webhook", 250, {"path": "support"}),
                _node("Answer Question", "n8n-nodes-base.openAi", 450, {"resource": "chat"}),
                _node("Needs Escalation", "n8n-nodes-base.if", 650, {
                    "conditions": {"boolean": [{"value1": "={{$json.escalate}}", "value2": True}]},
                }),
                _node("Create Ticket", "n8n-nodes-base.httpRequest", 850, {"method": "POST", "url": "={{$env.HELPDESK_API}}/tickets"}),
            ]),
        },
    ),
    WorkflowPattern(
        id="appointment-scheduler-bot",
        name="Appointment Scheduler Bot",
        description="Voice assistant that books appointments into a calendar",
        keywords=frozenset({"appointment", "schedule", "calendar", "booking", "voice"}),
        category="ai-assistant",
        difficulty="intermediate",
        required_services=("calendar",),
        examples=("Voice bot that books appointments in google calendar",),
        tags=("ai", "calendar", "voice"),
        platforms={
            "vapi": {"assistant": {"name": "Scheduler", "firstMessage": "I can book an appointment for you."}},
        },
    ),
]

# ---------------------------------------------------------------------------
# Operations / reliability
# ---------------------------------------------------------------------------

_OPERATIONS: list[WorkflowPattern] = [
    WorkflowPattern(
        id="error-notification",
        name="Workflow Error Notification",
        description="Notify the team whenever any workflow fails",
        keywords=frozenset({"error", "failure", "alert", "notify", "workflow fails"}),
        category="operations",
        difficulty="simple",
        required_services=("slack",),
        examples=("Send a slack message when a workflow fails",),
        tags=("monitoring", "errors"),
        platforms={
            "n8n": _n8n([
                _node("Error Trigger", "n8n-nodes-base.errorTrigger", 250),
                _node("Notify Slack", "n8n-nodes-base.slack", 450, {"channel": "#alerts", "text": "={{$json.execution.error.message}}"}),
            ]),
        },
    ),
]


def _build_catalog(groups: Iterable[list[WorkflowPattern]]) -> tuple[WorkflowPattern, ...]:
    patterns: list[WorkflowPattern] = []
    seen: set[str] = set()
    for group in groups:
        for pattern in group:
            if pattern.id in seen:
                raise ValueError(f"Duplicate pattern id in catalog: {pattern.id!r}")
            seen.add(pattern.id)
            patterns.append(pattern)
    return tuple(patterns)


CATALOG: tuple[WorkflowPattern, ...] = _build_catalog(
    [_ECOMMERCE, _CRM, _ANALYTICS, _SOCIAL, _AI_ASSISTANT, _OPERATIONS]
)
CATALOG_VERSION = "2024.1"
