"""Quick default-parameter table for node types without a dedicated template.

Used by the factory's generic fallback so that any node type the AI
proposes still gets a parameter object the engine accepts. Unknown types
get an empty mapping.
"""

from __future__ import annotations

from typing import Any

WEBHOOK = "n8n-nodes-base.webhook"
CODE = "n8n-nodes-base.code"
EMAIL_SEND = "n8n-nodes-base.emailSend"
TWILIO = "n8n-nodes-base.twilio"
POSTGRES = "n8n-nodes-base.postgres"
HTTP_REQUEST = "n8n-nodes-base.httpRequest"
IF = "n8n-nodes-base.if"
MERGE = "n8n-nodes-base.merge"
RESPOND_TO_WEBHOOK = "n8n-nodes-base.respondToWebhook"
SET = "n8n-nodes-base.set"


def get_default_parameters(node_type: str, node_name: str = "") -> dict[str, Any]:
    """Return a fresh default parameter dict for node_type."""
    if node_type == WEBHOOK:
        return {"path": "webhook", "authentication": "none", "options": {}}
    if node_type == CODE:
        return {"jsCode": generate_code_for_node(node_name)}
    if node_type == EMAIL_SEND:
        return {
            "toEmail": "={{$json.email}}",
            "subject": "Notification",
            "text": "={{$json.message}}",
            "options": {},
        }
    if node_type == TWILIO:
        return {
            "operation": "sms",
            "from": "={{$credentials.fromNumber}}",
            "to": "={{$json.phone}}",
            "message": "={{$json.message}}",
            "options": {},
        }
    if node_type == POSTGRES:
        return {
            "operation": "executeQuery",
            "query": "SELECT * FROM table_name WHERE id = {{$json.id}}",
            "additionalFields": {},
        }
    if node_type == HTTP_REQUEST:
        return {"url": "https://api.example.com/endpoint", "method": "GET", "options": {}}
    if node_type == IF:
        return {"conditions": {"boolean": [{"value1": "={{$json.value}}", "value2": True}]}}
    if node_type == MERGE:
        return {"mode": "append"}
    if node_type == RESPOND_TO_WEBHOOK:
        return {"options": {}}
    if node_type == SET:
        return {"keepOnlySet": False, "values": {}, "options": {}}
    return {}


def generate_code_for_node(node_name: str) -> str:
    """Pick a starter Code-node body from keywords in the node name."""
    lower = (node_name or "").lower()

    if "validate" in lower:
        return (
            f"// Validation logic for {node_name}\n"
            "const requiredFields = ['field1', 'field2'];\n"
            "const item = items[0];\n\n"
            "for (const field of requiredFields) {\n"
            "  if (!item.json[field]) {\n"
            "    throw new Error(`Missing required field: ${field}`);\n"
            "  }\n"
            "}\n\n"
            "return items;"
        )
    if "transform" in lower or "process" in lower:
        return (
            f"// Transform data for {node_name}\n"
            "return items.map(item => ({\n"
            "  json: {\n"
            "    ...item.json,\n"
            "    processed: true,\n"
            "    timestamp: new Date().toISOString()\n"
            "  }\n"
            "}));"
        )
    if "filter" in lower:
        return (
            f"// Filter logic for {node_name}\n"
            "return items.filter(item => item.json.status === 'active');"
        )
    if "analyze" in lower:
        return (
            f"// Analysis logic for {node_name}\n"
            "const results = items.map(item => ({ ...item.json, analysis: {} }));\n\n"
            "return [{\n"
            "  json: {\n"
            "    results,\n"
            "    summary: { total: results.length, timestamp: new Date().toISOString() }\n"
            "  }\n"
            "}];"
        )
    return f"// {node_name} logic\n\nreturn items;"
