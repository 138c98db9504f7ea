"""Workflow pattern catalog and lexical matcher."""

from n8n_workflow_agent.patterns.catalog import (
    CATALOG,
    CATALOG_VERSION,
    Platform,
    WorkflowPattern,
)
from n8n_workflow_agent.patterns.matcher import PatternMatch, PatternMatcher

__all__ = [
    "CATALOG",
    "CATALOG_VERSION",
    "Platform",
    "WorkflowPattern",
    "PatternMatch",
    "PatternMatcher",
]
