"""Learning subsystem: generation history, execution feedback, prompt enrichment.

Entry points:
    LearningService          — record outcomes, enhance prompts, report metrics
    get_learning_service()   — process-wide instance built from AgentSettings
    reset_learning_service() — discard the process-wide instance

Storage:
    LearningStore            — async append/query ABC
    InMemoryLearningStore    — process-local (tests)
    SQLiteLearningStore      — aiosqlite-backed, survives restarts
"""

from n8n_workflow_agent.learning.analyzer import (
    classify_structure,
    normalize_error,
)
from n8n_workflow_agent.learning.models import (
    FeedbackInput,
    FeedbackRecord,
    GenerationInput,
    GenerationRecord,
    LearnedPattern,
    LearningContext,
    LearningMetrics,
)
from n8n_workflow_agent.learning.service import (
    LearningService,
    get_learning_service,
    reset_learning_service,
)
from n8n_workflow_agent.learning.store import (
    InMemoryLearningStore,
    LearningStore,
    SQLiteLearningStore,
)

__all__ = [
    # Service
    "LearningService",
    "get_learning_service",
    "reset_learning_service",
    # Records
    "GenerationInput",
    "GenerationRecord",
    "FeedbackInput",
    "FeedbackRecord",
    "LearnedPattern",
    "LearningContext",
    "LearningMetrics",
    # Analysis
    "normalize_error",
    "classify_structure",
    # Stores
    "LearningStore",
    "InMemoryLearningStore",
    "SQLiteLearningStore",
]
