"""Phaseflow: phase transition engine for a six-phase project lifecycle.

Validates a requested phase change, analyzes the source phase's
deliverables, transforms them into structured output for the next phase
and records the result.
"""

from .analysis import DeliverableAnalysisGateway, DeliverableAnalyzer, MarkdownDeliverableAnalyzer
from .config import EngineConfig
from .engine import PhaseTransitionEngine, TransitionStage
from .errors import (
    ContextBuildError,
    IllegalTransitionError,
    IncompleteDeliverablesError,
    NoTransformerError,
    PersistenceError,
    PhaseflowError,
    TimeoutExceededError,
    TransformationError,
    TransitionValidationError,
    UnknownPhaseError,
)
from .models import (
    AdvanceResult,
    EnhancedContext,
    PhaseAnalysisBundle,
    PhaseCompletion,
    TechStack,
    TransformationOutput,
    TransitionResult,
    ValidationResult,
    WorkflowState,
)
from .phases import PHASE_CATALOG, Phase
from .state import JsonStateStore, MemoryStateStore, StateStore
from .transformers import TransformerRegistry
from .workflow import (
    advance_phase,
    check_phase_completion,
    get_workflow_state,
    initialize_project_state,
    mark_deliverable_complete,
)

__version__ = "0.1.0"

__all__ = [
    "AdvanceResult",
    "ContextBuildError",
    "DeliverableAnalysisGateway",
    "DeliverableAnalyzer",
    "EngineConfig",
    "EnhancedContext",
    "IllegalTransitionError",
    "IncompleteDeliverablesError",
    "JsonStateStore",
    "MarkdownDeliverableAnalyzer",
    "MemoryStateStore",
    "NoTransformerError",
    "PHASE_CATALOG",
    "PersistenceError",
    "Phase",
    "PhaseAnalysisBundle",
    "PhaseCompletion",
    "PhaseTransitionEngine",
    "PhaseflowError",
    "StateStore",
    "TechStack",
    "TimeoutExceededError",
    "TransformationError",
    "TransformationOutput",
    "TransformerRegistry",
    "TransitionResult",
    "TransitionStage",
    "TransitionValidationError",
    "UnknownPhaseError",
    "ValidationResult",
    "WorkflowState",
    "advance_phase",
    "check_phase_completion",
    "get_workflow_state",
    "initialize_project_state",
    "mark_deliverable_complete",
]
