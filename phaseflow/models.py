"""Pydantic v2 models for the Phaseflow transition engine.

Every object that crosses a component boundary (analyzer -> gateway ->
transformer -> context builder -> engine -> state store) is one of these
models, so malformed data fails at the boundary with itemized issues.

Attributes are snake_case; JSON documents use the camelCase aliases
(``focusAreas``, ``transformedAt``, ...) when dumped with ``by_alias=True``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .phases import Phase
from .utils import utc_now


class _DocumentModel(BaseModel):
    """Base for models persisted or handed to collaborators as JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using the camelCase aliases."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Level(str, Enum):
    """Priority of a task or impact of a risk."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class GateStatus(str, Enum):
    """Status of a phase's quality gate."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Tech stack
# ---------------------------------------------------------------------------

class TechStack(BaseModel):
    """Category -> technology choice.  Unknown categories are rejected."""

    model_config = ConfigDict(extra="forbid")

    frontend: Optional[str] = None
    backend: Optional[str] = None
    database: Optional[str] = None
    deployment: Optional[str] = None
    cicd: Optional[str] = None
    containerization: Optional[str] = None
    vector_db: Optional[str] = None
    ai_framework: Optional[str] = None

    def as_dict(self) -> dict[str, str]:
        """Return only the categories that have a technology chosen."""
        return {key: value for key, value in self.model_dump().items() if value}

    def is_empty(self) -> bool:
        return not self.as_dict()


# ---------------------------------------------------------------------------
# Deliverable analysis
# ---------------------------------------------------------------------------

class DeliverableAnalysis(_DocumentModel):
    """Analyzer output for a single deliverable artifact."""

    deliverable: str = Field(..., description="Deliverable name, e.g. 'market_analysis'")
    success: bool = Field(..., description="Whether the artifact was analyzed")
    path: Optional[str] = Field(default=None, description="Artifact path that was analyzed")
    insights: dict[str, Any] = Field(default_factory=dict)
    relationships: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = Field(default=None, description="Failure reason when success is False")


class BundleMetadata(_DocumentModel):
    """Counts summarising one phase analysis."""

    analyzed_at: str = Field(default_factory=utc_now)
    total_deliverables: int = Field(default=0, ge=0)
    successful_analyses: int = Field(default=0, ge=0)


class PhaseAnalysisBundle(_DocumentModel):
    """Aggregate of every deliverable analysis for one phase.

    ``insights`` and ``relationships`` are keyed by deliverable name, each
    holding that deliverable's own map.  Only successful analyses appear.
    """

    phase: Phase
    deliverables: dict[str, DeliverableAnalysis] = Field(default_factory=dict)
    insights: dict[str, Any] = Field(default_factory=dict)
    relationships: dict[str, Any] = Field(default_factory=dict)
    metadata: BundleMetadata = Field(default_factory=BundleMetadata)

    def successful(self) -> list[DeliverableAnalysis]:
        """Return the analyses that succeeded, in deliverable order."""
        return [analysis for analysis in self.deliverables.values() if analysis.success]

    def insight_list(self, *path: str) -> list[Any]:
        """Return the list found at ``insights[path[0]][path[1]]...``.

        Absent keys and non-list values yield an empty list.
        """
        value: Any = self.insights
        for key in path:
            if not isinstance(value, dict):
                return []
            value = value.get(key)
        return list(value) if isinstance(value, list) else []

    def insight_text(self) -> str:
        """Flatten every insight value to one lower-cased string for keyword rules."""
        return _flatten(self.insights).lower()


def _flatten(value: Any) -> str:
    if isinstance(value, dict):
        return " ".join(f"{key} {_flatten(item)}" for key, item in value.items())
    if isinstance(value, (list, tuple)):
        return " ".join(_flatten(item) for item in value)
    return str(value)


class CommonInsights(_DocumentModel):
    """Insight lists shared by every deliverable, merged and de-duplicated."""

    requirements: list[Any] = Field(default_factory=list)
    features: list[Any] = Field(default_factory=list)
    constraints: list[Any] = Field(default_factory=list)
    stakeholders: list[Any] = Field(default_factory=list)
    priorities: list[Any] = Field(default_factory=list)
    risks: list[Any] = Field(default_factory=list)
    key_findings: list[Any] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Transformation output
# ---------------------------------------------------------------------------

class TransformationOutput(_DocumentModel):
    """Structured output of one transformer run.

    The common fields are required; phase-specific artifacts are optional
    and only the ones produced by the transformer that ran are populated.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    type: str = Field(..., description="Phase pair, e.g. 'concept_to_requirements'")
    insights: CommonInsights
    tech_stack: TechStack
    decisions: list[str]
    recommendations: list[str]
    transformed_at: str = Field(..., min_length=1)

    # concept -> requirements
    functional_requirements: Optional[list[dict[str, Any]]] = None
    non_functional_requirements: Optional[list[dict[str, Any]]] = None
    user_stories: Optional[list[dict[str, Any]]] = None
    feature_specs: Optional[list[dict[str, Any]]] = None

    # requirements -> design
    wireframes: Optional[list[dict[str, Any]]] = None
    user_flows: Optional[list[dict[str, Any]]] = None
    component_specs: Optional[list[dict[str, Any]]] = None
    design_system: Optional[dict[str, Any]] = None

    # design -> architecture
    system_design: Optional[dict[str, Any]] = None
    database_schema: Optional[dict[str, Any]] = None
    api_specs: Optional[dict[str, Any]] = None
    security_architecture: Optional[dict[str, Any]] = None
    scalability_plan: Optional[dict[str, Any]] = None

    # architecture -> implementation
    core_features: Optional[list[dict[str, Any]]] = None
    testing_suite: Optional[dict[str, Any]] = None
    documentation: Optional[dict[str, Any]] = None
    development_plan: Optional[dict[str, Any]] = None
    quality_assurance: Optional[dict[str, Any]] = None

    # implementation -> deployment
    deployment_plan: Optional[dict[str, Any]] = None
    monitoring_setup: Optional[dict[str, Any]] = None
    user_documentation: Optional[dict[str, Any]] = None
    operational_plan: Optional[dict[str, Any]] = None
    maintenance_plan: Optional[dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Enhanced context
# ---------------------------------------------------------------------------

class PrioritizedTask(_DocumentModel):
    """A task suggested for the next phase."""
    task: str = Field(..., min_length=1)
    priority: Level
    rationale: str = ""
    dependencies: list[str] = Field(default_factory=list)


class RiskFactor(_DocumentModel):
    """A risk the next phase should plan for."""
    risk: str = Field(..., min_length=1)
    impact: Level
    mitigation: str = ""


class EnhancedContext(_DocumentModel):
    """Phase-targeted guidance handed to downstream task generation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    phase: Phase
    focus_areas: list[str] = Field(..., min_length=1)
    key_insights: list[str] = Field(default_factory=list)
    tech_stack_guidance: TechStack = Field(default_factory=TechStack)
    prioritized_tasks: list[PrioritizedTask] = Field(default_factory=list)
    risk_factors: list[RiskFactor] = Field(default_factory=list)
    quality_gates: list[str] = Field(default_factory=list)
    generated_at: str = Field(default_factory=utc_now)

    previous_phase_insights: CommonInsights = Field(default_factory=CommonInsights)
    key_decisions: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    project_type: str = "web_app"
    phase_requirements: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Validation, results and bookkeeping
# ---------------------------------------------------------------------------

class ValidationResult(_DocumentModel):
    """Outcome of checking whether a transition is legal."""

    is_valid: bool
    error: Optional[str] = None
    code: Optional[str] = Field(default=None, description="Error class, e.g. 'IllegalTransition'")
    missing: list[str] = Field(default_factory=list)


class QualityGateState(_DocumentModel):
    """Required vs. completed deliverables for one phase."""

    required: list[str] = Field(default_factory=list)
    completed: list[str] = Field(default_factory=list)
    status: GateStatus = GateStatus.PENDING

    def missing(self) -> list[str]:
        """Required deliverables not yet completed, in required order."""
        done = set(self.completed)
        return [name for name in self.required if name not in done]


class TransitionResult(_DocumentModel):
    """Final outcome of ``execute_transition``.

    Exactly one of the two shapes is valid: ``success=True`` with a
    ``transformation``, or ``success=False`` with an ``error``.
    """

    success: bool
    from_phase: str
    to_phase: str
    transformation: Optional[TransformationOutput] = None
    enhanced_context: Optional[EnhancedContext] = None
    deliverable_analysis: Optional[PhaseAnalysisBundle] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    transformed_at: str = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _check_outcome(self) -> "TransitionResult":
        if self.success:
            if self.transformation is None:
                raise ValueError("a successful transition requires a transformation")
            if self.error is not None:
                raise ValueError("a successful transition cannot carry an error")
        else:
            if not self.error:
                raise ValueError("a failed transition requires an error")
            if self.transformation is not None:
                raise ValueError("a failed transition cannot carry a transformation")
        return self

    @classmethod
    def failure(
        cls,
        from_phase: str,
        to_phase: str,
        error: str,
        error_code: Optional[str] = None,
    ) -> "TransitionResult":
        """Build a failed result."""
        return cls(
            success=False,
            from_phase=str(from_phase),
            to_phase=str(to_phase),
            error=error,
            error_code=error_code,
        )


class CacheEntry(BaseModel):
    """A cached transition result with its expiry, in cache-clock seconds."""

    key: str
    result: TransitionResult
    created_at: float
    expires_at: float


class EngineMetrics(BaseModel):
    """Counters collected by one engine instance."""

    transformations_executed: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    average_execution_time: float = Field(default=0.0, description="Rolling mean in milliseconds")
    cache_hit_rate: float = 0.0
    cache_size: int = 0


class WorkflowState(_DocumentModel):
    """Snapshot of the persisted workflow documents."""

    current_phase: str = Phase.CONCEPT.value
    phases: dict[str, dict[str, Any]] = Field(default_factory=dict)
    quality_gates: dict[str, QualityGateState] = Field(default_factory=dict)
    current: dict[str, Any] = Field(default_factory=dict)


class PhaseCompletion(_DocumentModel):
    """Deliverable completion of one phase."""

    phase: str
    is_complete: bool
    required: list[str] = Field(default_factory=list)
    completed: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)


class AdvanceResult(_DocumentModel):
    """Outcome of moving the workflow to its next phase.

    ``warning`` is set when the transition engine failed and the phase was
    advanced without enhanced context.
    """

    success: bool
    message: str = ""
    current_phase: str
    next_phase: Optional[str] = None
    transformation: Optional[TransformationOutput] = None
    enhanced_context: Optional[EnhancedContext] = None
    warning: Optional[str] = None
    error: Optional[str] = None
