"""Canonical lifecycle phase catalog.

Defines the closed set of phases, their required deliverables and the
single legal successor of each phase.  Pure data: nothing in this module
performs I/O.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Phase(str, Enum):
    """A fixed stage of the project lifecycle."""

    CONCEPT = "concept"
    REQUIREMENTS = "requirements"
    DESIGN = "design"
    ARCHITECTURE = "architecture"
    IMPLEMENTATION = "implementation"
    DEPLOYMENT = "deployment"
    COMPLETE = "complete"

    @classmethod
    def parse(cls, value: "str | Phase") -> "Phase | None":
        """Return the matching ``Phase`` or ``None`` for an unknown token."""
        if isinstance(value, Phase):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class PhaseDefinition(BaseModel):
    """Immutable catalog entry for a single phase."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Human-readable phase name")
    description: str = Field(default="", description="What happens in this phase")
    roles: tuple[str, ...] = Field(default=(), description="Agent roles active in this phase")
    required_deliverables: tuple[str, ...] = Field(
        default=(), description="Deliverables that must be completed, in order"
    )
    next_phase: Phase = Field(..., description="The single legal successor phase")
    deliverable_dir: str = Field(default="", description="Directory holding the phase artifacts")


PHASE_CATALOG: dict[Phase, PhaseDefinition] = {
    Phase.CONCEPT: PhaseDefinition(
        name="Concept & Research",
        description="Initial idea validation and market research",
        roles=("research_agent",),
        required_deliverables=("market_analysis", "user_personas", "competitor_research"),
        next_phase=Phase.REQUIREMENTS,
        deliverable_dir="research",
    ),
    Phase.REQUIREMENTS: PhaseDefinition(
        name="Requirements Analysis",
        description="Detailed feature specification and PRD creation",
        roles=("research_agent", "business_analyst"),
        required_deliverables=("prd_complete", "user_stories", "feature_specifications"),
        next_phase=Phase.DESIGN,
        deliverable_dir="requirements",
    ),
    Phase.DESIGN: PhaseDefinition(
        name="Design & UX",
        description="User interface and experience design",
        roles=("design_agent",),
        required_deliverables=("wireframes", "user_flows", "component_specifications"),
        next_phase=Phase.ARCHITECTURE,
        deliverable_dir="wireframes",
    ),
    Phase.ARCHITECTURE: PhaseDefinition(
        name="Technical Architecture",
        description="System design and technology planning",
        roles=("architecture_agent",),
        required_deliverables=("system_design", "database_schema", "api_specification"),
        next_phase=Phase.IMPLEMENTATION,
        deliverable_dir="architecture",
    ),
    Phase.IMPLEMENTATION: PhaseDefinition(
        name="Development",
        description="Code implementation and testing",
        roles=("development_agent",),
        required_deliverables=("core_features", "testing_suite", "documentation"),
        next_phase=Phase.DEPLOYMENT,
        deliverable_dir="implementation",
    ),
    Phase.DEPLOYMENT: PhaseDefinition(
        name="Deployment & Launch",
        description="Production setup and monitoring",
        roles=("deployment_agent",),
        required_deliverables=("production_environment", "monitoring_setup", "user_documentation"),
        next_phase=Phase.COMPLETE,
        deliverable_dir="deployment",
    ),
}

# Ordered list of working phases (``complete`` is terminal and has no entry).
PHASE_ORDER: list[Phase] = list(PHASE_CATALOG)


def get_phase_definition(phase: str | Phase) -> PhaseDefinition | None:
    """Look up the catalog entry for *phase*; ``None`` for unknown or terminal phases."""
    parsed = Phase.parse(phase)
    if parsed is None:
        return None
    return PHASE_CATALOG.get(parsed)


def is_known_phase(phase: str | Phase) -> bool:
    """Return ``True`` if *phase* is one of the seven lifecycle tokens."""
    return Phase.parse(phase) is not None
