"""Enhanced context builder.

Converts a validated ``TransformationOutput`` into the phase-targeted
guidance object handed to downstream task generation: focus areas, key
insights, prioritized tasks, risk factors and quality gates.  The per-phase
templates below are data; ``build`` only selects and extends them.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from .errors import ContextBuildError
from .models import EnhancedContext, PrioritizedTask, RiskFactor, TransformationOutput
from .phases import Phase, get_phase_definition

_MAX_DECISIONS = 3
_MAX_FINDINGS = 2
_REQUIREMENT_COMPLEXITY_THRESHOLD = 10
_STACK_SIZE_THRESHOLD = 5

# ---------------------------------------------------------------------------
# Per-phase templates
# ---------------------------------------------------------------------------

_FOCUS_AREAS: dict[Phase, tuple[str, ...]] = {
    Phase.REQUIREMENTS: ("User needs analysis", "Feature prioritization", "Stakeholder alignment"),
    Phase.DESIGN: ("User experience", "Interface design", "Accessibility"),
    Phase.ARCHITECTURE: ("System design", "Technology selection", "Scalability planning"),
    Phase.IMPLEMENTATION: ("Code quality", "Testing strategy", "Performance optimization"),
    Phase.DEPLOYMENT: ("Infrastructure setup", "Monitoring", "Security hardening"),
}
_DEFAULT_FOCUS_AREAS = ("Quality delivery", "Best practices")

_PHASE_TASKS: dict[Phase, tuple[tuple[str, str, str], ...]] = {
    Phase.REQUIREMENTS: (
        ("Validate user requirements with stakeholders", "high", "Ensures alignment before design phase"),
        ("Create detailed user stories", "high", "Foundation for design and development"),
        ("Define acceptance criteria", "medium", "Clear success metrics"),
    ),
    Phase.DESIGN: (
        ("Create user interface wireframes", "high", "Visual foundation for development"),
        ("Design user flows", "high", "Optimal user experience paths"),
        ("Develop component specifications", "medium", "Reusable design elements"),
    ),
    Phase.ARCHITECTURE: (
        ("Design system architecture", "high", "Technical foundation for implementation"),
        ("Create database schema", "high", "Data structure planning"),
        ("Define API specifications", "medium", "Interface contracts"),
    ),
    Phase.IMPLEMENTATION: (
        ("Set up development environment", "high", "Enable development workflow"),
        ("Implement core features", "high", "Primary functionality delivery"),
        ("Create testing suite", "medium", "Quality assurance"),
    ),
    Phase.DEPLOYMENT: (
        ("Set up production environment", "high", "Deployment readiness"),
        ("Configure monitoring", "high", "System health visibility"),
        ("Create user documentation", "medium", "User adoption support"),
    ),
}

_PHASE_RISKS: dict[Phase, tuple[tuple[str, str, str], ...]] = {
    Phase.REQUIREMENTS: (("Requirement changes", "high", "Regular stakeholder reviews"),),
    Phase.DESIGN: (("Design-development disconnect", "medium", "Close collaboration between teams"),),
    Phase.ARCHITECTURE: (("Over-engineering", "medium", "Focus on current requirements"),),
    Phase.IMPLEMENTATION: (("Technical debt accumulation", "high", "Regular code reviews and refactoring"),),
    Phase.DEPLOYMENT: (("Production issues", "high", "Comprehensive testing and monitoring"),),
}

_QUALITY_GATES: dict[Phase, tuple[str, ...]] = {
    Phase.REQUIREMENTS: ("All user stories have acceptance criteria", "Stakeholder sign-off obtained"),
    Phase.DESIGN: ("Wireframes approved by stakeholders", "Design system documented"),
    Phase.ARCHITECTURE: ("Architecture review completed", "Technology choices justified"),
    Phase.IMPLEMENTATION: ("Code review passed", "Unit tests coverage > 80%"),
    Phase.DEPLOYMENT: ("Production deployment successful", "Monitoring alerts configured"),
}
_DEFAULT_QUALITY_GATES = ("Phase deliverables completed", "Quality review passed")


class EnhancedContextBuilder:
    """Builds ``EnhancedContext`` objects for a project type.

    Args:
        project_type: Recorded on every context built.
    """

    def __init__(self, project_type: str = "web_app") -> None:
        self.project_type = project_type

    def build(self, transformation: TransformationOutput, target_phase: Phase | str) -> EnhancedContext:
        """Build and validate the context for *target_phase*.

        Raises:
            ContextBuildError: If the assembled context fails validation.
        """
        phase = Phase.parse(target_phase)
        definition = get_phase_definition(phase) if phase is not None else None

        document: dict[str, Any] = {
            "phase": phase if phase is not None else target_phase,
            "focus_areas": self.focus_areas(phase, transformation),
            "key_insights": self.key_insights(transformation),
            "tech_stack_guidance": transformation.tech_stack,
            "prioritized_tasks": self.prioritized_tasks(phase, transformation),
            "risk_factors": self.risk_factors(phase, transformation),
            "quality_gates": self.quality_gates(phase, transformation),
            "previous_phase_insights": transformation.insights,
            "key_decisions": list(transformation.decisions),
            "recommendations": list(transformation.recommendations),
            "project_type": self.project_type,
            "phase_requirements": list(definition.required_deliverables) if definition else [],
        }
        try:
            return EnhancedContext.model_validate(document)
        except ValidationError as exc:
            issues = [
                f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
                for error in exc.errors()
            ]
            raise ContextBuildError("Enhanced context validation failed", issues) from exc

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def focus_areas(self, phase: Phase | None, transformation: TransformationOutput) -> list[str]:
        areas = list(_FOCUS_AREAS.get(phase, _DEFAULT_FOCUS_AREAS))
        if not transformation.tech_stack.is_empty():
            areas.append("Technology integration")
        if transformation.insights.risks:
            areas.append("Risk mitigation")
        return areas

    def key_insights(self, transformation: TransformationOutput) -> list[str]:
        insights = list(transformation.decisions[:_MAX_DECISIONS])
        insights.extend(str(finding) for finding in transformation.insights.key_findings[:_MAX_FINDINGS])
        if transformation.recommendations:
            insights.append(f"Key recommendation: {transformation.recommendations[0]}")
        return insights or ["Phase transition completed successfully"]

    def prioritized_tasks(self, phase: Phase | None, transformation: TransformationOutput) -> list[PrioritizedTask]:
        tasks = [
            PrioritizedTask(task=task, priority=priority, rationale=rationale)
            for task, priority, rationale in _PHASE_TASKS.get(phase, ())
        ]
        stack = transformation.tech_stack.as_dict()
        if stack:
            tasks.append(PrioritizedTask(
                task=f"Implement {', '.join(stack.values())} integration",
                priority="medium",
                rationale="Technology stack implementation",
            ))
        return tasks

    def risk_factors(self, phase: Phase | None, transformation: TransformationOutput) -> list[RiskFactor]:
        risks: list[RiskFactor] = []
        if len(transformation.insights.requirements) > _REQUIREMENT_COMPLEXITY_THRESHOLD:
            risks.append(RiskFactor(
                risk="High requirement complexity",
                impact="medium",
                mitigation="Break down into smaller, manageable chunks",
            ))
        if len(transformation.tech_stack.as_dict()) > _STACK_SIZE_THRESHOLD:
            risks.append(RiskFactor(
                risk="Complex technology stack",
                impact="medium",
                mitigation="Ensure team expertise and training",
            ))
        risks.extend(
            RiskFactor(risk=risk, impact=impact, mitigation=mitigation)
            for risk, impact, mitigation in _PHASE_RISKS.get(phase, ())
        )
        return risks

    def quality_gates(self, phase: Phase | None, transformation: TransformationOutput) -> list[str]:
        gates = list(_QUALITY_GATES.get(phase, _DEFAULT_QUALITY_GATES))
        if not transformation.tech_stack.is_empty():
            gates.append("Technology integration validated")
        return gates
