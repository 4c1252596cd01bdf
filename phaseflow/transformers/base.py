"""Transformer contract and shared behaviour.

A transformer turns the analysis bundle of a completed phase into the
structured ``TransformationOutput`` the next phase starts from.  Concrete
transformers only derive their phase-specific artifacts and stack
signals; assembling the common fields and validating the result happens
here.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from ..errors import TransformationError
from ..heuristics import StackSignals, generate_tech_stack
from ..models import CommonInsights, PhaseAnalysisBundle, TechStack, TransformationOutput
from ..phases import Phase
from ..project_types import get_project_type_config, get_transformation_rules
from ..utils import utc_now

_COMMON_INSIGHT_KEYS: tuple[str, ...] = (
    "requirements",
    "features",
    "constraints",
    "stakeholders",
    "priorities",
    "risks",
    "key_findings",
)

_PHASE_RECOMMENDATIONS: dict[Phase, tuple[str, ...]] = {
    Phase.REQUIREMENTS: (
        "Validate requirements with stakeholders",
        "Prioritize features based on business value",
    ),
    Phase.DESIGN: (
        "Create user-centered design solutions",
        "Ensure accessibility compliance",
    ),
    Phase.ARCHITECTURE: (
        "Design for scalability and maintainability",
        "Consider security from the ground up",
    ),
    Phase.IMPLEMENTATION: (
        "Follow coding best practices and standards",
        "Implement comprehensive testing strategy",
    ),
    Phase.DEPLOYMENT: (
        "Set up monitoring and alerting",
        "Plan for rollback scenarios",
    ),
}


@runtime_checkable
class Transformer(Protocol):
    """Anything that can transform a phase analysis bundle."""

    async def transform(self, bundle: PhaseAnalysisBundle, target_phase: Phase) -> TransformationOutput:
        ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _dedupe(items: list[Any]) -> list[Any]:
    seen: set[str] = set()
    unique: list[Any] = []
    for item in items:
        marker = json.dumps(item, sort_keys=True, default=str)
        if marker not in seen:
            seen.add(marker)
            unique.append(item)
    return unique


def extract_common_insights(bundle: PhaseAnalysisBundle) -> CommonInsights:
    """Merge the shared insight lists of every deliverable, without duplicates."""
    merged: dict[str, list[Any]] = {key: [] for key in _COMMON_INSIGHT_KEYS}
    for deliverable_insights in bundle.insights.values():
        if not isinstance(deliverable_insights, dict):
            continue
        for key in _COMMON_INSIGHT_KEYS:
            value = deliverable_insights.get(key)
            if isinstance(value, list):
                merged[key].extend(value)
            elif value:
                merged[key].append(value)
    return CommonInsights(**{key: _dedupe(values) for key, values in merged.items()})


def validate_output(payload: dict[str, Any] | TransformationOutput) -> TransformationOutput:
    """Parse *payload* as a ``TransformationOutput``.

    Raises:
        TransformationError: Listing every schema issue found.
    """
    if isinstance(payload, TransformationOutput):
        return payload
    try:
        return TransformationOutput.model_validate(payload)
    except ValidationError as exc:
        issues = [
            f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in exc.errors()
        ]
        raise TransformationError("Transformation output validation failed", issues) from exc


def as_text(item: Any) -> str:
    """Description, title or plain string form of a requirement-like item."""
    if isinstance(item, dict):
        for key in ("description", "title", "name", "story"):
            if item.get(key):
                return str(item[key])
        return ""
    return str(item)


def title_of(item: Any, fallback: str) -> str:
    if isinstance(item, dict):
        return str(item.get("title") or item.get("name") or fallback)
    return str(item) if item else fallback


def priority_of(item: Any, default: str = "medium") -> str:
    if isinstance(item, dict) and item.get("priority") in ("high", "medium", "low"):
        return item["priority"]
    return default


def items_of(value: Any, *keys: str) -> list[Any]:
    """A list found directly in *value* or under the first matching key."""
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        for key in keys:
            found = value.get(key)
            if isinstance(found, list):
                return list(found)
    return []


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


class BaseTransformer(ABC):
    """Template for the phase-pair transformers.

    Subclasses set ``source_phase`` and ``output_type`` and implement
    ``derive_artifacts`` and ``stack_signals``.  Artifacts set to ``None``
    are left out of the output.

    Args:
        project_type: Project type whose defaults and rules apply.
        custom_tech_stack: Entries overriding the project type's default stack.
    """

    source_phase: ClassVar[Phase]
    output_type: ClassVar[str]

    def __init__(self, project_type: str = "web_app", custom_tech_stack: Optional[TechStack] = None) -> None:
        self.project_config = get_project_type_config(project_type)
        self.project_type = self.project_config.id
        self.rules = get_transformation_rules(self.project_type)
        self.custom_tech_stack = custom_tech_stack

    def __repr__(self) -> str:
        return f"{type(self).__name__}(project_type={self.project_type!r})"

    @abstractmethod
    def derive_artifacts(self, bundle: PhaseAnalysisBundle, insights: CommonInsights) -> dict[str, Any]:
        """Return the phase-specific output fields."""

    @abstractmethod
    def stack_signals(
        self, bundle: PhaseAnalysisBundle, insights: CommonInsights, artifacts: dict[str, Any]
    ) -> StackSignals:
        """Return the requirement signals that steer the tech stack."""

    async def transform(self, bundle: PhaseAnalysisBundle, target_phase: Phase) -> TransformationOutput:
        """Transform *bundle* into the output for *target_phase*.

        Raises:
            TransformationError: If the assembled output does not validate.
        """
        insights = extract_common_insights(bundle)
        await asyncio.sleep(0)
        artifacts = {
            key: value
            for key, value in self.derive_artifacts(bundle, insights).items()
            if value is not None
        }
        await asyncio.sleep(0)
        tech_stack = generate_tech_stack(
            self.project_type,
            self.stack_signals(bundle, insights, artifacts),
            self.custom_tech_stack,
        )
        await asyncio.sleep(0)

        payload: dict[str, Any] = {
            "type": self.output_type,
            "insights": insights,
            "tech_stack": tech_stack,
            "decisions": self.generate_decisions(bundle, artifacts, tech_stack),
            "recommendations": self.generate_recommendations(insights, target_phase),
            "transformed_at": utc_now(),
            **artifacts,
        }
        return validate_output(payload)

    # ------------------------------------------------------------------
    # Shared generators
    # ------------------------------------------------------------------

    def deliverable_insights(self, bundle: PhaseAnalysisBundle, deliverable: str) -> dict[str, Any]:
        """Insights of one deliverable; ``{}`` when it was not analyzed."""
        value = bundle.insights.get(deliverable)
        return value if isinstance(value, dict) else {}

    def generate_decisions(
        self, bundle: PhaseAnalysisBundle, artifacts: dict[str, Any], tech_stack: TechStack
    ) -> list[str]:
        decisions = [f"Transformed {bundle.phase.value} deliverables for next phase"]
        stack = tech_stack.as_dict()
        if stack:
            decisions.append(
                "Selected tech stack: " + ", ".join(f"{key}: {value}" for key, value in stack.items())
            )
        if artifacts.get("system_design"):
            decisions.append("System architecture defined based on requirements")
        if artifacts.get("database_schema"):
            decisions.append("Database schema designed for data relationships")
        return decisions

    def generate_recommendations(self, insights: CommonInsights, target_phase: Phase) -> list[str]:
        recommendations: list[str] = []
        if insights.risks:
            recommendations.append("Address identified risks early in development")
        if insights.constraints:
            recommendations.append("Consider constraints when making technical decisions")
        recommendations.extend(_PHASE_RECOMMENDATIONS.get(target_phase, ()))
        return recommendations
