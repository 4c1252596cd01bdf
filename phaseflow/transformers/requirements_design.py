"""Requirements -> design.

Derives wireframe descriptors, user flows, component specifications and a
design system from the functional requirements and user stories.
"""

from __future__ import annotations

import copy
import re
from typing import Any

from ..heuristics import (
    AI_KEYWORDS,
    AUTH_KEYWORDS,
    REALTIME_KEYWORDS,
    Rule,
    StackSignals,
    collect,
    first_match,
    mentions,
    text_of,
)
from ..models import CommonInsights, PhaseAnalysisBundle
from ..phases import Phase
from .base import BaseTransformer, as_text, items_of, priority_of, title_of

_MAX_REQUIREMENT_WIREFRAMES = 5
_MAX_STORY_WIREFRAMES = 3
_MAX_USER_FLOWS = 4
_MAX_COMPONENTS = 6

_BREAKPOINTS = ["mobile", "tablet", "desktop"]

# ---------------------------------------------------------------------------
# Rule tables (matched against requirement or story text)
# ---------------------------------------------------------------------------

_WIREFRAME_COMPONENT_RULES = (
    Rule(value=("Form", "Input Fields", "Submit Button"), keywords=("form", "input")),
    Rule(value=("Data Table", "Pagination"), keywords=("list", "table")),
    Rule(value=("Login Form", "Authentication"), keywords=AUTH_KEYWORDS),
)

_WIREFRAME_INTERACTION_RULES = (
    Rule(value=("Form Submit", "Input Validation"), keywords=("form",)),
    Rule(value=("Search", "Filter"), keywords=("search",)),
    Rule(value=("Drag and Drop",), keywords=("drag", "drop")),
)

_FLOW_TRIGGER_RULES = (
    Rule(value="User needs to authenticate", keywords=("login", "sign in")),
    Rule(value="User wants to create new content", keywords=("create", "add")),
    Rule(value="User wants to view information", keywords=("view", "see")),
)

_FLOW_STEP_RULES = (
    Rule(value=("User provides credentials", "System validates credentials"), keywords=("login",)),
    Rule(value=("User fills out form", "User submits form"), keywords=("form",)),
    Rule(value=("User enters search criteria", "System returns results"), keywords=("search",)),
)

_FLOW_DECISION_RULES = (
    Rule(value=("Valid credentials?", "User authorized?"), keywords=AUTH_KEYWORDS),
    Rule(value=("Valid input?", "Required fields completed?"), keywords=("form",)),
)

_COMPONENT_TYPE_RULES = (
    Rule(value="form", keywords=("form",)),
    Rule(value="interactive", keywords=("button",)),
    Rule(value="display", keywords=("display", "show")),
    Rule(value="input", keywords=("input",)),
    Rule(value="navigation", keywords=("navigation",)),
)

_COMPONENT_PROP_RULES = (
    Rule(value=("data", "loading", "error"), keywords=("data",)),
    Rule(value=("onClick", "onAction"), keywords=("action", "click")),
    Rule(value=("onSubmit", "validation", "initialValues"), keywords=("form",)),
)

_COMPONENT_STATE_RULES = (
    Rule(value=("formData", "errors", "isValid"), keywords=("form",)),
    Rule(value=("isActive", "isSelected"), keywords=("active", "select")),
    Rule(value=("hasError", "errorMessage"), keywords=("error",)),
)

_COMPONENT_METHOD_RULES = (
    Rule(value=("handleSubmit", "validateInput", "resetForm"), keywords=("form",)),
    Rule(value=("handleAction", "executeAction"), keywords=("action",)),
    Rule(value=("fetchData", "updateData"), keywords=("data",)),
)

_VARIANTS_BY_TYPE: dict[str, tuple[str, ...]] = {
    "interactive": ("primary", "secondary", "outline"),
    "display": ("compact", "detailed"),
    "form": ("inline", "stacked"),
}

_COMPONENT_ACCESSIBILITY = [
    "ARIA labels",
    "Keyboard navigation",
    "Screen reader support",
    "High contrast mode",
    "Focus management",
]

_COMPONENT_TESTING = [
    "Unit tests for all methods",
    "Integration tests for user interactions",
    "Accessibility testing",
    "Visual regression testing",
]

_DESIGN_TOKENS: dict[str, Any] = {
    "colorPalette": {
        "primary": ["#007bff", "#0056b3", "#004085"],
        "secondary": ["#6c757d", "#545b62", "#3d4449"],
        "success": ["#28a745", "#1e7e34", "#155724"],
        "warning": ["#ffc107", "#d39e00", "#b08800"],
        "error": ["#dc3545", "#bd2130", "#a71e2a"],
        "neutral": ["#f8f9fa", "#e9ecef", "#dee2e6", "#ced4da"],
    },
    "typography": {
        "fontFamily": {
            "primary": "Inter, system-ui, sans-serif",
            "monospace": "Monaco, Consolas, monospace",
        },
        "fontSize": {
            "xs": "0.75rem", "sm": "0.875rem", "base": "1rem", "lg": "1.125rem",
            "xl": "1.25rem", "2xl": "1.5rem", "3xl": "1.875rem",
        },
        "fontWeight": {"normal": "400", "medium": "500", "semibold": "600", "bold": "700"},
    },
    "spacing": {
        "xs": "0.25rem", "sm": "0.5rem", "md": "1rem", "lg": "1.5rem", "xl": "2rem", "2xl": "3rem",
    },
    "borderRadius": {"sm": "0.25rem", "md": "0.375rem", "lg": "0.5rem", "xl": "0.75rem"},
}


def component_name(title: str) -> str:
    """``"user login form"`` -> ``"UserLoginFormComponent"``."""
    words = re.sub(r"[^a-zA-Z0-9\s]", "", title).split()
    return "".join(word[:1].upper() + word[1:].lower() for word in words) + "Component"


class RequirementsToDesignTransformer(BaseTransformer):
    source_phase = Phase.REQUIREMENTS
    output_type = "requirements_to_design"

    def derive_artifacts(self, bundle: PhaseAnalysisBundle, insights: CommonInsights) -> dict[str, Any]:
        functional = self.functional_requirements(bundle)
        stories = self.stories(bundle)
        components = self.component_specs(functional)
        return {
            "wireframes": self.wireframes(functional, stories) if self.rules.include_wireframes else None,
            "user_flows": self.user_flows(stories),
            "component_specs": components,
            "design_system": self.design_system(components) if self.rules.include_design_system else None,
        }

    def stack_signals(
        self, bundle: PhaseAnalysisBundle, insights: CommonInsights, artifacts: dict[str, Any]
    ) -> StackSignals:
        text = " ".join(as_text(item) for item in self.functional_requirements(bundle))
        text += " " + text_of(insights.requirements)
        return StackSignals(
            realtime=mentions(text, REALTIME_KEYWORDS),
            ai=mentions(text, AI_KEYWORDS),
        )

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def functional_requirements(self, bundle: PhaseAnalysisBundle) -> list[Any]:
        prd = self.deliverable_insights(bundle, "prd_complete")
        return (
            items_of(prd.get("functional_requirements"))
            or items_of(prd.get("requirements"))
            or bundle.insight_list("functional_requirements")
        )

    def stories(self, bundle: PhaseAnalysisBundle) -> list[Any]:
        return items_of(bundle.insights.get("user_stories"), "stories", "user_stories")

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def wireframes(self, functional: list[Any], stories: list[Any]) -> list[dict[str, Any]]:
        wireframes: list[dict[str, Any]] = []
        for index, requirement in enumerate(functional[:_MAX_REQUIREMENT_WIREFRAMES], start=1):
            title = title_of(requirement, f"Requirement {index}")
            text = as_text(requirement)
            wireframes.append({
                "id": f"WF-{index}",
                "title": f"Wireframe for {title}",
                "description": f"Visual layout for {text} functionality",
                "components": [
                    "Header", "Navigation",
                    *collect(_WIREFRAME_COMPONENT_RULES, f"{title} {text}"),
                    "Content Area", "Footer",
                ],
                "interactions": ["Click", "Navigation", *collect(_WIREFRAME_INTERACTION_RULES, text)],
                "priority": priority_of(requirement),
                "responsiveBreakpoints": list(_BREAKPOINTS),
                "accessibility": ["keyboard-navigation", "screen-reader-friendly", "high-contrast"],
            })

        for index, story in enumerate(stories[:_MAX_STORY_WIREFRAMES], start=1):
            content = as_text(story)
            if not content:
                continue
            prefix = content.lower()[:20]
            if any(prefix in wireframe["title"].lower() for wireframe in wireframes):
                continue
            wireframes.append({
                "id": f"WF-US-{index}",
                "title": f"User Story Wireframe: {content[:50]}",
                "description": f"Interface design for user story: {content}",
                "components": ["User Interface", "Action Controls", "Feedback Area"],
                "interactions": ["User Input", "System Response", "Navigation"],
                "priority": priority_of(story),
                "responsiveBreakpoints": list(_BREAKPOINTS),
                "accessibility": ["keyboard-navigation", "screen-reader-friendly"],
            })
        return wireframes

    def user_flows(self, stories: list[Any]) -> list[dict[str, Any]]:
        flows = []
        for index, story in enumerate(stories[:_MAX_USER_FLOWS], start=1):
            content = as_text(story)
            persona = story.get("persona", "User") if isinstance(story, dict) else "User"
            criteria = story.get("acceptanceCriteria") if isinstance(story, dict) else None
            flows.append({
                "id": f"UF-{index}",
                "title": f"User Flow for {persona}: {content[:40]}",
                "persona": persona,
                "trigger": first_match(_FLOW_TRIGGER_RULES, content, default="User initiates action"),
                "steps": [
                    "User enters system",
                    *collect(_FLOW_STEP_RULES, content),
                    "User completes action",
                    "System provides feedback",
                ],
                "decisionPoints": [*collect(_FLOW_DECISION_RULES, content), "Action successful?"],
                "exitPoints": ["Success", "Error", "Cancel", "Timeout"],
                "errorHandling": [
                    "Display error message",
                    "Provide recovery options",
                    "Log error for debugging",
                    "Graceful degradation",
                ],
                "successCriteria": criteria or ["Task completed successfully"],
            })
        return flows

    def component_specs(self, functional: list[Any]) -> list[dict[str, Any]]:
        specs: dict[str, dict[str, Any]] = {}
        for index, requirement in enumerate(functional[:_MAX_COMPONENTS], start=1):
            title = title_of(requirement, f"Requirement {index}")
            name = component_name(title)
            if name in specs:
                continue
            text = f"{title} {as_text(requirement)}"
            specs[name] = {
                "id": f"CS-{len(specs) + 1}",
                "name": name,
                "description": f"Component for {title} functionality",
                "type": first_match(_COMPONENT_TYPE_RULES, text, default="functional"),
                "props": ["className", "id", *collect(_COMPONENT_PROP_RULES, text)],
                "state": ["isLoading", *collect(_COMPONENT_STATE_RULES, text)],
                "methods": ["render", *collect(_COMPONENT_METHOD_RULES, text)],
                "styling": {"layout": "flexbox", "responsive": True, "theme": "system", "customizable": True},
                "accessibility": (
                    list(_COMPONENT_ACCESSIBILITY) if self.rules.include_accessibility else []
                ),
                "priority": priority_of(requirement),
                "dependencies": [],
                "testingRequirements": list(_COMPONENT_TESTING),
            }
        return list(specs.values())

    def design_system(self, components: list[dict[str, Any]]) -> dict[str, Any]:
        return {
            **copy.deepcopy(_DESIGN_TOKENS),
            "components": [
                {
                    "name": spec["name"],
                    "variants": ["default", *_VARIANTS_BY_TYPE.get(spec["type"], ())],
                    "states": list(spec["state"]),
                }
                for spec in components
            ],
        }
