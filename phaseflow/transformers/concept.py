"""Concept -> requirements.

Turns market analysis, user personas and competitor research into
functional and non-functional requirements, user stories and feature
specifications.
"""

from __future__ import annotations

from typing import Any

from ..heuristics import (
    AI_KEYWORDS,
    AUTH_KEYWORDS,
    REALTIME_KEYWORDS,
    Rule,
    StackSignals,
    first_match,
    mentions,
    text_of,
)
from ..models import CommonInsights, PhaseAnalysisBundle
from ..phases import Phase
from .base import BaseTransformer, items_of

_STANDARD_REQUIREMENTS: tuple[tuple[str, str, str], ...] = (
    ("User Authentication", "System must provide secure user authentication and authorization", "high"),
    ("Data Management", "System must provide CRUD operations for core entities", "high"),
    ("User Interface", "System must provide intuitive user interface", "medium"),
)

_DEFAULT_STORIES: tuple[dict[str, Any], ...] = (
    {
        "id": "US-1",
        "persona": "End User",
        "story": "As an end user, I want to register and login so that I can access the system",
        "acceptanceCriteria": [
            "Given I am a new user",
            "When I provide valid registration information",
            "Then I should be able to create an account and login",
        ],
        "priority": "high",
        "estimatedEffort": "medium",
    },
    {
        "id": "US-2",
        "persona": "End User",
        "story": "As an end user, I want to manage my data so that I can control my information",
        "acceptanceCriteria": [
            "Given I am logged in",
            "When I access my profile",
            "Then I should be able to view and edit my information",
        ],
        "priority": "medium",
        "estimatedEffort": "small",
    },
)

# Requirement title -> feature group, first match wins.
_FEATURE_GROUP_RULES = (
    Rule(value="Authentication", keywords=AUTH_KEYWORDS),
    Rule(value="Data Management", keywords=("data", "crud")),
    Rule(value="User Interface", keywords=("interface", "ui")),
)
_DEFAULT_FEATURE_GROUP = "Core Functionality"
_FEATURE_GROUPS = ("Authentication", "Data Management", "User Interface", _DEFAULT_FEATURE_GROUP)

# Number of grouped requirements -> complexity.
_COMPLEXITY_RULES = (
    Rule(value="high", min_count=3),
    Rule(value="medium", min_count=2),
)

_SCALABILITY_RULES = (
    Rule(value="high", keywords=("market_size large", "growth_potential high")),
)


class ConceptToRequirementsTransformer(BaseTransformer):
    source_phase = Phase.CONCEPT
    output_type = "concept_to_requirements"

    def derive_artifacts(self, bundle: PhaseAnalysisBundle, insights: CommonInsights) -> dict[str, Any]:
        market = self.deliverable_insights(bundle, "market_analysis")
        personas = self.deliverable_insights(bundle, "user_personas")
        competitors = self.deliverable_insights(bundle, "competitor_research")

        functional = self.functional_requirements(market, personas)
        return {
            "functional_requirements": functional,
            "non_functional_requirements": (
                self.non_functional_requirements(competitors)
                if self.rules.include_non_functional
                else None
            ),
            "user_stories": self.user_stories(personas, functional),
            "feature_specs": self.feature_specs(functional, competitors),
        }

    def stack_signals(
        self, bundle: PhaseAnalysisBundle, insights: CommonInsights, artifacts: dict[str, Any]
    ) -> StackSignals:
        market = self.deliverable_insights(bundle, "market_analysis")
        market_text = (
            f"market_size {market.get('market_size', '')} "
            f"growth_potential {market.get('growth_potential', '')}"
        )
        descriptions = text_of(artifacts["functional_requirements"], "description")
        return StackSignals(
            scalability=first_match(_SCALABILITY_RULES, market_text, default="medium"),
            realtime=mentions(descriptions, REALTIME_KEYWORDS),
            ai=mentions(descriptions, AI_KEYWORDS),
        )

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def functional_requirements(self, market: dict[str, Any], personas: dict[str, Any]) -> list[dict[str, Any]]:
        requirements: list[dict[str, Any]] = []

        for opportunity in items_of(market.get("opportunities")):
            requirements.append({
                "id": f"FR-{len(requirements) + 1}",
                "title": f"Address {opportunity}",
                "description": f"System must provide functionality to address market opportunity: {opportunity}",
                "priority": "high",
                "source": "market_analysis",
            })

        for need in items_of(personas.get("needs")):
            requirements.append({
                "id": f"FR-{len(requirements) + 1}",
                "title": f"Support {need}",
                "description": f"System must support user need: {need}",
                "priority": "medium",
                "source": "user_personas",
            })

        for title, description, priority in _STANDARD_REQUIREMENTS:
            requirements.append({
                "id": f"FR-{len(requirements) + 1}",
                "title": title,
                "description": description,
                "priority": priority,
                "source": "standard",
            })
        return requirements

    def non_functional_requirements(self, competitors: dict[str, Any]) -> list[dict[str, Any]]:
        candidates: list[tuple[str, str, str, str]] = []
        if competitors.get("performance_benchmarks"):
            candidates.append((
                "Response Time",
                "System must respond to user requests within 2 seconds",
                "performance",
                "high",
            ))
        candidates.append((
            "Scalability",
            "System must support concurrent users based on market size",
            "scalability",
            "medium",
        ))
        if self.rules.include_security_requirements:
            candidates.append((
                "Data Security",
                "System must protect user data with industry-standard encryption",
                "security",
                "high",
            ))
        candidates.append((
            "Usability",
            "System must be usable by target user personas without training",
            "usability",
            "medium",
        ))
        return [
            {
                "id": f"NFR-{index}",
                "title": title,
                "description": description,
                "category": category,
                "priority": priority,
            }
            for index, (title, description, category, priority) in enumerate(candidates, start=1)
        ]

    def user_stories(
        self, personas: dict[str, Any], functional: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        stories: list[dict[str, Any]] = []
        for persona in items_of(personas.get("personas")):
            name = persona.get("name") if isinstance(persona, dict) else str(persona)
            name = name or "User"
            for requirement in functional[:3]:
                action = requirement["title"].lower()
                stories.append({
                    "id": f"US-{len(stories) + 1}",
                    "persona": name,
                    "story": f"As a {name}, I want to {action} so that I can achieve my goals",
                    "acceptanceCriteria": [
                        f"Given I am a {name}",
                        f"When I {action}",
                        "Then I should be able to complete the task successfully",
                    ],
                    "priority": requirement["priority"],
                    "estimatedEffort": "medium",
                })
        if not stories:
            stories = [dict(story) for story in _DEFAULT_STORIES]
        return stories

    def feature_specs(
        self, functional: list[dict[str, Any]], competitors: dict[str, Any]
    ) -> list[dict[str, Any]]:
        groups: dict[str, list[dict[str, Any]]] = {name: [] for name in _FEATURE_GROUPS}
        for requirement in functional:
            group = first_match(_FEATURE_GROUP_RULES, requirement["title"], default=_DEFAULT_FEATURE_GROUP)
            groups[group].append(requirement)

        comparisons = competitors.get("features") if isinstance(competitors.get("features"), dict) else {}
        features = []
        for name, requirements in groups.items():
            if not requirements:
                continue
            priorities = {requirement["priority"] for requirement in requirements}
            features.append({
                "name": name,
                "description": f"Feature encompassing {len(requirements)} related requirements",
                "requirements": [requirement["id"] for requirement in requirements],
                "priority": next(
                    (level for level in ("high", "medium") if level in priorities), "low"
                ),
                "complexity": first_match(_COMPLEXITY_RULES, count=len(requirements), default="low"),
                "dependencies": [],
                "competitorComparison": comparisons.get(name, "No competitor data available"),
            })
        return features
