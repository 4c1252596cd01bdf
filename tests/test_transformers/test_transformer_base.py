"""Unit tests for the shared transformer behaviour (phaseflow.transformers.base).

Tests cover:
- extract_common_insights merging and de-duplication
- validate_output schema checks
- Item helpers (as_text, title_of, priority_of, items_of)
- Shared decisions and recommendations
- A per-attempt timeout interrupting a transform that blocks between stages
"""

from __future__ import annotations

import time

import pytest

from phaseflow.errors import TimeoutExceededError, TransformationError
from phaseflow.models import CommonInsights, PhaseAnalysisBundle, TechStack
from phaseflow.phases import Phase
from phaseflow.retry import RetryExecutor, RetryPolicy
from phaseflow.transformers import (
    ConceptToRequirementsTransformer,
    extract_common_insights,
    validate_output,
)
from phaseflow.transformers.base import as_text, items_of, priority_of, title_of


class TestExtractCommonInsights:
    @pytest.mark.unit
    def test_merges_and_dedupes(self):
        bundle = PhaseAnalysisBundle(
            phase=Phase.CONCEPT,
            insights={
                "market_analysis": {"risks": ["Crowded market"], "constraints": "Small budget"},
                "competitor_research": {"risks": ["Crowded market", "Price war"]},
                "notes": "not a mapping",
            },
        )

        insights = extract_common_insights(bundle)

        assert insights.risks == ["Crowded market", "Price war"]
        assert insights.constraints == ["Small budget"]
        assert insights.requirements == []

    @pytest.mark.unit
    def test_dedupes_dicts(self):
        requirement = {"id": "FR-1", "title": "Login"}
        bundle = PhaseAnalysisBundle(
            phase=Phase.REQUIREMENTS,
            insights={"a": {"requirements": [requirement]}, "b": {"requirements": [dict(requirement)]}},
        )
        assert extract_common_insights(bundle).requirements == [requirement]


class TestValidateOutput:
    @pytest.mark.unit
    def test_passes_models_through(self, output_factory):
        output = output_factory()
        assert validate_output(output) is output

    @pytest.mark.unit
    def test_accepts_aliased_document(self, output_factory):
        document = output_factory(wireframes=[{"id": "WF-1"}]).to_document()
        assert validate_output(document).wireframes == [{"id": "WF-1"}]

    @pytest.mark.unit
    def test_lists_every_issue(self):
        with pytest.raises(TransformationError) as exc_info:
            validate_output({"type": "concept_to_requirements"})

        error = exc_info.value
        assert error.code == "TransformationFailed"
        assert len(error.issues) == 5
        assert error.message.startswith("Transformation output validation failed: ")

    @pytest.mark.unit
    def test_rejects_unknown_fields(self, output_factory):
        document = output_factory().to_document()
        document["surprise"] = True
        with pytest.raises(TransformationError):
            validate_output(document)


class TestItemHelpers:
    @pytest.mark.unit
    def test_as_text(self):
        assert as_text({"title": "Login", "description": "Sign in"}) == "Sign in"
        assert as_text({"story": "As a user"}) == "As a user"
        assert as_text({"id": 3}) == ""
        assert as_text("plain") == "plain"

    @pytest.mark.unit
    def test_title_of(self):
        assert title_of({"name": "Dashboard"}, "fallback") == "Dashboard"
        assert title_of({}, "fallback") == "fallback"
        assert title_of("", "fallback") == "fallback"

    @pytest.mark.unit
    def test_priority_of(self):
        assert priority_of({"priority": "high"}) == "high"
        assert priority_of({"priority": "urgent"}) == "medium"
        assert priority_of("text", default="low") == "low"

    @pytest.mark.unit
    def test_items_of(self):
        assert items_of(["a"]) == ["a"]
        assert items_of({"stories": ["s"]}, "flows", "stories") == ["s"]
        assert items_of({"stories": "s"}, "stories") == []
        assert items_of(None) == []


class TestSharedGenerators:
    @pytest.fixture
    def transformer(self) -> ConceptToRequirementsTransformer:
        return ConceptToRequirementsTransformer("web_app")

    @pytest.mark.unit
    def test_decisions(self, transformer):
        bundle = PhaseAnalysisBundle(phase=Phase.ARCHITECTURE)
        decisions = transformer.generate_decisions(
            bundle, {"system_design": {"a": 1}}, TechStack(frontend="React", database="SQLite")
        )
        assert decisions == [
            "Transformed architecture deliverables for next phase",
            "Selected tech stack: frontend: React, database: SQLite",
            "System architecture defined based on requirements",
        ]

    @pytest.mark.unit
    def test_recommendations(self, transformer):
        insights = CommonInsights(risks=["r"], constraints=["c"])
        assert transformer.generate_recommendations(insights, Phase.DEPLOYMENT) == [
            "Address identified risks early in development",
            "Consider constraints when making technical decisions",
            "Set up monitoring and alerting",
            "Plan for rollback scenarios",
        ]

    @pytest.mark.unit
    def test_no_phase_recommendations_for_complete(self, transformer):
        assert transformer.generate_recommendations(CommonInsights(), Phase.COMPLETE) == []

    @pytest.mark.unit
    def test_repr(self, transformer):
        assert repr(transformer) == "ConceptToRequirementsTransformer(project_type='web_app')"


class SlowConceptTransformer(ConceptToRequirementsTransformer):
    """Blocks the event loop while deriving artifacts."""

    def derive_artifacts(self, bundle, insights):
        time.sleep(0.05)
        return super().derive_artifacts(bundle, insights)


class TestCancellation:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_interrupts_blocking_stage(self):
        transformer = SlowConceptTransformer("web_app")
        bundle = PhaseAnalysisBundle(phase=Phase.CONCEPT)
        executor = RetryExecutor(RetryPolicy(max_attempts=1, timeout=0.01))

        with pytest.raises(TimeoutExceededError):
            await executor.run(lambda: transformer.transform(bundle, Phase.REQUIREMENTS))
        assert executor.attempts == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fast_transform_completes_under_timeout(self):
        executor = RetryExecutor(RetryPolicy(max_attempts=1, timeout=5.0))
        transformer = ConceptToRequirementsTransformer("web_app")

        output = await executor.run(
            lambda: transformer.transform(PhaseAnalysisBundle(phase=Phase.CONCEPT), Phase.REQUIREMENTS)
        )
        assert output.type == "concept_to_requirements"
