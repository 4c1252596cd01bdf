"""Unit tests for transformer selection (phaseflow.transformers.TransformerRegistry).

Tests cover:
- Default registry: one transformer per working source phase
- Project type and custom stack handed to every transformer
- Lookup by token or member, registration, missing transformers
"""

from __future__ import annotations

import pytest

from phaseflow.errors import NoTransformerError
from phaseflow.models import TechStack
from phaseflow.phases import Phase
from phaseflow.transformers import (
    ConceptToRequirementsTransformer,
    ImplementationToDeploymentTransformer,
    TransformerRegistry,
)


class TestDefaultRegistry:
    @pytest.mark.unit
    def test_covers_every_source_phase(self):
        registry = TransformerRegistry.for_project()

        assert len(registry) == 5
        assert isinstance(registry.get(Phase.CONCEPT), ConceptToRequirementsTransformer)
        assert isinstance(registry.get("implementation"), ImplementationToDeploymentTransformer)
        assert "deployment" not in registry
        assert "complete" not in registry

    @pytest.mark.unit
    def test_project_type_and_custom_stack(self):
        stack = TechStack(frontend="Vue.js")
        registry = TransformerRegistry.for_project("mobile_app", stack)

        transformer = registry.get("design")
        assert transformer.project_type == "mobile_app"
        assert transformer.custom_tech_stack is stack

    @pytest.mark.unit
    def test_unknown_project_type_falls_back_to_web_app(self):
        transformer = TransformerRegistry.for_project("spaceship").get(Phase.CONCEPT)
        assert transformer.project_type == "web_app"


class TestLookup:
    @pytest.mark.unit
    def test_missing_transformer(self):
        with pytest.raises(NoTransformerError) as exc_info:
            TransformerRegistry().get(Phase.CONCEPT)
        assert exc_info.value.message == "No transformer found for phase: concept"
        assert exc_info.value.code == "NoTransformer"

    @pytest.mark.unit
    def test_unknown_token(self):
        with pytest.raises(NoTransformerError):
            TransformerRegistry.for_project().get("retrospective")

    @pytest.mark.unit
    def test_register_replaces(self, scripted_transformer):
        registry = TransformerRegistry.for_project()
        replacement = scripted_transformer()

        registry.register("concept", replacement)

        assert registry.get(Phase.CONCEPT) is replacement
        assert len(registry) == 5

    @pytest.mark.unit
    def test_contains_accepts_tokens(self):
        registry = TransformerRegistry.for_project()
        assert "Concept" in registry
        assert "launch" not in registry
