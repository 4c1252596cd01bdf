"""End-to-end smoke test: markdown deliverables on disk through the full engine.

Tests cover:
- Initialising a project with the JSON state store
- Advancing concept -> requirements with the default gateway and transformers
- State documents written to the state directory
- A blocked advance while requirements deliverables are missing
- Advancing requirements -> design once they are present
"""

from __future__ import annotations

import json

import pytest

from phaseflow.engine import PhaseTransitionEngine
from phaseflow.phases import PHASE_CATALOG, Phase
from phaseflow.state import JsonStateStore
from phaseflow.workflow import (
    advance_phase,
    get_workflow_state,
    initialize_project_state,
    mark_deliverable_complete,
)

PRD_MD = """
    # Product Requirements

    ## Functional Requirements
    - Users log in with email
    - Live activity feed
"""

USER_STORIES_MD = """
    # User Stories

    ## Stories
    - As a member, I want to login so that I can see my projects
"""

FEATURE_SPECIFICATIONS_MD = """
    # Feature Specifications

    ## Features
    - Activity feed
"""


@pytest.fixture
async def project(engine_config, concept_deliverables):
    store = JsonStateStore(engine_config.state_path)
    engine = PhaseTransitionEngine(engine_config, store=store)
    await initialize_project_state(store)
    for name in PHASE_CATALOG[Phase.CONCEPT].required_deliverables:
        await mark_deliverable_complete(store, name)
    return store, engine


@pytest.mark.integration
@pytest.mark.asyncio
class TestTransitionSmoke:
    async def test_concept_to_requirements(self, project, engine_config):
        store, engine = project

        result = await advance_phase(store, engine)

        assert result.success, result.error
        assert result.warning is None
        assert result.next_phase == "requirements"

        output = result.transformation
        titles = [requirement["title"] for requirement in output.functional_requirements]
        assert titles[:3] == ["Address Real-time team collaboration", "Address Offline access", "Support Track progress"]
        assert len(output.user_stories) == 6
        assert [nfr["title"] for nfr in output.non_functional_requirements][0] == "Response Time"
        assert output.tech_stack.backend == "Node.js/Express"
        assert output.tech_stack.deployment == "AWS"
        assert "Address identified risks early in development" in output.recommendations

        context = result.enhanced_context
        assert context.focus_areas == [
            "User needs analysis",
            "Feature prioritization",
            "Stakeholder alignment",
            "Technology integration",
            "Risk mitigation",
        ]

        state_dir = engine_config.state_path
        current = json.loads((state_dir / "current-phase.json").read_text(encoding="utf-8"))
        assert current["phase"] == "requirements"
        log = json.loads((state_dir / "transformations.json").read_text(encoding="utf-8"))
        assert log["concept_to_requirements"]["type"] == "concept_to_requirements"
        assert (await get_workflow_state(store)).phases["concept"]["status"] == "completed"

    async def test_requirements_blocked_then_design(self, project, write_deliverable):
        store, engine = project
        await advance_phase(store, engine)

        blocked = await advance_phase(store, engine)
        assert not blocked.success
        assert "prd_complete" in blocked.error

        write_deliverable(Phase.REQUIREMENTS, "prd_complete", PRD_MD)
        write_deliverable(Phase.REQUIREMENTS, "user_stories", USER_STORIES_MD)
        write_deliverable(Phase.REQUIREMENTS, "feature_specifications", FEATURE_SPECIFICATIONS_MD)
        for name in PHASE_CATALOG[Phase.REQUIREMENTS].required_deliverables:
            await mark_deliverable_complete(store, name)

        result = await advance_phase(store, engine)

        assert result.success, result.error
        assert result.next_phase == "design"
        assert result.transformation.type == "requirements_to_design"
        assert result.transformation.wireframes[0]["title"] == "Wireframe for Users log in with email"
        assert result.transformation.tech_stack.backend == "Node.js/Express"
        assert (await get_workflow_state(store)).current_phase == "design"
