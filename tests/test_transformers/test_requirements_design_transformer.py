"""Unit tests for requirements -> design (phaseflow.transformers.requirements_design).

Tests cover:
- Wireframes from requirements and user stories
- User flows with triggers, steps and decision points
- Component specifications and naming
- Design system variants and project-type switches
"""

from __future__ import annotations

import pytest

from phaseflow.models import PhaseAnalysisBundle
from phaseflow.phases import Phase
from phaseflow.transformers import RequirementsToDesignTransformer
from phaseflow.transformers.requirements_design import component_name

LOGIN_REQUIREMENT = {
    "id": "FR-1",
    "title": "User Login Form",
    "description": "Users log in through a form",
    "priority": "high",
}
SEARCH_REQUIREMENT = {
    "id": "FR-2",
    "title": "Searchable Archive",
    "description": "Browse a searchable list of documents",
    "priority": "low",
}
LOGIN_STORY = {
    "persona": "Member",
    "story": "As a member, I want to login so that I can search my files",
    "acceptanceCriteria": ["Given valid credentials", "Then I see my files"],
    "priority": "high",
}


def requirements_bundle(requirements=None, stories=None) -> PhaseAnalysisBundle:
    return PhaseAnalysisBundle(
        phase=Phase.REQUIREMENTS,
        insights={
            "prd_complete": {"functional_requirements": requirements or [LOGIN_REQUIREMENT, SEARCH_REQUIREMENT]},
            "user_stories": {"stories": stories if stories is not None else [LOGIN_STORY]},
        },
    )


@pytest.fixture
def output_for():
    async def _transform(project_type: str = "web_app", bundle: PhaseAnalysisBundle | None = None):
        transformer = RequirementsToDesignTransformer(project_type)
        return await transformer.transform(bundle or requirements_bundle(), Phase.DESIGN)

    return _transform


class TestWireframes:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_requirement_wireframe(self, output_for):
        output = await output_for()

        login = output.wireframes[0]
        assert login["id"] == "WF-1"
        assert login["title"] == "Wireframe for User Login Form"
        assert login["components"] == [
            "Header",
            "Navigation",
            "Form",
            "Input Fields",
            "Submit Button",
            "Login Form",
            "Authentication",
            "Content Area",
            "Footer",
        ]
        assert login["interactions"] == ["Click", "Navigation", "Form Submit", "Input Validation"]
        assert login["priority"] == "high"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_search_is_a_whole_word(self, output_for):
        output = await output_for()

        archive = output.wireframes[1]
        assert "Data Table" in archive["components"]
        assert "Search" not in archive["interactions"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_story_wireframe(self, output_for):
        output = await output_for()

        story = output.wireframes[2]
        assert story["id"] == "WF-US-1"
        assert story["title"].startswith("User Story Wireframe: As a member")
        assert len(output.wireframes) == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_at_most_five_requirement_wireframes(self, output_for):
        requirements = [{"title": f"Page {i}", "description": f"Page {i}"} for i in range(8)]
        output = await output_for(bundle=requirements_bundle(requirements, stories=[]))
        assert len(output.wireframes) == 5

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_api_service_has_no_wireframes(self, output_for):
        output = await output_for("api_service")
        assert output.wireframes is None


class TestUserFlows:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_login_flow(self, output_for):
        output = await output_for()

        flow = output.user_flows[0]
        assert flow["id"] == "UF-1"
        assert flow["persona"] == "Member"
        assert flow["trigger"] == "User needs to authenticate"
        assert flow["steps"] == [
            "User enters system",
            "User provides credentials",
            "System validates credentials",
            "User enters search criteria",
            "System returns results",
            "User completes action",
            "System provides feedback",
        ]
        assert flow["decisionPoints"] == ["Valid credentials?", "User authorized?", "Action successful?"]
        assert flow["successCriteria"] == ["Given valid credentials", "Then I see my files"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_plain_story(self, output_for):
        output = await output_for(bundle=requirements_bundle(stories=["Browse the catalog"]))

        flow = output.user_flows[0]
        assert flow["persona"] == "User"
        assert flow["trigger"] == "User initiates action"
        assert flow["successCriteria"] == ["Task completed successfully"]


class TestComponents:
    @pytest.mark.unit
    def test_component_name(self):
        assert component_name("user login form") == "UserLoginFormComponent"
        assert component_name("Real-time chat!") == "RealtimeChatComponent"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_form_component(self, output_for):
        output = await output_for()

        login = output.component_specs[0]
        assert login["name"] == "UserLoginFormComponent"
        assert login["type"] == "form"
        assert login["props"] == ["className", "id", "onSubmit", "validation", "initialValues"]
        assert login["state"] == ["isLoading", "formData", "errors", "isValid"]
        assert login["methods"] == ["render", "handleSubmit", "validateInput", "resetForm"]
        assert len(login["accessibility"]) == 5

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duplicate_names_are_merged(self, output_for):
        requirements = [LOGIN_REQUIREMENT, {**LOGIN_REQUIREMENT, "id": "FR-9"}]
        output = await output_for(bundle=requirements_bundle(requirements))
        assert len(output.component_specs) == 1


class TestDesignSystem:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_variants_by_type(self, output_for):
        output = await output_for()

        components = {entry["name"]: entry for entry in output.design_system["components"]}
        assert components["UserLoginFormComponent"]["variants"] == ["default", "inline", "stacked"]
        assert output.design_system["colorPalette"]["primary"][0] == "#007bff"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_prototype_switches(self, output_for):
        output = await output_for("prototype")

        assert output.design_system is None
        assert output.wireframes
        assert output.component_specs[0]["accessibility"] == []
