"""Unit tests for deliverable analysis (phaseflow.analysis).

Tests cover:
- MarkdownDeliverableAnalyzer: headings to insights, Key: value fields,
  key findings, references, JSON artifacts, empty/invalid artifacts
- DeliverableAnalysisGateway: artifact lookup order, missing artifacts,
  failed analyses, analyzer exceptions (not counted as attempted),
  bundle metadata
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock

import pytest

from phaseflow.analysis import DeliverableAnalysisGateway, MarkdownDeliverableAnalyzer
from phaseflow.config import EngineConfig
from phaseflow.errors import UnknownPhaseError
from phaseflow.models import DeliverableAnalysis
from phaseflow.phases import Phase


# ---------------------------------------------------------------------------
# MarkdownDeliverableAnalyzer
# ---------------------------------------------------------------------------


class TestMarkdownAnalyzer:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_markdown_sections(self, concept_deliverables: dict[str, Path]):
        analyzer = MarkdownDeliverableAnalyzer()
        result = await analyzer.analyze_deliverable(concept_deliverables["market_analysis"], "market_analysis")

        assert result.success
        assert result.insights["market_size"] == "large"
        assert result.insights["growth_potential"] == "high"
        assert result.insights["opportunities"] == ["Real-time team collaboration", "Offline access"]
        assert result.insights["risks"] == ["Crowded market"]
        assert result.metadata["title"] == "Market Analysis"
        assert result.metadata["format"] == "md"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_key_findings_from_first_bullets(self, concept_deliverables: dict[str, Path]):
        analyzer = MarkdownDeliverableAnalyzer()
        result = await analyzer.analyze_deliverable(concept_deliverables["market_analysis"], "market_analysis")

        assert result.insights["key_findings"] == [
            "Real-time team collaboration",
            "Offline access",
            "Crowded market",
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_references_to_other_deliverables(self, concept_deliverables: dict[str, Path]):
        analyzer = MarkdownDeliverableAnalyzer()
        result = await analyzer.analyze_deliverable(
            concept_deliverables["competitor_research"], "competitor_research"
        )

        assert result.relationships["references"] == ["market_analysis"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_section_without_bullets_keeps_text(self, tmp_path: Path):
        path = tmp_path / "notes.md"
        path.write_text("# Notes\n\n## Summary\nA short paragraph.\n", encoding="utf-8")

        result = await MarkdownDeliverableAnalyzer().analyze_deliverable(path, "notes")

        assert result.insights["summary"] == "A short paragraph."

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_json_artifact(self, tmp_path: Path):
        path = tmp_path / "system_design.json"
        path.write_text(json.dumps({"architecture": "Monolithic", "services": ["AuthService"]}))

        result = await MarkdownDeliverableAnalyzer().analyze_deliverable(path, "system_design")

        assert result.success
        assert result.insights == {"architecture": "Monolithic", "services": ["AuthService"]}
        assert result.metadata["format"] == "json"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_json_list_is_wrapped(self, tmp_path: Path):
        path = tmp_path / "user_stories.json"
        path.write_text(json.dumps(["story one"]))

        result = await MarkdownDeliverableAnalyzer().analyze_deliverable(path, "user_stories")

        assert result.insights == {"content": ["story one"]}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_json_fails(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{oops")

        result = await MarkdownDeliverableAnalyzer().analyze_deliverable(path, "broken")

        assert not result.success
        assert "Invalid JSON" in result.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_file_fails(self, tmp_path: Path):
        path = tmp_path / "empty.md"
        path.write_text("   \n")

        result = await MarkdownDeliverableAnalyzer().analyze_deliverable(path, "empty")

        assert not result.success
        assert "empty" in result.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unreadable_file_fails(self, tmp_path: Path):
        result = await MarkdownDeliverableAnalyzer().analyze_deliverable(tmp_path / "absent.md", "absent")

        assert not result.success
        assert result.error


# ---------------------------------------------------------------------------
# DeliverableAnalysisGateway
# ---------------------------------------------------------------------------


class TestGateway:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bundle_keyed_by_deliverable(
        self, engine_config: EngineConfig, concept_deliverables: dict[str, Path]
    ):
        gateway = DeliverableAnalysisGateway(engine_config.deliverables_path)
        bundle = await gateway.analyze_phase(Phase.CONCEPT)

        assert bundle.phase is Phase.CONCEPT
        assert list(bundle.insights) == ["market_analysis", "user_personas", "competitor_research"]
        assert bundle.insights["user_personas"]["personas"] == ["Project Manager", "Developer"]
        assert bundle.metadata.total_deliverables == 3
        assert bundle.metadata.successful_analyses == 3
        assert len(bundle.successful()) == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_artifact_is_skipped(
        self, engine_config: EngineConfig, write_deliverable: Callable[..., Path]
    ):
        write_deliverable(Phase.CONCEPT, "market_analysis", "# Market\n\n## Opportunities\n- Niche\n")
        gateway = DeliverableAnalysisGateway(engine_config.deliverables_path)

        bundle = await gateway.analyze_phase("concept")

        assert list(bundle.deliverables) == ["market_analysis"]
        assert bundle.metadata.total_deliverables == 1
        assert bundle.metadata.successful_analyses == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_extension_order(self, engine_config: EngineConfig, write_deliverable: Callable[..., Path]):
        write_deliverable(Phase.ARCHITECTURE, "system_design", "notes", ext=".txt")
        json_path = write_deliverable(Phase.ARCHITECTURE, "system_design", '{"architecture": "x"}', ext=".json")
        gateway = DeliverableAnalysisGateway(engine_config.deliverables_path)

        assert gateway.find_artifact(Phase.ARCHITECTURE, "system_design") == json_path

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_analysis_counts_as_attempted(
        self, engine_config: EngineConfig, write_deliverable: Callable[..., Path]
    ):
        write_deliverable(Phase.CONCEPT, "market_analysis", "   ")
        write_deliverable(Phase.CONCEPT, "user_personas", "# Personas\n\n## Personas\n- Admin\n")
        gateway = DeliverableAnalysisGateway(engine_config.deliverables_path)

        bundle = await gateway.analyze_phase(Phase.CONCEPT)

        assert list(bundle.deliverables) == ["user_personas"]
        assert bundle.metadata.total_deliverables == 2
        assert bundle.metadata.successful_analyses == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_analyzer_exception_does_not_abort(
        self, engine_config: EngineConfig, concept_deliverables: dict[str, Path]
    ):
        analyzer = AsyncMock()
        analyzer.analyze_deliverable.side_effect = [
            RuntimeError("analyzer crashed"),
            DeliverableAnalysis(deliverable="user_personas", success=True, insights={"needs": ["x"]}),
            DeliverableAnalysis(deliverable="competitor_research", success=True),
        ]
        gateway = DeliverableAnalysisGateway(engine_config.deliverables_path, analyzer=analyzer)

        bundle = await gateway.analyze_phase(Phase.CONCEPT)

        assert analyzer.analyze_deliverable.await_count == 3
        assert list(bundle.deliverables) == ["user_personas", "competitor_research"]
        assert bundle.metadata.total_deliverables == 2
        assert bundle.metadata.successful_analyses == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_complete_has_no_deliverables(self, engine_config: EngineConfig):
        gateway = DeliverableAnalysisGateway(engine_config.deliverables_path)
        with pytest.raises(UnknownPhaseError):
            await gateway.analyze_phase(Phase.COMPLETE)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_phase_directory(self, engine_config: EngineConfig):
        gateway = DeliverableAnalysisGateway(engine_config.deliverables_path)
        bundle = await gateway.analyze_phase(Phase.DEPLOYMENT)

        assert bundle.deliverables == {}
        assert bundle.metadata.total_deliverables == 0
