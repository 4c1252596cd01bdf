"""Shared pytest fixtures for the Phaseflow test suite.

Provides reusable fixtures for:
- Temporary project directories with deliverable artifacts on disk
- In-memory state stores with quality gates pre-filled
- A controllable clock and a recording sleep for cache/retry timing
- Stub gateways and transformers for isolating the engine
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest

from phaseflow.config import EngineConfig
from phaseflow.models import (
    CommonInsights,
    PhaseAnalysisBundle,
    TechStack,
    TransformationOutput,
)
from phaseflow.phases import PHASE_CATALOG, Phase
from phaseflow.state import QUALITY_GATES, MemoryStateStore
from phaseflow.utils import utc_now


# ---------------------------------------------------------------------------
# Time control
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


# ---------------------------------------------------------------------------
# Paths & deliverables
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary project directory (auto-cleanup)."""
    root = tmp_path / "test-project"
    root.mkdir()
    yield root


@pytest.fixture
def engine_config(project_root: Path) -> EngineConfig:
    return EngineConfig(project_root=project_root, backoff_base=0.5, backoff_cap=2.0)


@pytest.fixture
def write_deliverable(engine_config: EngineConfig) -> Callable[..., Path]:
    """Factory writing ``<deliverables>/<phase dir>/<name><ext>``."""

    def _write(phase: Phase, name: str, content: str, ext: str = ".md") -> Path:
        directory = engine_config.deliverables_path / PHASE_CATALOG[phase].deliverable_dir
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{name}{ext}"
        path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return _write


MARKET_ANALYSIS_MD = """
    # Market Analysis

    Market Size: large
    Growth Potential: high

    ## Opportunities
    - Real-time team collaboration
    - Offline access

    ## Risks
    - Crowded market
"""

USER_PERSONAS_MD = """
    # User Personas

    ## Personas
    - Project Manager
    - Developer

    ## Needs
    - Track progress
"""

COMPETITOR_RESEARCH_MD = """
    # Competitor Research

    Mentions the market_analysis findings.

    ## Performance Benchmarks
    - Competitor pages load in under 1 second

    ## Constraints
    - Budget limited to two developers
"""


@pytest.fixture
def concept_deliverables(write_deliverable: Callable[..., Path]) -> dict[str, Path]:
    """The three concept-phase artifacts written as markdown."""
    return {
        "market_analysis": write_deliverable(Phase.CONCEPT, "market_analysis", MARKET_ANALYSIS_MD),
        "user_personas": write_deliverable(Phase.CONCEPT, "user_personas", USER_PERSONAS_MD),
        "competitor_research": write_deliverable(
            Phase.CONCEPT, "competitor_research", COMPETITOR_RESEARCH_MD
        ),
    }


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

def completed_gates(*phases: Phase) -> dict[str, Any]:
    """Quality-gates document with every required deliverable of *phases* done."""
    return {
        phase.value: {
            "required": list(PHASE_CATALOG[phase].required_deliverables),
            "completed": list(PHASE_CATALOG[phase].required_deliverables),
            "status": "completed",
        }
        for phase in phases
    }


@pytest.fixture
def memory_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def ready_store() -> MemoryStateStore:
    """Store whose quality gates allow every working phase to advance."""
    return MemoryStateStore({QUALITY_GATES: completed_gates(*PHASE_CATALOG)})


# ---------------------------------------------------------------------------
# Stubs
# ---------------------------------------------------------------------------

def make_output(**overrides: Any) -> TransformationOutput:
    """A minimal valid transformation output."""
    fields: dict[str, Any] = {
        "type": "concept_to_requirements",
        "insights": CommonInsights(),
        "tech_stack": TechStack(),
        "decisions": ["Transformed concept deliverables for next phase"],
        "recommendations": ["Validate requirements with stakeholders"],
        "transformed_at": utc_now(),
    }
    fields.update(overrides)
    return TransformationOutput(**fields)


class StubGateway:
    """Analysis gateway returning a fixed bundle and counting calls."""

    def __init__(self, insights: dict[str, Any] | None = None) -> None:
        self.calls: list[Phase] = []
        self.insights = insights or {"market_analysis": {"opportunities": ["Offline access"]}}

    async def analyze_phase(self, phase: Phase | str) -> PhaseAnalysisBundle:
        parsed = Phase.parse(phase)
        self.calls.append(parsed)
        return PhaseAnalysisBundle(phase=parsed, insights=dict(self.insights))


class ScriptedTransformer:
    """Transformer that plays back a script of outcomes, one per call.

    Script items are exceptions (raised), dicts (returned raw) or
    ``TransformationOutput`` instances.  Once the script runs out the last
    item repeats.
    """

    def __init__(self, *script: Any) -> None:
        self.script = list(script) or [make_output()]
        self.calls = 0

    async def transform(self, bundle: PhaseAnalysisBundle, target_phase: Phase) -> Any:
        item = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def stub_gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def output_factory() -> Callable[..., TransformationOutput]:
    return make_output


@pytest.fixture
def scripted_transformer() -> type[ScriptedTransformer]:
    return ScriptedTransformer


@pytest.fixture
def gates_for() -> Callable[..., dict[str, Any]]:
    return completed_gates
