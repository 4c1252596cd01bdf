"""Deliverable analysis gateway and the default rule-based analyzer.

``DeliverableAnalysisGateway.analyze_phase`` locates each required
deliverable of a phase on disk, hands it to a ``DeliverableAnalyzer`` and
folds the successful results into a ``PhaseAnalysisBundle``.  A missing
artifact or a failed analysis is reported and skipped; it never aborts the
bundle.

``MarkdownDeliverableAnalyzer`` is the analyzer used when none is injected.
It uses pure regex and markdown structure parsing, no AI calls.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from .errors import UnknownPhaseError
from .models import BundleMetadata, DeliverableAnalysis, PhaseAnalysisBundle
from .phases import PHASE_CATALOG, Phase, get_phase_definition
from .utils import print_error, print_warning, snake_case

# Artifact extensions tried for each deliverable, in order.
ARTIFACT_EXTENSIONS: tuple[str, ...] = (".md", ".json", ".txt")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_HEADER_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$", re.MULTILINE)
_BULLET_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(.+)$", re.MULTILINE)
_FIELD_PATTERN = re.compile(r"^\s*\**([A-Za-z][A-Za-z0-9 _-]{0,40}?)\**\s*:\s+(\S.*)$")
_MAX_KEY_FINDINGS = 5

_KNOWN_DELIVERABLES: tuple[str, ...] = tuple(
    name for definition in PHASE_CATALOG.values() for name in definition.required_deliverables
)


# ---------------------------------------------------------------------------
# Analyzer contract
# ---------------------------------------------------------------------------

@runtime_checkable
class DeliverableAnalyzer(Protocol):
    """Turns one artifact file into structured insights."""

    async def analyze_deliverable(self, path: Path, deliverable_name: str) -> DeliverableAnalysis:
        ...


class _Section:
    """A markdown section: header level, title and body text."""

    __slots__ = ("level", "title", "body")

    def __init__(self, level: int, title: str, body: str) -> None:
        self.level = level
        self.title = title
        self.body = body

    def __repr__(self) -> str:
        return f"_Section(level={self.level}, title={self.title!r})"


def _parse_sections(markdown: str) -> list[_Section]:
    """Split markdown into a flat list of sections by header.

    Text before the first header becomes a level-0 section with no title.
    """
    sections: list[_Section] = []
    current = _Section(0, "", "")
    body_lines: list[str] = []

    def _flush() -> None:
        nonlocal body_lines
        current.body = "\n".join(body_lines).strip()
        if current.level or current.body:
            sections.append(current)
        body_lines = []

    for line in markdown.splitlines():
        header_match = _HEADER_PATTERN.match(line)
        if header_match:
            _flush()
            current = _Section(len(header_match.group(1)), header_match.group(2).strip(), "")
        else:
            body_lines.append(line)

    _flush()
    return sections


def _get_bullets(body: str) -> list[str]:
    return [m.group(1).strip() for m in _BULLET_PATTERN.finditer(body)]


def _get_fields(body: str) -> dict[str, str]:
    """Collect ``Key: value`` lines that are not bullet items."""
    fields: dict[str, str] = {}
    for line in body.splitlines():
        if _BULLET_PATTERN.match(line):
            continue
        match = _FIELD_PATTERN.match(line)
        if match:
            fields[snake_case(match.group(1))] = match.group(2).strip().strip("*").strip()
    return fields


def _find_references(text: str, own_name: str) -> list[str]:
    """Deliverable names mentioned in *text*, excluding the artifact's own name."""
    lowered = text.lower()
    found = []
    for name in _KNOWN_DELIVERABLES:
        if name == own_name or name in found:
            continue
        if name in lowered or name.replace("_", " ") in lowered:
            found.append(name)
    return found


class MarkdownDeliverableAnalyzer:
    """Rule-based analyzer for ``.md``, ``.txt`` and ``.json`` artifacts.

    Markdown and text artifacts contribute one insight per heading
    (``"## User Needs"`` -> ``user_needs``) holding the bullet items beneath
    it, or the section text when it has no bullets.  ``Key: value`` lines
    become scalar insights.  JSON artifacts contribute their top-level
    object unchanged.
    """

    async def analyze_deliverable(self, path: Path, deliverable_name: str) -> DeliverableAnalysis:
        file_path = Path(path)
        try:
            content = await asyncio.to_thread(file_path.read_text, "utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return DeliverableAnalysis(
                deliverable=deliverable_name, success=False, path=str(file_path), error=str(exc)
            )

        if not content.strip():
            return DeliverableAnalysis(
                deliverable=deliverable_name,
                success=False,
                path=str(file_path),
                error=f"Deliverable is empty: {file_path.name}",
            )

        if file_path.suffix.lower() == ".json":
            return self._analyze_json(content, file_path, deliverable_name)
        return self._analyze_markdown(content, file_path, deliverable_name)

    def _analyze_json(self, content: str, path: Path, name: str) -> DeliverableAnalysis:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            return DeliverableAnalysis(
                deliverable=name, success=False, path=str(path), error=f"Invalid JSON: {exc}"
            )
        insights = data if isinstance(data, dict) else {"content": data}
        return DeliverableAnalysis(
            deliverable=name,
            success=True,
            path=str(path),
            insights=insights,
            relationships={"references": _find_references(content, name)},
            metadata={"format": "json", "size": len(content), "keys": len(insights)},
        )

    def _analyze_markdown(self, content: str, path: Path, name: str) -> DeliverableAnalysis:
        sections = _parse_sections(content)
        insights: dict[str, Any] = {}
        key_findings: list[str] = []
        title = ""

        for section in sections:
            if section.level == 1 and not title:
                title = section.title
            insights.update(_get_fields(section.body))
            bullets = _get_bullets(section.body)
            key_findings.extend(bullets[: _MAX_KEY_FINDINGS - len(key_findings)])
            key = snake_case(section.title)
            if not key or section.level == 1:
                continue
            if bullets:
                insights[key] = bullets
            elif section.body and key not in insights:
                insights[key] = section.body

        if key_findings:
            insights.setdefault("key_findings", key_findings)

        return DeliverableAnalysis(
            deliverable=name,
            success=True,
            path=str(path),
            insights=insights,
            relationships={"references": _find_references(content, name)},
            metadata={
                "format": path.suffix.lstrip(".").lower() or "text",
                "size": len(content),
                "title": title,
                "sections": len(sections),
            },
        )


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class DeliverableAnalysisGateway:
    """Locates and analyzes every required deliverable of a phase.

    Args:
        deliverables_root: Directory holding one sub-directory per phase
            (``research``, ``requirements``, ``wireframes``, ...).
        analyzer: Analyzer to delegate to. Defaults to
            ``MarkdownDeliverableAnalyzer``.
    """

    def __init__(
        self,
        deliverables_root: str | Path,
        analyzer: Optional[DeliverableAnalyzer] = None,
    ) -> None:
        self.deliverables_root = Path(deliverables_root)
        self.analyzer: DeliverableAnalyzer = analyzer or MarkdownDeliverableAnalyzer()

    def deliverable_directory(self, phase: Phase) -> Path:
        definition = get_phase_definition(phase)
        subdir = definition.deliverable_dir if definition else "research"
        return self.deliverables_root / subdir

    def find_artifact(self, phase: Phase, deliverable: str) -> Path | None:
        """Return the first existing ``<deliverable><ext>`` file, if any."""
        directory = self.deliverable_directory(phase)
        for ext in ARTIFACT_EXTENSIONS:
            candidate = directory / f"{deliverable}{ext}"
            if candidate.is_file():
                return candidate
        return None

    async def analyze_phase(self, phase: Phase | str) -> PhaseAnalysisBundle:
        """Analyze the required deliverables of *phase*.

        Raises:
            UnknownPhaseError: If *phase* has no catalog entry.
        """
        parsed = Phase.parse(phase)
        definition = get_phase_definition(phase)
        if parsed is None or definition is None:
            raise UnknownPhaseError(str(phase), role="source phase")

        bundle = PhaseAnalysisBundle(phase=parsed, metadata=BundleMetadata())

        for deliverable in definition.required_deliverables:
            artifact = await asyncio.to_thread(self.find_artifact, parsed, deliverable)
            if artifact is None:
                print_warning(f"Deliverable file not found: {deliverable}")
                continue

            try:
                result = await self.analyzer.analyze_deliverable(artifact, deliverable)
            except Exception as exc:
                print_error(f"Error analyzing {deliverable}: {exc}")
                continue

            bundle.metadata.total_deliverables += 1

            if not result.success:
                print_warning(f"Failed to analyze {deliverable}: {result.error}")
                continue

            bundle.deliverables[deliverable] = result
            bundle.insights[deliverable] = result.insights
            bundle.relationships[deliverable] = result.relationships
            bundle.metadata.successful_analyses += 1

        return bundle
