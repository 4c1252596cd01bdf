"""Transition legality checks.

Pure functions of the phase catalog and a quality-gate snapshot; nothing
here reads or writes state.
"""

from __future__ import annotations

from typing import Any, Mapping

from .errors import (
    IllegalTransitionError,
    IncompleteDeliverablesError,
    TransitionValidationError,
    UnknownPhaseError,
)
from .models import QualityGateState, ValidationResult
from .phases import Phase, get_phase_definition

QualityGates = Mapping[str, "QualityGateState | Mapping[str, Any]"]


class TransitionValidator:
    """Decides whether ``from_phase -> to_phase`` may happen now.

    A phase may only move to its catalog successor or straight to
    ``complete``, and only once every required deliverable of the source
    phase is in its quality gate's completed set.
    """

    def check(self, from_phase: str, to_phase: str, quality_gates: QualityGates) -> None:
        """Raise the matching ``TransitionValidationError`` if the transition is illegal."""
        source = Phase.parse(from_phase)
        if source is None:
            raise UnknownPhaseError(str(from_phase), role="source phase")
        target = Phase.parse(to_phase)
        if target is None:
            raise UnknownPhaseError(str(to_phase), role="target phase")

        definition = get_phase_definition(source)
        if definition is None:
            # ``complete`` is terminal.
            raise IllegalTransitionError(source.value, target.value, expected="nothing")

        if target not in (definition.next_phase, Phase.COMPLETE):
            raise IllegalTransitionError(source.value, target.value, definition.next_phase.value)

        missing = self.missing_deliverables(source, quality_gates)
        if missing:
            raise IncompleteDeliverablesError(source.value, missing)

    def validate(self, from_phase: str, to_phase: str, quality_gates: QualityGates) -> ValidationResult:
        """Return a ``ValidationResult`` instead of raising."""
        try:
            self.check(from_phase, to_phase, quality_gates)
        except TransitionValidationError as exc:
            return ValidationResult(
                is_valid=False,
                error=exc.message,
                code=exc.code,
                missing=getattr(exc, "missing", []),
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def missing_deliverables(phase: Phase, quality_gates: QualityGates) -> list[str]:
        """Required deliverables of *phase* absent from its completed set."""
        definition = get_phase_definition(phase)
        if definition is None:
            return []
        raw = quality_gates.get(phase.value)
        if raw is None:
            completed: set[str] = set()
        elif isinstance(raw, QualityGateState):
            completed = set(raw.completed)
        else:
            completed = set(raw.get("completed") or [])
        return [name for name in definition.required_deliverables if name not in completed]
