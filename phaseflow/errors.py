"""Exception hierarchy for the Phaseflow transition engine.

``PhaseTransitionEngine.execute_transition`` converts every one of these
into a failed ``TransitionResult``; they only propagate out of the lower
level components (validator, retry executor, state store, builders).
"""

from __future__ import annotations

from typing import Iterable


class PhaseflowError(Exception):
    """Base class for every engine error."""

    code: str = "PhaseflowError"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Validation (never retried)
# ---------------------------------------------------------------------------

class TransitionValidationError(PhaseflowError):
    """A transition request that can never succeed as issued."""

    code = "TransitionValidation"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.code}: {message}")


class UnknownPhaseError(TransitionValidationError):
    code = "UnknownPhase"

    def __init__(self, phase: str, role: str = "phase") -> None:
        self.phase = phase
        super().__init__(f"Unknown {role}: {phase}")


class IllegalTransitionError(TransitionValidationError):
    code = "IllegalTransition"

    def __init__(self, from_phase: str, to_phase: str, expected: str) -> None:
        self.from_phase = from_phase
        self.to_phase = to_phase
        super().__init__(
            f"Invalid transition: {from_phase} should transition to {expected}, not {to_phase}"
        )


class IncompleteDeliverablesError(TransitionValidationError):
    code = "IncompleteDeliverables"

    def __init__(self, phase: str, missing: Iterable[str]) -> None:
        self.phase = phase
        self.missing = list(missing)
        super().__init__(
            f"Missing required deliverables: {', '.join(self.missing)}"
        )


# ---------------------------------------------------------------------------
# Transformation
# ---------------------------------------------------------------------------

class NoTransformerError(PhaseflowError):
    """No transformer is registered for the source phase."""

    code = "NoTransformer"

    def __init__(self, phase: str) -> None:
        self.phase = phase
        super().__init__(f"No transformer found for phase: {phase}")


class TransformationError(PhaseflowError):
    """A transformer failed or produced output that does not fit the schema."""

    code = "TransformationFailed"

    def __init__(self, message: str, issues: list[str] | None = None) -> None:
        self.issues = issues or []
        if self.issues:
            message = f"{message}: {'; '.join(self.issues)}"
        super().__init__(message)


class TimeoutExceededError(PhaseflowError):
    """A single attempt ran past its time bound and was cancelled."""

    code = "TimeoutExceeded"

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Transformation timeout after {timeout:g}s")


# ---------------------------------------------------------------------------
# Persistence & context
# ---------------------------------------------------------------------------

class PersistenceError(PhaseflowError):
    """Reading or writing a state document failed."""

    code = "PersistenceFailed"

    def __init__(self, key: str, reason: str, action: str = "write") -> None:
        self.key = key
        self.action = action
        super().__init__(f"Failed to {action} state '{key}': {reason}")


class ContextBuildError(PhaseflowError):
    """The enhanced context did not validate."""

    code = "ContextBuildFailed"

    def __init__(self, message: str, issues: list[str] | None = None) -> None:
        self.issues = issues or []
        if self.issues:
            message = f"{message}: {'; '.join(self.issues)}"
        super().__init__(message)
