"""Workflow state helpers.

Caller-side operations over the persisted workflow documents: setting up
a new project, marking deliverables done, checking phase completion and
advancing to the next phase.  ``advance_phase`` falls back to a basic
status-only advance when the transition engine fails for a reason other
than an illegal request.
"""

from __future__ import annotations

from typing import Any

from .engine import PhaseTransitionEngine
from .errors import (
    IllegalTransitionError,
    IncompleteDeliverablesError,
    UnknownPhaseError,
)
from .models import (
    AdvanceResult,
    GateStatus,
    PhaseCompletion,
    QualityGateState,
    WorkflowState,
)
from .phases import PHASE_CATALOG, Phase, get_phase_definition
from .state import CURRENT_PHASE, PROJECT_PHASES, QUALITY_GATES, StateStore
from .utils import print_info, print_success, print_warning, utc_now

_VALIDATION_CODES = frozenset(
    cls.code for cls in (UnknownPhaseError, IllegalTransitionError, IncompleteDeliverablesError)
)


def _phase_name(phase: Phase) -> str:
    definition = get_phase_definition(phase)
    return definition.name if definition else phase.value.title()


def _require_phase(phase: Phase | str) -> Phase:
    parsed = Phase.parse(phase)
    if parsed is None or parsed not in PHASE_CATALOG:
        raise UnknownPhaseError(str(phase))
    return parsed


# ---------------------------------------------------------------------------
# Reading and initialising state
# ---------------------------------------------------------------------------


async def initialize_project_state(store: StateStore, project_type: str = "web_app") -> WorkflowState:
    """Write the initial workflow documents for a new project.

    Every phase gets a quality gate listing its required deliverables with
    nothing completed; the project starts in ``concept``.
    """
    now = utc_now()
    phases: dict[str, dict[str, Any]] = {
        phase.value: {"status": "active", "startedAt": now} if phase is Phase.CONCEPT else {"status": "pending"}
        for phase in PHASE_CATALOG
    }
    gates = {
        phase.value: QualityGateState(required=list(definition.required_deliverables)).to_document()
        for phase, definition in PHASE_CATALOG.items()
    }
    current = {
        "phase": Phase.CONCEPT.value,
        "role": None,
        "currentTask": None,
        "progress": 0,
        "startedAt": now,
    }

    await store.write_state(
        PROJECT_PHASES,
        {"current": Phase.CONCEPT.value, "projectType": project_type, "phases": phases},
    )
    await store.write_state(QUALITY_GATES, gates)
    await store.write_state(CURRENT_PHASE, current)
    print_success(f"Initialized {project_type} project in phase {Phase.CONCEPT.value}")
    return await get_workflow_state(store)


async def get_workflow_state(store: StateStore) -> WorkflowState:
    phases = await store.read_state(PROJECT_PHASES)
    gates = await store.read_state(QUALITY_GATES)
    current = await store.read_state(CURRENT_PHASE)
    return WorkflowState(
        current_phase=current.get("phase") or phases.get("current") or Phase.CONCEPT.value,
        phases=phases.get("phases") or {},
        quality_gates={key: QualityGateState.model_validate(value) for key, value in gates.items()},
        current=current,
    )


async def check_phase_completion(store: StateStore, phase: Phase | str) -> PhaseCompletion:
    """Compare the completed deliverables of *phase* with its required ones.

    Raises:
        UnknownPhaseError: If *phase* is not a working phase.
    """
    parsed = _require_phase(phase)
    definition = PHASE_CATALOG[parsed]
    gate = (await store.read_state(QUALITY_GATES)).get(parsed.value) or {}
    completed = list(gate.get("completed") or [])
    missing = [name for name in definition.required_deliverables if name not in completed]
    return PhaseCompletion(
        phase=parsed.value,
        is_complete=not missing,
        required=list(definition.required_deliverables),
        completed=completed,
        missing=missing,
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def mark_deliverable_complete(
    store: StateStore, deliverable: str, phase: Phase | str | None = None
) -> QualityGateState:
    """Record *deliverable* as done for *phase* (default: the current phase).

    Marking the same deliverable twice is a no-op.  The gate status moves
    to ``completed`` once every required deliverable is present.
    """
    if phase is None:
        current = await store.read_state(CURRENT_PHASE)
        phase = current.get("phase") or Phase.CONCEPT.value
    parsed = _require_phase(phase)
    definition = PHASE_CATALOG[parsed]

    gates = await store.read_state(QUALITY_GATES)
    gate = dict(gates.get(parsed.value) or {})
    required = list(gate.get("required") or definition.required_deliverables)
    completed = list(gate.get("completed") or [])
    if deliverable not in completed:
        completed.append(deliverable)

    done = all(name in completed for name in required)
    state = QualityGateState(
        required=required,
        completed=completed,
        status=GateStatus.COMPLETED if done else GateStatus.IN_PROGRESS,
    )
    gates[parsed.value] = {**gate, **state.to_document(), "lastUpdated": utc_now()}
    await store.write_state(QUALITY_GATES, gates)
    print_info(f"Deliverable completed: {deliverable} ({parsed.value})")
    return state


async def _write_advance(
    store: StateStore,
    current: Phase,
    target: Phase,
    completed_extra: dict[str, Any],
    started_extra: dict[str, Any],
) -> None:
    now = utc_now()
    document = await store.read_state(PROJECT_PHASES)
    phases = dict(document.get("phases") or {})
    phases[current.value] = {
        **phases.get(current.value, {}),
        "status": "completed",
        "completedAt": now,
        **completed_extra,
    }
    phases[target.value] = {
        **phases.get(target.value, {}),
        "status": "active",
        "startedAt": now,
        **started_extra,
    }
    await store.write_state(PROJECT_PHASES, {**document, "phases": phases, "current": target.value})
    await store.write_state(CURRENT_PHASE, {
        "phase": target.value,
        "role": None,
        "currentTask": None,
        "progress": 0,
        "startedAt": now,
        **started_extra,
    })


async def advance_phase(store: StateStore, engine: PhaseTransitionEngine) -> AdvanceResult:
    """Move the workflow from its current phase to the next one.

    Illegal requests (unknown phase, wrong successor, incomplete
    deliverables) come back unchanged as a failed result.  Any other engine
    failure falls back to a basic advance without enhanced context, with
    ``warning`` set.
    """
    state = await get_workflow_state(store)
    if Phase.parse(state.current_phase) is Phase.COMPLETE:
        return AdvanceResult(
            success=False,
            current_phase=Phase.COMPLETE.value,
            error="Project is already complete",
        )
    current = _require_phase(state.current_phase)
    target = PHASE_CATALOG[current].next_phase

    if target is Phase.COMPLETE:
        validation = await engine.validate_transition(current, target)
        if not validation.is_valid:
            return AdvanceResult(
                success=False,
                current_phase=current.value,
                next_phase=target.value,
                error=f"Phase transition failed: {validation.error}",
            )
        await _write_advance(store, current, target, {}, {"completedAt": utc_now()})
        print_success("Project marked as complete")
        return AdvanceResult(
            success=True,
            message="Project marked as complete",
            current_phase=current.value,
            next_phase=target.value,
        )

    result = await engine.execute_transition(current, target)
    if result.success:
        context = result.enhanced_context.to_document() if result.enhanced_context else None
        await _write_advance(
            store,
            current,
            target,
            {"transformation": result.transformation.to_document()},
            {"enhancedContext": context} if context else {},
        )
        print_success(f"Advanced to {_phase_name(target)} phase with data transformation")
        return AdvanceResult(
            success=True,
            message=f"Advanced to {_phase_name(target)} phase with intelligent data transformation",
            current_phase=current.value,
            next_phase=target.value,
            transformation=result.transformation,
            enhanced_context=result.enhanced_context,
        )

    if result.error_code in _VALIDATION_CODES:
        return AdvanceResult(
            success=False,
            current_phase=current.value,
            next_phase=target.value,
            error=f"Phase transition failed: {result.error}",
        )

    print_warning(f"Phase transition engine failed ({result.error}); falling back to basic phase advancement")
    await _write_advance(store, current, target, {}, {})
    return AdvanceResult(
        success=True,
        message=f"Advanced to {_phase_name(target)} phase (basic mode)",
        current_phase=current.value,
        next_phase=target.value,
        warning="Phase transition engine failed, used basic advancement",
        error=result.error,
    )
