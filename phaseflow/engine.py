"""Phase transition engine.

Orchestrates one transition through the stages

    Validating -> Analyzing -> Transforming -> ContextBuilding -> Persisting -> Done

with any stage able to end in ``Failed``.  The engine owns its cache and
metrics; the state store, analysis gateway, transformer registry and
context builder are injected so they can be replaced in tests.

Usage::

    engine = PhaseTransitionEngine(EngineConfig(project_root=Path(".")))
    result = await engine.execute_transition("concept", "requirements")
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .analysis import DeliverableAnalysisGateway
from .cache import TransformationCache, cache_key
from .config import EngineConfig
from .context_builder import EnhancedContextBuilder
from .errors import NoTransformerError, PhaseflowError, TransitionValidationError
from .models import (
    EngineMetrics,
    PhaseAnalysisBundle,
    TransformationOutput,
    TransitionResult,
    ValidationResult,
)
from .phases import Phase
from .retry import RetryExecutor, RetryPolicy
from .state import QUALITY_GATES, TRANSFORMATIONS, JsonStateStore, StateStore
from .transformers import Transformer, TransformerRegistry, validate_output
from .utils import format_duration, print_error, print_info, print_success, utc_now
from .validator import TransitionValidator


class TransitionStage(str, Enum):
    """Lifecycle of a single ``execute_transition`` call."""

    IDLE = "idle"
    VALIDATING = "validating"
    ANALYZING = "analyzing"
    TRANSFORMING = "transforming"
    CONTEXT_BUILDING = "context_building"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


def _token(phase: Phase | str) -> str:
    parsed = Phase.parse(phase)
    return parsed.value if parsed is not None else str(phase)


class PhaseTransitionEngine:
    """Validates, transforms and records transitions between phases.

    Args:
        config: Engine settings. Defaults to ``EngineConfig()``.
        store: State documents. Defaults to a ``JsonStateStore`` under
            ``config.state_path``.
        gateway: Deliverable analysis. Defaults to a gateway over
            ``config.deliverables_path``.
        registry: Transformers by source phase. Defaults to the built-in
            transformers for ``config.project_type``.
        cache: Result cache. Defaults to one built from the config TTL.
        validator: Transition legality checks.
        context_builder: Enhanced context builder.
        sleep: Awaitable used for retry backoff.
        clock: Monotonic time source in seconds, shared with the default cache.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[StateStore] = None,
        gateway: Optional[DeliverableAnalysisGateway] = None,
        registry: Optional[TransformerRegistry] = None,
        cache: Optional[TransformationCache] = None,
        validator: Optional[TransitionValidator] = None,
        context_builder: Optional[EnhancedContextBuilder] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or EngineConfig()
        self.store: StateStore = store if store is not None else JsonStateStore(self.config.state_path)
        self.gateway = gateway if gateway is not None else DeliverableAnalysisGateway(self.config.deliverables_path)
        self.registry = registry if registry is not None else TransformerRegistry.for_project(
            self.config.project_type, self.config.custom_tech_stack
        )
        self.cache = cache if cache is not None else TransformationCache(
            ttl=self.config.cache_ttl,
            max_entries=self.config.cache_max_entries,
            clock=clock,
        )
        self.validator = validator or TransitionValidator()
        self.context_builder = context_builder or EnhancedContextBuilder(self.config.project_type)
        self.retry_policy = RetryPolicy(
            max_attempts=self.config.max_retries,
            timeout=self.config.transformation_timeout,
            backoff_base=self.config.backoff_base,
            backoff_cap=self.config.backoff_cap,
        )
        self._sleep = sleep
        self._clock = clock

        self.stage = TransitionStage.IDLE
        self.last_attempts = 0
        self._metrics = EngineMetrics()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute_transition(self, from_phase: Phase | str, to_phase: Phase | str) -> TransitionResult:
        """Run the transition ``from_phase -> to_phase``.

        Never raises for engine errors: validation failures, exhausted
        retries, persistence and context errors all come back as a
        ``TransitionResult`` with ``success=False``.
        """
        source, target = _token(from_phase), _token(to_phase)
        key = cache_key(source, target, self.config.project_type)

        if self.config.enable_caching:
            cached = self.cache.get(key)
            if cached is not None:
                self._metrics.cache_hits += 1
                self.stage = TransitionStage.DONE
                print_info(f"Using cached transformation: {source} -> {target}")
                return cached
            self._metrics.cache_misses += 1

        print_info(f"Executing phase transition: {source} -> {target}")
        started = self._clock()
        try:
            result = await self._run(source, target)
        except TransitionValidationError as exc:
            self.stage = TransitionStage.FAILED
            print_error(exc.message)
            return TransitionResult.failure(source, target, exc.message, exc.code)
        except PhaseflowError as exc:
            self.stage = TransitionStage.FAILED
            print_error(f"Phase transition failed: {exc.message}")
            return TransitionResult.failure(source, target, exc.message, exc.code)
        except Exception as exc:
            self.stage = TransitionStage.FAILED
            print_error(f"Phase transition failed: {exc}")
            return TransitionResult.failure(source, target, str(exc) or type(exc).__name__, "UnexpectedError")

        if self.config.enable_caching:
            self.cache.set(key, result)
        elapsed = self._clock() - started
        self._record_execution(elapsed)
        print_success(f"Phase transition completed: {source} -> {target} ({format_duration(elapsed)})")
        return result

    async def validate_transition(self, from_phase: Phase | str, to_phase: Phase | str) -> ValidationResult:
        """Check the transition against the persisted quality gates."""
        gates = await self.store.read_state(QUALITY_GATES)
        return self.validator.validate(_token(from_phase), _token(to_phase), gates)

    async def get_transformation_history(self) -> dict[str, Any]:
        """The persisted transformation log, keyed ``<from>_to_<to>``."""
        return await self.store.read_state(TRANSFORMATIONS)

    def get_metrics(self) -> EngineMetrics:
        lookups = self._metrics.cache_hits + self._metrics.cache_misses
        return self._metrics.model_copy(update={
            "cache_hit_rate": self._metrics.cache_hits / lookups if lookups else 0.0,
            "cache_size": len(self.cache),
        })

    def reset(self) -> None:
        """Clear the cache and every metric counter."""
        self.cache.clear()
        self._metrics = EngineMetrics()
        self.stage = TransitionStage.IDLE
        self.last_attempts = 0

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run(self, source: str, target: str) -> TransitionResult:
        self.stage = TransitionStage.VALIDATING
        gates = await self.store.read_state(QUALITY_GATES)
        self.validator.check(source, target, gates)
        source_phase = Phase(source)
        target_phase = Phase(target)
        transformer = self.registry.get(source_phase)

        self.stage = TransitionStage.ANALYZING
        bundle = await self.gateway.analyze_phase(source_phase)

        self.stage = TransitionStage.TRANSFORMING
        executor = RetryExecutor(
            self.retry_policy,
            sleep=self._sleep,
            fatal=(NoTransformerError,),
            label=f"Transformation {source} -> {target}",
        )
        try:
            transformation = await executor.run(lambda: self._transform(transformer, bundle, target_phase))
        finally:
            self.last_attempts = executor.attempts

        self.stage = TransitionStage.CONTEXT_BUILDING
        context = self.context_builder.build(transformation, target_phase)

        self.stage = TransitionStage.PERSISTING
        await self._persist(source, target, transformation)

        self.stage = TransitionStage.DONE
        return TransitionResult(
            success=True,
            from_phase=source,
            to_phase=target,
            transformation=transformation,
            enhanced_context=context,
            deliverable_analysis=bundle,
        )

    async def _transform(
        self, transformer: Transformer, bundle: PhaseAnalysisBundle, target: Phase
    ) -> TransformationOutput:
        output = await transformer.transform(bundle, target)
        return validate_output(output)

    async def _persist(self, source: str, target: str, transformation: TransformationOutput) -> None:
        log = await self.store.read_state(TRANSFORMATIONS)
        log[f"{source}_to_{target}"] = {**transformation.to_document(), "savedAt": utc_now()}
        await self.store.write_state(TRANSFORMATIONS, log)
        print_success(f"Transformation results saved: {source} -> {target}")

    def _record_execution(self, elapsed: float) -> None:
        metrics = self._metrics
        metrics.transformations_executed += 1
        count = metrics.transformations_executed
        elapsed_ms = elapsed * 1000
        metrics.average_execution_time += (elapsed_ms - metrics.average_execution_time) / count
