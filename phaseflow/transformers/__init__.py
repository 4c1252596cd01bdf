"""Phase-pair transformers and the registry that selects them."""

from __future__ import annotations

from typing import Optional

from ..errors import NoTransformerError
from ..models import TechStack
from ..phases import Phase
from .architecture_implementation import ArchitectureToImplementationTransformer
from .base import BaseTransformer, Transformer, extract_common_insights, validate_output
from .concept import ConceptToRequirementsTransformer
from .design_architecture import DesignToArchitectureTransformer
from .implementation_deployment import ImplementationToDeploymentTransformer
from .requirements_design import RequirementsToDesignTransformer

DEFAULT_TRANSFORMERS: dict[Phase, type[BaseTransformer]] = {
    cls.source_phase: cls
    for cls in (
        ConceptToRequirementsTransformer,
        RequirementsToDesignTransformer,
        DesignToArchitectureTransformer,
        ArchitectureToImplementationTransformer,
        ImplementationToDeploymentTransformer,
    )
}


class TransformerRegistry:
    """Maps a source phase to the transformer for its outgoing transition.

    Args:
        transformers: Ready-made transformers keyed by source phase.
    """

    def __init__(self, transformers: Optional[dict[Phase, Transformer]] = None) -> None:
        self._transformers: dict[Phase, Transformer] = dict(transformers or {})

    @classmethod
    def for_project(
        cls, project_type: str = "web_app", custom_tech_stack: Optional[TechStack] = None
    ) -> "TransformerRegistry":
        """Build the default registry for *project_type*."""
        return cls({
            phase: transformer_cls(project_type, custom_tech_stack)
            for phase, transformer_cls in DEFAULT_TRANSFORMERS.items()
        })

    def __contains__(self, phase: object) -> bool:
        parsed = Phase.parse(phase) if isinstance(phase, str) else None
        return parsed in self._transformers

    def __len__(self) -> int:
        return len(self._transformers)

    def register(self, phase: Phase | str, transformer: Transformer) -> None:
        parsed = Phase.parse(phase)
        if parsed is None:
            raise NoTransformerError(str(phase))
        self._transformers[parsed] = transformer

    def get(self, phase: Phase | str) -> Transformer:
        """Return the transformer for transitions out of *phase*.

        Raises:
            NoTransformerError: If no transformer is registered for *phase*.
        """
        parsed = Phase.parse(phase)
        transformer = self._transformers.get(parsed) if parsed is not None else None
        if transformer is None:
            raise NoTransformerError(phase.value if isinstance(phase, Phase) else str(phase))
        return transformer


__all__ = [
    "ArchitectureToImplementationTransformer",
    "BaseTransformer",
    "ConceptToRequirementsTransformer",
    "DEFAULT_TRANSFORMERS",
    "DesignToArchitectureTransformer",
    "ImplementationToDeploymentTransformer",
    "RequirementsToDesignTransformer",
    "Transformer",
    "TransformerRegistry",
    "extract_common_insights",
    "validate_output",
]
