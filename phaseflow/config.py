"""Phaseflow engine configuration.

Typed settings for the transition engine.  Values are validated at
construction time and can be round-tripped through JSON or read from
environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from .models import TechStack


class EngineConfig(BaseModel):
    """Configuration for one ``PhaseTransitionEngine``.

    Instances are usually created once by the caller and passed to the
    engine, the state store and the analysis gateway.
    """

    project_root: Path = Field(default=Path("."))
    state_dir: str = Field(default=".phaseflow", description="State directory under project_root")
    project_type: str = Field(default="web_app")
    custom_tech_stack: Optional[TechStack] = Field(
        default=None, description="Entries overriding the project type's default stack"
    )

    enable_caching: bool = Field(default=True)
    transformation_timeout: float = Field(
        default=15.0, gt=0, description="Per-attempt transform timeout in seconds"
    )
    max_retries: int = Field(default=2, ge=1, description="Total transform attempts")
    cache_ttl: float = Field(default=1800.0, gt=0, description="Cache entry lifetime in seconds")
    cache_max_entries: int = Field(
        default=100, ge=1, description="Size above which expired entries are swept"
    )
    backoff_base: float = Field(default=1.0, ge=0, description="First retry delay in seconds")
    backoff_cap: float = Field(default=5.0, ge=0, description="Maximum retry delay in seconds")

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def state_path(self) -> Path:
        """Directory holding the workflow state documents."""
        return self.project_root / self.state_dir

    @property
    def deliverables_path(self) -> Path:
        """Root directory of the phase deliverable artifacts."""
        return self.state_path / "deliverables"

    def state_file(self, key: str) -> Path:
        """Path of the JSON document stored under logical *key*."""
        return self.state_path / f"{key}.json"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<state_path>/config.json``.

        Returns:
            The resolved path where the file was written.
        """
        target = path or (self.state_path / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "EngineConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build an ``EngineConfig`` from environment variables.

        Recognised variables (all optional):
            PHASEFLOW_PROJECT_ROOT, PHASEFLOW_PROJECT_TYPE,
            PHASEFLOW_ENABLE_CACHING, PHASEFLOW_TIMEOUT,
            PHASEFLOW_MAX_RETRIES, PHASEFLOW_CACHE_TTL.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("PHASEFLOW_PROJECT_ROOT"):
            kwargs["project_root"] = Path(os.environ["PHASEFLOW_PROJECT_ROOT"])
        if os.environ.get("PHASEFLOW_PROJECT_TYPE"):
            kwargs["project_type"] = os.environ["PHASEFLOW_PROJECT_TYPE"]
        if os.environ.get("PHASEFLOW_ENABLE_CACHING"):
            kwargs["enable_caching"] = os.environ["PHASEFLOW_ENABLE_CACHING"].strip().lower() in (
                "1", "true", "yes", "on",
            )
        if os.environ.get("PHASEFLOW_TIMEOUT"):
            kwargs["transformation_timeout"] = float(os.environ["PHASEFLOW_TIMEOUT"])
        if os.environ.get("PHASEFLOW_MAX_RETRIES"):
            kwargs["max_retries"] = int(os.environ["PHASEFLOW_MAX_RETRIES"])
        if os.environ.get("PHASEFLOW_CACHE_TTL"):
            kwargs["cache_ttl"] = float(os.environ["PHASEFLOW_CACHE_TTL"])
        return cls(**kwargs)

    def ensure_directories(self) -> None:
        """Create the state directory if it does not exist yet."""
        self.state_path.mkdir(parents=True, exist_ok=True)
