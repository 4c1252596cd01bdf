"""Whole-document JSON state store.

The engine and the workflow helpers read and replace complete JSON
documents addressed by logical keys.  There is no locking: every write
replaces the whole file, so concurrent external writers can lose updates.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .errors import PersistenceError
from .utils import load_json, save_json

# Logical keys of the documents the engine works with.
PROJECT_PHASES = "project-phases"
QUALITY_GATES = "quality-gates"
CURRENT_PHASE = "current-phase"
TRANSFORMATIONS = "transformations"


@runtime_checkable
class StateStore(Protocol):
    """Read/replace access to JSON documents by logical key."""

    async def read_state(self, key: str) -> dict[str, Any]:
        """Return the document stored under *key*, or ``{}`` if there is none."""
        ...

    async def write_state(self, key: str, value: dict[str, Any]) -> None:
        """Replace the document stored under *key*."""
        ...


class JsonStateStore:
    """``StateStore`` backed by one ``<key>.json`` file per document.

    Args:
        root: Directory holding the documents; created on first write.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    async def read_state(self, key: str) -> dict[str, Any]:
        path = self.path_for(key)
        if not path.exists():
            return {}
        try:
            return load_json(path)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(key, str(exc), action="read") from exc

    async def write_state(self, key: str, value: dict[str, Any]) -> None:
        try:
            await save_json(value, self.path_for(key))
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(key, str(exc)) from exc


class MemoryStateStore:
    """In-process ``StateStore``; documents are deep-copied through JSON."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self._documents: dict[str, str] = {}
        for key, value in (documents or {}).items():
            self._documents[key] = json.dumps(value, default=str)

    async def read_state(self, key: str) -> dict[str, Any]:
        raw = self._documents.get(key)
        return json.loads(raw) if raw is not None else {}

    async def write_state(self, key: str, value: dict[str, Any]) -> None:
        try:
            self._documents[key] = json.dumps(value, default=str)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(key, str(exc)) from exc

    def keys(self) -> list[str]:
        return list(self._documents)
