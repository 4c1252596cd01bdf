"""Declarative heuristic rules.

Transformers describe their choices as ordered tables of ``Rule`` rows
(keywords and/or a minimum count -> value) and evaluate them with
``evaluate``.  Tech-stack selection works the same way with ``StackRule``
rows driven by ``StackSignals``.  Everything here is deterministic.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from .models import TechStack
from .project_types import get_project_type_config, validate_tech_stack
from .utils import print_warning

# ---------------------------------------------------------------------------
# Generic rules
# ---------------------------------------------------------------------------


class Rule(BaseModel):
    """One row of a heuristic table.

    A rule matches when the text contains any of its ``keywords`` (whole
    words, case-insensitive) and the count is at least ``min_count``.  A
    rule with neither condition always matches.
    """

    model_config = ConfigDict(frozen=True)

    value: Any
    keywords: tuple[str, ...] = ()
    min_count: Optional[int] = None

    def matches(self, text: str, count: int = 0) -> bool:
        if self.min_count is not None and count < self.min_count:
            return False
        if self.keywords and not any(contains_keyword(text, kw) for kw in self.keywords):
            return False
        return True


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![a-z0-9]){re.escape(keyword.lower())}(?![a-z0-9])")


def contains_keyword(text: str, keyword: str) -> bool:
    """Whole-word, case-insensitive containment."""
    return _keyword_pattern(keyword).search(text.lower()) is not None


def mentions(text: str, keywords: Iterable[str]) -> bool:
    """True when *text* contains any of *keywords*."""
    return any(contains_keyword(text, kw) for kw in keywords)


def evaluate(rules: Sequence[Rule], text: str = "", count: int = 0) -> list[Any]:
    """Return the values of every matching rule, in table order."""
    return [rule.value for rule in rules if rule.matches(text, count)]


def first_match(rules: Sequence[Rule], text: str = "", count: int = 0, default: Any = None) -> Any:
    """Value of the first matching rule, or *default*."""
    matched = evaluate(rules, text, count)
    return matched[0] if matched else default


def collect(rules: Sequence[Rule], text: str = "", count: int = 0) -> list[Any]:
    """Concatenate the (sequence) values of every matching rule."""
    items: list[Any] = []
    for value in evaluate(rules, text, count):
        if isinstance(value, (list, tuple)):
            items.extend(value)
        else:
            items.append(value)
    return items


def text_of(items: Iterable[Any], *fields: str) -> str:
    """Join strings, or the named fields of dict items, into one searchable string."""
    parts: list[str] = []
    for item in items:
        if isinstance(item, dict):
            parts.extend(str(item.get(name, "")) for name in fields or item.keys())
        else:
            parts.append(str(item))
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Shared keyword sets
# ---------------------------------------------------------------------------

REALTIME_KEYWORDS = ("real-time", "realtime", "live", "instant", "instantly")
AI_KEYWORDS = ("ai", "machine learning", "ml", "intelligent", "recommendation", "recommendations")
AUTH_KEYWORDS = (
    "auth", "authentication", "authenticate", "authorization", "login", "log in", "sign in",
)


# ---------------------------------------------------------------------------
# Tech stack
# ---------------------------------------------------------------------------


class StackSignals(BaseModel):
    """Requirement signals that steer the tech-stack choice."""

    scalability: str = "medium"
    realtime: bool = False
    ai: bool = False


class StackRule(BaseModel):
    """When ``signals.<signal> == equals``, prefer ``choice`` for ``category``.

    A ``choice`` of ``None`` picks the first technology available for the
    category.  A rule only applies when its choice is available for the
    project type.
    """

    model_config = ConfigDict(frozen=True)

    signal: str
    equals: Any
    category: str
    choice: Optional[str] = None


STACK_RULES: tuple[StackRule, ...] = (
    StackRule(signal="scalability", equals="high", category="deployment", choice="AWS"),
    StackRule(signal="scalability", equals="high", category="database", choice="PostgreSQL"),
    StackRule(signal="realtime", equals=True, category="backend", choice="Node.js/Express"),
    StackRule(signal="ai", equals=True, category="vector_db"),
    StackRule(signal="ai", equals=True, category="ai_framework"),
)


def generate_tech_stack(
    project_type: Optional[str],
    signals: StackSignals,
    custom_stack: Optional[TechStack] = None,
    rules: Sequence[StackRule] = STACK_RULES,
) -> TechStack:
    """Choose a tech stack for *project_type* from requirement *signals*.

    Starts from the project type's default stack overlaid with
    *custom_stack*, applies every matching rule whose choice is available,
    and falls back to the starting stack if the result does not validate.
    """
    config = get_project_type_config(project_type)
    options = config.available_options

    base = dict(config.default_tech_stack)
    if custom_stack is not None:
        base.update(custom_stack.as_dict())
    if not validate_tech_stack(project_type, base).is_valid:
        print_warning("Custom tech stack is not valid for this project type, using defaults")
        base = dict(config.default_tech_stack)

    stack = dict(base)
    for rule in rules:
        if getattr(signals, rule.signal, None) != rule.equals:
            continue
        available = options.get(rule.category) or []
        if rule.choice is None:
            if available:
                stack[rule.category] = available[0]
        elif rule.choice in available:
            stack[rule.category] = rule.choice

    validation = validate_tech_stack(project_type, stack)
    if not validation.is_valid:
        print_warning(f"Generated tech stack validation failed: {'; '.join(validation.errors)}")
        return TechStack(**base)
    return TechStack(**stack)
