"""Naming helpers for collection items and environment variables."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable

from .model_types import OperationSpec

_SNAKE_SEGMENT_RE = re.compile(r"[_\-]+([a-zA-Z0-9])")
_PLACEHOLDER_RE = re.compile(r"^\{(?P<name>[^{}]+)\}$")
_TEMPLATE_VARIABLE_RE = re.compile(r"\{\{(?P<name>[^{}]+)\}\}")


def camel_case(raw: str) -> str:
    """Convert ``snake_case`` (or ``kebab-case``) text into ``camelCase``."""
    text = raw.strip("_-")
    if not text:
        return raw
    return _SNAKE_SEGMENT_RE.sub(lambda match: match.group(1).upper(), text)


def placeholder_name(segment: str) -> str | None:
    """Return the parameter name of a ``{name}`` path segment, else ``None``."""
    match = _PLACEHOLDER_RE.match(segment)
    if match is None:
        return None
    return match.group("name")


def template_variables(text: str) -> list[str]:
    """Return the ``{{variable}}`` names referenced by ``text`` in order of appearance."""
    return [match.group("name") for match in _TEMPLATE_VARIABLE_RE.finditer(text)]


def item_name(operation: OperationSpec) -> str:
    """Display name of a compiled request: the summary, else ``"METHOD /path"``."""
    summary = operation.operation.get("summary")
    if isinstance(summary, str) and summary.strip():
        return summary.strip()
    return operation.key


def duplicate_item_names(operations: Iterable[OperationSpec]) -> list[str]:
    """Return a warning for each item name shared by more than one operation."""
    counts = Counter(item_name(operation) for operation in operations)
    conflicting = sorted(name for name, count in counts.items() if count > 1)
    if not conflicting:
        return []
    joined = ", ".join(conflicting)
    return [f"Several operations share the same request name: {joined}"]
