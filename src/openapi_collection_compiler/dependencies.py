"""Endpoint dependency graph: which requests provide and require which variables."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .json_types import JSONValue
from .loader import SpecLoadError, load_spec
from .model_types import OperationSpec

logger = logging.getLogger(__name__)

PROVIDES_EXTENSION = "x-provides"
REQUIRES_EXTENSION = "x-requires"


class DependencyConfigError(RuntimeError):
    """Raised when a dependency configuration file is missing or malformed."""


class ExtractionStrategy(StrEnum):
    """How a provided variable is read back out of a response body."""

    ID = "id"
    ALIAS = "alias"
    LIST = "list"
    OPERATION = "operation"


@dataclass(frozen=True)
class DependencyEntry:
    """Variables one endpoint yields on success and expects to be bound beforehand."""

    provides: tuple[str, ...] = ()
    requires: tuple[str, ...] = ()

    def merged(self, other: DependencyEntry) -> DependencyEntry:
        """Union of both entries, keeping first-seen order."""
        return DependencyEntry(
            provides=_ordered_union(self.provides, other.provides),
            requires=_ordered_union(self.requires, other.requires),
        )

    @property
    def is_empty(self) -> bool:
        return not self.provides and not self.requires


EMPTY_ENTRY = DependencyEntry()


def endpoint_key(method: str, path: str) -> str:
    """Build the ``"METHOD /path"`` lookup key."""
    return f"{method.upper()} {path}"


def parse_endpoint_key(key: str) -> tuple[str, str]:
    """Split a ``"METHOD /path"`` key into upper-cased method and path.

    Raises:
        ValueError: When ``key`` does not have that shape.
    """
    method, _, path = key.strip().partition(" ")
    path = path.strip()
    if not method or not method.isalpha() or not path.startswith("/"):
        raise ValueError(f"expected 'METHOD /path', got {key!r}")
    return method.upper(), path


@dataclass(frozen=True)
class DependencyGraph:
    """Immutable lookup table from endpoint key to :class:`DependencyEntry`.

    Lookups are exact-string matches on the bracketed path; a missing key
    behaves as an empty entry.
    """

    entries: Mapping[str, DependencyEntry] = field(default_factory=dict)
    extractors: Mapping[str, ExtractionStrategy] = field(default_factory=dict)

    def lookup(self, method: str, path: str) -> DependencyEntry:
        """Return the entry for one endpoint, or an empty entry."""
        return self.entries.get(endpoint_key(method, path), EMPTY_ENTRY)

    def extraction_for(self, variable: str) -> ExtractionStrategy:
        """Return how ``variable`` is extracted from a response (top-level ``id`` by default)."""
        return self.extractors.get(variable, ExtractionStrategy.ID)

    def variables(self) -> tuple[str, ...]:
        """Every variable named by any entry, in first-seen order."""
        return collect_variables(self.entries)

    def with_entries(self, entries: Mapping[str, DependencyEntry]) -> DependencyGraph:
        """Return a copy where ``entries`` extend the existing ones key by key."""
        combined = dict(self.entries)
        for key, entry in entries.items():
            existing = combined.get(key)
            combined[key] = entry if existing is None else existing.merged(entry)
        return DependencyGraph(entries=combined, extractors=dict(self.extractors))

    def with_annotations(self, operations: Iterable[OperationSpec]) -> DependencyGraph:
        """Extend the graph with ``x-provides``/``x-requires`` operation extensions."""
        annotated: dict[str, DependencyEntry] = {}
        for operation in operations:
            entry = DependencyEntry(
                provides=_extension_names(operation.operation.get(PROVIDES_EXTENSION)),
                requires=_extension_names(operation.operation.get(REQUIRES_EXTENSION)),
            )
            if entry.is_empty:
                continue
            logger.debug("Dependency annotations on %s: %s", operation.key, entry)
            annotated[operation.key] = entry
        if not annotated:
            return self
        return self.with_entries(annotated)


def collect_variables(entries: Mapping[str, DependencyEntry]) -> tuple[str, ...]:
    """Return every ``provides``/``requires`` variable name, in first-seen order."""
    seen: dict[str, None] = {}
    for entry in entries.values():
        for variable in (*entry.provides, *entry.requires):
            seen.setdefault(variable, None)
    return tuple(seen)


class DependencyConfigEntry(BaseModel):
    """One ``"METHOD /path"`` entry of a dependency configuration file."""

    model_config = ConfigDict(extra="forbid")

    provides: list[str] = []
    requires: list[str] = []


class DependencyConfig(BaseModel):
    """Dependency configuration file contents."""

    model_config = ConfigDict(extra="forbid")

    dependencies: dict[str, DependencyConfigEntry]
    extractors: dict[str, ExtractionStrategy] = {}

    @field_validator("dependencies")
    @classmethod
    def _keys_are_endpoints(
        cls, value: dict[str, DependencyConfigEntry]
    ) -> dict[str, DependencyConfigEntry]:
        for key in value:
            parse_endpoint_key(key)
        return value

    def to_graph(self) -> DependencyGraph:
        """Convert into a :class:`DependencyGraph` (methods are upper-cased)."""
        entries: dict[str, DependencyEntry] = {}
        for key, entry in self.dependencies.items():
            entries[endpoint_key(*parse_endpoint_key(key))] = DependencyEntry(
                provides=_ordered_union(entry.provides, ()),
                requires=_ordered_union(entry.requires, ()),
            )
        return DependencyGraph(entries=entries, extractors=dict(self.extractors))


def load_dependency_config(path: Path) -> DependencyGraph:
    """Load a JSON or YAML dependency configuration file.

    Args:
        path (Path): Configuration file path.

    Returns:
        DependencyGraph: The configured dependency graph.
    """
    try:
        payload = load_spec(path)
    except SpecLoadError as exc:
        raise DependencyConfigError(f"Cannot load dependency configuration: {exc}") from exc

    try:
        config = DependencyConfig.model_validate(payload)
    except ValidationError as exc:
        raise DependencyConfigError(
            f"Invalid dependency configuration {path}: {exc.error_count()} issue(s)\n{exc}"
        ) from exc
    logger.info("Loaded %d dependency entries from %s", len(config.dependencies), path)
    return config.to_graph()


def _extension_names(raw: JSONValue) -> tuple[str, ...]:
    if isinstance(raw, str):
        return (raw,)
    if not isinstance(raw, list):
        return ()
    return _ordered_union((name for name in raw if isinstance(name, str) and name), ())


def _ordered_union(first: Iterable[str], second: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for name in (*first, *second):
        seen.setdefault(name, None)
    return tuple(seen)
