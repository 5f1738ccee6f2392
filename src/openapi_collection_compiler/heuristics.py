"""Pluggable example-synthesis strategies.

A :class:`HeuristicSet` maps semantic property names and schema names to
example generators. The synthesizer consults it before falling back to plain
type-based defaults, which keeps the synthesizer itself domain neutral.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Optional, TypeAlias

from .json_types import JSONObject, JSONValue

Generator: TypeAlias = Callable[["GenerationContext"], JSONValue]
NameMatcher: TypeAlias = Callable[[str], bool]


@dataclass(frozen=True)
class GenerationContext:
    """Information handed to a generator."""

    name: str
    schema: JSONObject
    url: str = ""
    path: str = ""


@dataclass(frozen=True)
class PropertyRule:
    """Generate a property value from its name (and optionally its declared type)."""

    label: str
    matches: NameMatcher
    generate: Generator
    types: Optional[frozenset[str]] = None

    def applies_to(self, name: str, schema: JSONObject) -> bool:
        """Return whether the rule handles this property."""
        if not self.matches(name):
            return False
        if self.types is None:
            return True
        return _declared_type(schema) in self.types


@dataclass(frozen=True)
class SchemaRule:
    """Generate a value for every reference to a named schema."""

    label: str
    matches: NameMatcher
    generate: Generator


@dataclass(frozen=True)
class HeuristicSet:
    """An ordered, immutable collection of synthesis rules."""

    property_rules: tuple[PropertyRule, ...] = ()
    schema_rules: tuple[SchemaRule, ...] = ()
    excluded_body_properties: frozenset[str] = field(default_factory=frozenset)

    def for_property(self, name: str, schema: JSONObject) -> Optional[PropertyRule]:
        """Return the first property rule matching ``name``."""
        for rule in self.property_rules:
            if rule.applies_to(name, schema):
                return rule
        return None

    def for_schema(self, schema_name: str) -> Optional[SchemaRule]:
        """Return the first schema rule matching ``schema_name``."""
        for rule in self.schema_rules:
            if rule.matches(schema_name):
                return rule
        return None

    def extended(
        self,
        *,
        property_rules: Iterable[PropertyRule] = (),
        schema_rules: Iterable[SchemaRule] = (),
    ) -> HeuristicSet:
        """Return a copy with extra rules taking precedence over existing ones."""
        return HeuristicSet(
            property_rules=(*property_rules, *self.property_rules),
            schema_rules=(*schema_rules, *self.schema_rules),
            excluded_body_properties=self.excluded_body_properties,
        )


NO_HEURISTICS = HeuristicSet()


def name_equals(*names: str) -> NameMatcher:
    """Match property names case-insensitively against a fixed set."""
    wanted = frozenset(name.lower() for name in names)
    return lambda name: name.lower() in wanted


def name_contains(*fragments: str) -> NameMatcher:
    """Match property names containing any fragment, case-insensitively."""
    lowered = tuple(fragment.lower() for fragment in fragments)
    return lambda name: any(fragment in name.lower() for fragment in lowered)


def name_endswith(*suffixes: str) -> NameMatcher:
    """Match property names ending with any suffix, case-insensitively."""
    lowered = tuple(suffix.lower() for suffix in suffixes)
    return lambda name: name.lower().endswith(lowered)


def constant(value: JSONValue) -> Generator:
    """Return a generator that always yields a fresh copy of ``value``."""
    return lambda _context: deepcopy(value)


def _declared_type(schema: JSONObject) -> Optional[str]:
    schema_type = schema.get("type")
    if isinstance(schema_type, str):
        return schema_type
    if isinstance(schema_type, list):
        for member in schema_type:
            if isinstance(member, str) and member != "null":
                return member
    if "$ref" in schema:
        return "$ref"
    return None
