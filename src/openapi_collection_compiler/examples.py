"""Representative example values synthesized from schema nodes."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

from .heuristics import NO_HEURISTICS, GenerationContext, HeuristicSet
from .json_types import JSONValue, MutableJSONObject
from .loader import json_compatible
from .resolver import Resolver, ref_name
from .schema_utils import is_object_schema, merge_all_of_schema

logger = logging.getLogger(__name__)

MAX_DEPTH = 10
NIL_UUID = "00000000-0000-0000-0000-000000000000"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class _Context:
    url: str = ""
    excluded: frozenset[str] = frozenset()
    path: str = ""


@dataclass
class ExampleSynthesizer:
    """Produce a concrete JSON value for any schema node.

    Priority order: explicit ``example``/``examples``, then ``$ref`` resolution
    (through schema-name heuristics first), then type-based synthesis with
    property-name heuristics applied to object members. Recursion depth is
    bounded by ``max_depth``; past it, an empty object or array is returned.
    """

    resolver: Resolver
    heuristics: HeuristicSet = NO_HEURISTICS
    max_depth: int = MAX_DEPTH
    clock: Callable[[], datetime] = _utcnow
    warnings: list[str] = field(default_factory=list)

    def synthesize(
        self,
        schema: Any,
        depth: int = 0,
        *,
        url: str = "",
        excluded: frozenset[str] = frozenset(),
    ) -> JSONValue:
        """Return an example value for ``schema``.

        Args:
            schema (Any): Schema node, possibly a ``$ref``.
            depth (int): Current recursion depth.
            url (str): Request URL, made available to heuristics.
            excluded (frozenset[str]): Property names never emitted.

        Returns:
            JSONValue: Synthesized example.
        """
        return self._synthesize(schema, depth, _Context(url=url, excluded=excluded))

    def _synthesize(self, schema: Any, depth: int, context: _Context) -> JSONValue:
        if not isinstance(schema, dict):
            return None
        if depth > self.max_depth:
            return [] if schema.get("type") == "array" else {}

        found, explicit = explicit_example(schema)
        if found:
            return explicit

        ref = schema.get("$ref")
        if isinstance(ref, str):
            return self._synthesize_ref(ref, depth, context)

        if isinstance(schema.get("allOf"), list):
            merged = merge_all_of_schema(schema, resolve_item=self._resolve_all_of_item)
            return self._synthesize(merged, depth + 1, context)

        for combinator in ("oneOf", "anyOf"):
            options = schema.get(combinator)
            if isinstance(options, list) and options:
                return self._synthesize(options[0], depth + 1, context)

        enum = schema.get("enum")
        if isinstance(enum, list) and enum:
            return enum[0]

        schema_type = _primary_type(schema)
        if schema_type == "object" or (schema_type is None and is_object_schema(schema)):
            return self._synthesize_object(schema, depth, context)
        if schema_type == "array":
            return self._synthesize_array(schema, depth, context)
        if schema_type == "string":
            return self._synthesize_string(schema)
        if schema_type in ("number", "integer"):
            return 0
        if schema_type == "boolean":
            return False
        return None

    def _synthesize_ref(self, ref: str, depth: int, context: _Context) -> JSONValue:
        name = ref_name(ref)
        rule = self.heuristics.for_schema(name)
        if rule is not None:
            return rule.generate(
                GenerationContext(name=name, schema={"$ref": ref}, url=context.url, path=context.path)
            )

        target = self.resolver.lookup_schema(ref)
        if target is None:
            message = f"Unresolvable schema reference: {ref}"
            if message not in self.warnings:
                self.warnings.append(message)
                logger.warning(message)
            return None
        return self._synthesize(target, depth + 1, context)

    def _synthesize_object(self, schema: MutableJSONObject, depth: int, context: _Context) -> JSONValue:
        example: MutableJSONObject = {}
        properties = schema.get("properties")
        if isinstance(properties, dict):
            for name, property_schema in properties.items():
                if not isinstance(name, str) or name in context.excluded:
                    continue
                child_context = _Context(
                    url=context.url,
                    excluded=context.excluded,
                    path=f"{context.path}.{name}" if context.path else name,
                )
                value = self._synthesize_property(name, property_schema, depth + 1, child_context)
                if value == {}:
                    continue
                example[name] = value

        if not example and not properties:
            example.update(self._additional_properties_example(schema, depth, context))
        return example

    def _synthesize_property(
        self,
        name: str,
        schema: Any,
        depth: int,
        context: _Context,
    ) -> JSONValue:
        if not isinstance(schema, dict):
            return None
        found, explicit = explicit_example(schema)
        if found:
            return explicit
        rule = self.heuristics.for_property(name, schema)
        if rule is not None:
            return rule.generate(
                GenerationContext(name=name, schema=schema, url=context.url, path=context.path)
            )
        return self._synthesize(schema, depth, context)

    def _additional_properties_example(
        self,
        schema: MutableJSONObject,
        depth: int,
        context: _Context,
    ) -> MutableJSONObject:
        additional = schema.get("additionalProperties")
        if additional is True or additional == {}:
            return {"key": "value"}
        if isinstance(additional, dict):
            value = self._synthesize(additional, depth + 1, context)
            return {"key1": value, "key2": value}
        return {}

    def _synthesize_array(self, schema: MutableJSONObject, depth: int, context: _Context) -> JSONValue:
        items = schema.get("items")
        if not isinstance(items, dict):
            return []
        item = self._synthesize(items, depth + 1, context)
        if item == {}:
            return []
        return [item]

    def _synthesize_string(self, schema: MutableJSONObject) -> JSONValue:
        schema_format = schema.get("format")
        if schema_format == "uuid":
            return NIL_UUID
        if schema_format == "date-time":
            return self.clock().isoformat(timespec="milliseconds").replace("+00:00", "Z")
        if schema_format == "date":
            return self.clock().date().isoformat()
        return "string"

    def _resolve_all_of_item(self, item: MutableJSONObject) -> Optional[MutableJSONObject]:
        ref = item.get("$ref")
        if not isinstance(ref, str):
            return item
        target = self.resolver.lookup_schema(ref)
        if target is None:
            message = f"Unresolvable schema reference: {ref}"
            if message not in self.warnings:
                self.warnings.append(message)
                logger.warning(message)
            return None
        return dict(target)


def explicit_example(schema: MutableJSONObject) -> tuple[bool, JSONValue]:
    """Return ``(True, value)`` when the node declares an example.

    A string example that looks like serialized JSON is parsed, falling back
    to the raw string when it does not parse. Dates become ISO 8601 strings.
    """
    if "example" in schema:
        value = schema["example"]
    else:
        examples = schema.get("examples")
        if not isinstance(examples, list) or not examples:
            return False, None
        value = examples[0]
    return True, _maybe_parse_json(json_compatible(value))


def _maybe_parse_json(value: JSONValue) -> JSONValue:
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if not stripped or stripped[0] not in "{[":
        return value
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        return value


def _primary_type(schema: MutableJSONObject) -> Optional[str]:
    schema_type = schema.get("type")
    if isinstance(schema_type, str):
        return schema_type
    if isinstance(schema_type, list):
        for member in schema_type:
            if isinstance(member, str) and member != "null":
                return member
    return None
