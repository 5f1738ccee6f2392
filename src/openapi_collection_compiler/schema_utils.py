"""Shared helpers for JSON-Schema shape operations."""

from __future__ import annotations

from collections.abc import Callable
from copy import deepcopy
from typing import Optional

from .json_types import JSONObject, JSONValue, MutableJSONObject


def is_object_schema(schema: JSONObject) -> bool:
    """Return whether a schema behaves as an object schema.

    Args:
        schema (JSONObject): Schema node to inspect.

    Returns:
        bool: Whether object synthesis rules should apply.
    """
    schema_type = schema.get("type")
    if schema_type == "object":
        return True
    if schema_type is None and isinstance(schema.get("properties"), dict):
        return True
    if schema_type is None and "additionalProperties" in schema:
        return True
    return False


def merge_all_of_schema(
    schema: JSONObject,
    *,
    resolve_item: Optional[Callable[[MutableJSONObject], Optional[MutableJSONObject]]] = None,
    expanding: frozenset[str] = frozenset(),
) -> MutableJSONObject:
    """Flatten an ``allOf`` chain into one object schema.

    Children may be references; ``resolve_item`` turns them into concrete
    schemas (returning ``None`` drops the child). A reference already being
    expanded further up the chain is dropped, so reference cycles terminate.
    Properties of later children override earlier ones and the parent's own
    keys win over all children. ``required`` is the union of every level.

    Args:
        schema (JSONObject): Schema that may contain an ``allOf`` chain.
        resolve_item (Optional[Callable[[MutableJSONObject], Optional[MutableJSONObject]]]):
            Optional callback applied to each child before merge.
        expanding (frozenset[str]): References currently being expanded.

    Returns:
        MutableJSONObject: Merged schema without ``allOf``.
    """
    all_of = schema.get("allOf")
    if not isinstance(all_of, list) or not all_of:
        return deepcopy(dict(schema))

    merged_properties: MutableJSONObject = {}
    merged_required: set[str] = set()
    merged: MutableJSONObject = {}
    for item in all_of:
        if not isinstance(item, dict):
            continue
        ref = item.get("$ref")
        child_expanding = expanding
        if isinstance(ref, str):
            if ref in expanding:
                continue
            child_expanding = expanding | {ref}
        child: Optional[MutableJSONObject] = deepcopy(item)
        if resolve_item is not None and child is not None:
            child = resolve_item(child)
        if child is None:
            continue
        child = merge_all_of_schema(child, resolve_item=resolve_item, expanding=child_expanding)
        _merge_child_object_data(
            child,
            merged_properties=merged_properties,
            merged_required=merged_required,
        )
        for key, value in child.items():
            if key not in {"properties", "required"}:
                merged[key] = value

    merged.update({key: value for key, value in schema.items() if key != "allOf"})
    own_properties = schema.get("properties")
    if isinstance(own_properties, dict):
        merged_properties.update(deepcopy(own_properties))
    own_required = schema.get("required")
    if isinstance(own_required, list):
        merged_required.update(name for name in own_required if isinstance(name, str))
    if merged_properties:
        merged["type"] = "object"
        merged["properties"] = merged_properties
    if merged_required:
        merged["required"] = sorted(merged_required)
    return merged


def _merge_child_object_data(
    child_schema: JSONObject,
    *,
    merged_properties: MutableJSONObject,
    merged_required: set[str],
) -> None:
    child_properties = child_schema.get("properties")
    if isinstance(child_properties, dict):
        merged_properties.update(deepcopy(child_properties))

    child_required = child_schema.get("required")
    if isinstance(child_required, list):
        for required_name in child_required:
            if isinstance(required_name, str):
                merged_required.add(required_name)


def first_json_media(content: JSONValue) -> Optional[MutableJSONObject]:
    """Return the JSON media object of a ``content`` map, preferring ``application/json``."""
    if not isinstance(content, dict):
        return None
    preferred = content.get("application/json")
    if isinstance(preferred, dict):
        return preferred
    for media_type, media in content.items():
        if isinstance(media_type, str) and media_type.endswith("+json") and isinstance(media, dict):
            return media
    return None
