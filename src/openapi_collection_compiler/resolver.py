"""Local reference lookup and inlining for OpenAPI 3 and Swagger 2 documents."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Optional

_OPENAPI3_SCHEMA_PREFIX = "#/components/schemas/"
_SWAGGER2_SCHEMA_PREFIX = "#/definitions/"


class ResolveError(RuntimeError):
    """Raised when a local JSON pointer cannot be followed."""


def ref_name(ref: str) -> str:
    """Return the last path token of a reference (``#/a/b/Name`` -> ``Name``)."""
    return _unescape(ref.rsplit("/", maxsplit=1)[-1])


class Resolver:
    """Resolve local references against one interface description."""

    def __init__(self, document: dict[str, Any]) -> None:
        self._document = document
        self._inline_cache: dict[str, Any] = {}

    @property
    def document(self) -> dict[str, Any]:
        """Return the underlying document."""
        return self._document

    def lookup_schema(self, ref: str) -> Optional[dict[str, Any]]:
        """Find a named schema by reference.

        ``#/components/schemas/X`` is looked up in ``components.schemas`` and
        ``#/definitions/X`` in ``definitions``; a bare or foreign reference falls
        back to whichever of the two containers has the name.
        """
        name = ref_name(ref)
        components = self._document.get("components")
        openapi3 = components.get("schemas") if isinstance(components, dict) else None
        swagger2 = self._document.get("definitions")

        if ref.startswith(_OPENAPI3_SCHEMA_PREFIX):
            containers = (openapi3, swagger2)
        elif ref.startswith(_SWAGGER2_SCHEMA_PREFIX):
            containers = (swagger2, openapi3)
        else:
            containers = (openapi3, swagger2)

        for container in containers:
            if isinstance(container, dict):
                schema = container.get(name)
                if isinstance(schema, dict):
                    return schema
        return None

    def resolve_pointer(self, ref: str) -> Any:
        """Follow a local JSON pointer such as ``#/components/responses/NotFound``."""
        if not ref.startswith("#/"):
            raise ResolveError(f"Only local references are currently supported: {ref}")

        current: Any = self._document
        for token in ref[2:].split("/"):
            token = _unescape(token)
            if not isinstance(current, dict) or token not in current:
                raise ResolveError(f"Unresolvable reference: {ref}")
            current = current[token]
        return current

    def deref(self, node: Any, *, max_hops: int = 10) -> Any:
        """Follow a chain of ``$ref`` nodes until a concrete node is reached."""
        hops = 0
        while isinstance(node, dict) and isinstance(node.get("$ref"), str):
            if hops >= max_hops:
                raise ResolveError(f"Reference chain too long at {node['$ref']}")
            node = self.resolve_pointer(node["$ref"])
            hops += 1
        return node

    def inline(self, node: Any) -> Any:
        """Recursively inline references in a node.

        A reference that is already being expanded higher up the stack is
        replaced by an empty (unconstrained) schema.
        """
        return self._inline(node, stack=())

    def _inline(self, node: Any, stack: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [self._inline(item, stack) for item in node]
        if not isinstance(node, dict):
            return node

        ref_value = node.get("$ref")
        if isinstance(ref_value, str):
            resolved_ref = self._inline_ref(ref_value, stack)
            siblings = {key: value for key, value in node.items() if key != "$ref"}
            if siblings and isinstance(resolved_ref, dict):
                merged = deepcopy(resolved_ref)
                for key, value in siblings.items():
                    merged[key] = self._inline(value, stack)
                return merged
            return deepcopy(resolved_ref)

        return {key: self._inline(value, stack) for key, value in node.items()}

    def _inline_ref(self, ref: str, stack: tuple[str, ...]) -> Any:
        if ref in stack:
            return {}
        if ref in self._inline_cache:
            return deepcopy(self._inline_cache[ref])

        target = self.lookup_schema(ref) if _is_schema_ref(ref) else None
        if target is None:
            target = self.resolve_pointer(ref)

        resolved = self._inline(deepcopy(target), (*stack, ref))
        if not stack:
            self._inline_cache[ref] = deepcopy(resolved)
        return resolved


def _is_schema_ref(ref: str) -> bool:
    return ref.startswith(_OPENAPI3_SCHEMA_PREFIX) or ref.startswith(_SWAGGER2_SCHEMA_PREFIX)


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")
