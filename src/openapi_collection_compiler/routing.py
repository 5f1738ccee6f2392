"""Declarative service routing and path-parameter variable naming."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .naming import camel_case, placeholder_name


@dataclass(frozen=True)
class ServiceRoute:
    """Send every path containing one of ``segments`` to ``base_variable``."""

    base_variable: str
    segments: frozenset[str]


@dataclass(frozen=True)
class RoutingTable:
    """Where requests go and how path parameters become environment variables.

    Attributes:
        routes: Ordered service routes; the first route owning any literal
            segment of a path wins.
        default_base: Base-URL variable for paths no route owns.
        parameter_variables: Fixed parameter-name to variable-name mapping.
        resource_variables: Resource segment to variable used when a generic
            parameter (``{id}``) follows it.
        generic_parameter: Name of the ambiguous parameter to disambiguate.
    """

    routes: tuple[ServiceRoute, ...] = ()
    default_base: str = "baseUrl"
    parameter_variables: Mapping[str, str] = field(default_factory=dict)
    resource_variables: Mapping[str, str] = field(default_factory=dict)
    generic_parameter: str = "id"

    def base_variable(self, path: str) -> str:
        """Return the base-URL variable name serving ``path``."""
        literals = {segment for segment in path_segments(path) if placeholder_name(segment) is None}
        for route in self.routes:
            if literals & route.segments:
                return route.base_variable
        return self.default_base

    def base_variables(self) -> tuple[str, ...]:
        """Every base-URL variable the table can produce, default first."""
        seen: dict[str, None] = {self.default_base: None}
        for route in self.routes:
            seen.setdefault(route.base_variable, None)
        return tuple(seen)

    def variable_for(self, parameter: str, path: str) -> str:
        """Return the environment variable bound to one path parameter.

        The generic parameter is named after the nearest preceding resource
        segment (``/balances/{id}`` -> ``balanceId``) and falls back to its own
        name when no known resource precedes it.
        """
        fixed = self.parameter_variables.get(parameter)
        if fixed is not None:
            return fixed
        if parameter == self.generic_parameter:
            resource = self._resource_before(parameter, path)
            if resource is not None:
                return resource
        return camel_case(parameter)

    def template_segments(self, path: str) -> list[str]:
        """Return the path segments with placeholders rewritten to ``{{variable}}``."""
        segments: list[str] = []
        for segment in path_segments(path):
            name = placeholder_name(segment)
            if name is None:
                segments.append(segment)
            else:
                segments.append("{{" + self.variable_for(name, path) + "}}")
        return segments

    def _resource_before(self, parameter: str, path: str) -> str | None:
        segments = path_segments(path)
        target = "{" + parameter + "}"
        if target not in segments:
            return None
        index = len(segments) - 1 - segments[::-1].index(target)
        for segment in reversed(segments[:index]):
            if placeholder_name(segment) is not None:
                continue
            variable = self.resource_variables.get(segment)
            if variable is not None:
                return variable
        return None


def path_segments(path: str) -> list[str]:
    """Split a path into its non-empty segments."""
    return [segment for segment in path.split("/") if segment]
