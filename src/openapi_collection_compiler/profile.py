"""Compiler profile: every swappable, domain-specific table in one immutable bundle."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Optional, TypeAlias

from .dependencies import DependencyEntry, DependencyGraph, ExtractionStrategy
from .heuristics import NO_HEURISTICS, HeuristicSet
from .json_types import JSONValue
from .paths import DEFAULT_POSITIONAL_PARAMETERS
from .routing import RoutingTable
from .workflow import WorkflowDefinition, WorkflowStep

BodyTransform: TypeAlias = Callable[[JSONValue], JSONValue]


@dataclass(frozen=True)
class EndpointMatcher:
    """Match an operation by method and a literal path suffix."""

    method: str
    path_suffix: str

    def matches(self, method: str, path: str) -> bool:
        return method.upper() == self.method.upper() and path.endswith(self.path_suffix)


@dataclass(frozen=True)
class BodyFixup:
    """Post-synthesis adjustment applied to one endpoint family's JSON body."""

    endpoint: EndpointMatcher
    apply: BodyTransform


@dataclass(frozen=True)
class TextBody:
    """Fixed plain-text body replacing JSON synthesis for one endpoint family."""

    endpoint: EndpointMatcher
    text: str


@dataclass(frozen=True)
class CompilerProfile:
    """Domain knowledge consumed by the compiler.

    A profile built from defaults only produces domain-neutral output: no
    dependency tracking, a single ``baseUrl`` and plain type-based examples.
    """

    name: str = "generic"
    environment_name: str = "API"
    dependencies: Mapping[str, DependencyEntry] = field(default_factory=dict)
    extractors: Mapping[str, ExtractionStrategy] = field(default_factory=dict)
    heuristics: HeuristicSet = NO_HEURISTICS
    routing: RoutingTable = field(default_factory=RoutingTable)
    positional_parameters: tuple[str, ...] = DEFAULT_POSITIONAL_PARAMETERS
    tag_descriptions: Mapping[str, str] = field(default_factory=dict)
    workflow_folder: str = "E2E Flow"
    workflow_description: str = ""
    workflow_steps: tuple[WorkflowStep, ...] = ()
    body_fixups: tuple[BodyFixup, ...] = ()
    text_bodies: tuple[TextBody, ...] = ()
    idempotent_endpoints: tuple[EndpointMatcher, ...] = ()
    ignored_body_fields: frozenset[str] = frozenset({"pending"})

    def dependency_graph(self) -> DependencyGraph:
        """Return the profile's static dependency graph."""
        return DependencyGraph(entries=dict(self.dependencies), extractors=dict(self.extractors))

    def with_dependency_graph(self, graph: DependencyGraph) -> CompilerProfile:
        """Return a copy whose dependency table and extractors come from ``graph``."""
        extractors = dict(self.extractors)
        extractors.update(graph.extractors)
        return replace(self, dependencies=dict(graph.entries), extractors=extractors)

    def with_workflow(self, definition: WorkflowDefinition) -> CompilerProfile:
        """Return a copy running ``definition`` instead of the built-in scenario."""
        return replace(
            self,
            workflow_steps=definition.steps,
            workflow_folder=definition.folder_name or self.workflow_folder,
            workflow_description=(
                definition.description
                if definition.description is not None
                else self.workflow_description
            ),
        )

    def text_body_for(self, method: str, path: str) -> Optional[str]:
        for rule in self.text_bodies:
            if rule.endpoint.matches(method, path):
                return rule.text
        return None

    def is_idempotent(self, method: str, path: str) -> bool:
        return any(endpoint.matches(method, path) for endpoint in self.idempotent_endpoints)

    def fix_body(self, method: str, path: str, body: JSONValue) -> JSONValue:
        """Run every matching body fix-up in declaration order."""
        for fixup in self.body_fixups:
            if fixup.endpoint.matches(method, path):
                body = fixup.apply(body)
        return body

    def tag_description(self, tag: str) -> Optional[str]:
        return self.tag_descriptions.get(tag)


GENERIC_PROFILE = CompilerProfile()
