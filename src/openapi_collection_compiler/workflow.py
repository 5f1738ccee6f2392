"""Workflow composer: chain compiled requests into one end-to-end scenario."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Sequence
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .dependencies import DependencyGraph, ExtractionStrategy, parse_endpoint_key
from .json_types import JSONValue
from .loader import SpecLoadError, load_spec
from .postman import Collection, Folder, Item
from .scripts import (
    completion_lines,
    extraction_lines,
    next_request_lines,
    required_variable_lines,
)

logger = logging.getLogger(__name__)

BodyOverride: TypeAlias = Callable[[JSONValue], JSONValue]


class WorkflowConfigError(RuntimeError):
    """Raised when a workflow definition file is missing or malformed."""


@dataclass(frozen=True)
class WorkflowStep:
    """One step of the scenario.

    Attributes:
        method: HTTP method of the target request.
        path: Source path of the target request, matched exactly first and
            as a substring second.
        name: Display name given to the cloned request.
        body_override: Optional transform of the cloned JSON body.
        extracts: Extra ``(variable, strategy)`` pairs persisted after the step.
        requires: Variables whose absence is reported as an error before sending.
    """

    method: str
    path: str
    name: str
    body_override: Optional[BodyOverride] = None
    extracts: tuple[tuple[str, ExtractionStrategy], ...] = ()
    requires: tuple[str, ...] = ()


def find_item(collection: Collection, method: str, path: str) -> Optional[Item]:
    """Return the first item compiled from ``method`` on ``path``.

    An exact source-path match anywhere in the collection wins over a
    substring match; within each pass the first item in folder order wins.
    """
    verb = method.upper()
    candidates = [item for item in collection.iter_items() if item.source_method == verb]
    for item in candidates:
        if _source_of(item) == path:
            return item
    for item in candidates:
        if path in _source_of(item):
            return item
    return None


def compose_workflow(
    collection: Collection,
    steps: Sequence[WorkflowStep],
    *,
    folder_name: str = "E2E Flow",
    description: str = "",
    graph: Optional[DependencyGraph] = None,
) -> tuple[Collection, list[str]]:
    """Append a workflow folder built from ``steps`` to a copy of ``collection``.

    Each matched step is a deep clone of its target request, renamed and
    optionally given a new body. Every included step's test script chains to
    the next included step; the last one logs completion. Steps with no
    matching request are skipped and reported in the returned warnings, as are
    included steps using a variable no earlier included step outputs.

    Args:
        collection (Collection): Compiled collection; left unmodified.
        steps (Sequence[WorkflowStep]): Ordered scenario steps.
        folder_name (str): Name of the appended folder.
        description (str): Description of the appended folder.
        graph (Optional[DependencyGraph]): Graph whose ``provides`` count as step outputs.

    Returns:
        tuple[Collection, list[str]]: The new collection and warnings.
    """
    warnings: list[str] = []
    composed: list[Item] = []
    included: list[WorkflowStep] = []
    for step in steps:
        target = find_item(collection, step.method, step.path)
        if target is None:
            message = f"Could not find request for workflow step: {step.name}"
            logger.warning(message)
            warnings.append(message)
            continue
        logger.debug("Found matching request for: %s", step.name)
        composed.append(_clone_step(target, step, warnings))
        included.append(step)

    _chain(composed)
    for message in unresolved_inputs(included, graph):
        logger.warning(message)
        warnings.append(message)

    result = collection.model_copy(deep=True)
    result.item.append(Folder(name=folder_name, description=description, item=composed))
    return result, warnings


def step_outputs(step: WorkflowStep, graph: Optional[DependencyGraph] = None) -> tuple[str, ...]:
    """Variables bound once ``step`` has run: its extracts plus the graph's ``provides``."""
    outputs = [variable for variable, _strategy in step.extracts]
    if graph is not None:
        outputs.extend(graph.lookup(step.method, step.path).provides)
    return tuple(dict.fromkeys(outputs))


def unresolved_inputs(
    steps: Sequence[WorkflowStep],
    graph: Optional[DependencyGraph] = None,
) -> list[str]:
    """Report each ``requires`` variable that no earlier step outputs.

    Args:
        steps (Sequence[WorkflowStep]): Steps in execution order.
        graph (Optional[DependencyGraph]): Graph whose ``provides`` count as step outputs.

    Returns:
        list[str]: One message per unresolved variable use.
    """
    available: set[str] = set()
    messages: list[str] = []
    for step in steps:
        for variable in step.requires:
            if variable not in available:
                messages.append(
                    f"Workflow step {step.name!r} uses {variable!r} but no earlier step outputs it"
                )
        available.update(step_outputs(step, graph))
    return messages


@dataclass(frozen=True)
class WorkflowDefinition:
    """Scenario loaded from a workflow file."""

    steps: tuple[WorkflowStep, ...]
    folder_name: Optional[str] = None
    description: Optional[str] = None


class WorkflowStepConfig(BaseModel):
    """One step of a workflow file."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    request: str
    uses: list[str] = []
    outputs: dict[str, ExtractionStrategy] = {}
    body: Optional[dict[str, Any]] = None

    @field_validator("request")
    @classmethod
    def _request_is_endpoint(cls, value: str) -> str:
        parse_endpoint_key(value)
        return value

    def to_step(self) -> WorkflowStep:
        method, path = parse_endpoint_key(self.request)
        return WorkflowStep(
            method=method,
            path=path,
            name=self.name,
            body_override=_constant_body(self.body) if self.body is not None else None,
            extracts=tuple(self.outputs.items()),
            requires=tuple(dict.fromkeys(self.uses)),
        )


class WorkflowConfig(BaseModel):
    """Workflow file contents."""

    model_config = ConfigDict(extra="forbid")

    folder: Optional[str] = None
    description: Optional[str] = None
    steps: list[WorkflowStepConfig] = Field(min_length=1)

    def to_definition(self) -> WorkflowDefinition:
        return WorkflowDefinition(
            steps=tuple(step.to_step() for step in self.steps),
            folder_name=self.folder,
            description=self.description,
        )


def load_workflow_config(path: Path) -> WorkflowDefinition:
    """Load a JSON or YAML workflow file.

    Args:
        path (Path): Workflow file path.

    Returns:
        WorkflowDefinition: Steps plus optional folder name and description.
    """
    try:
        payload = load_spec(path)
    except SpecLoadError as exc:
        raise WorkflowConfigError(f"Cannot load workflow definition: {exc}") from exc

    try:
        config = WorkflowConfig.model_validate(payload)
    except ValidationError as exc:
        raise WorkflowConfigError(
            f"Invalid workflow definition {path}: {exc.error_count()} issue(s)\n{exc}"
        ) from exc
    logger.info("Loaded %d workflow steps from %s", len(config.steps), path)
    return config.to_definition()


def _constant_body(value: dict[str, Any]) -> BodyOverride:
    def override(_body: JSONValue) -> JSONValue:
        return deepcopy(value)

    return override


def _clone_step(target: Item, step: WorkflowStep, warnings: list[str]) -> Item:
    clone = target.model_copy(deep=True)
    clone.name = step.name

    if step.body_override is not None:
        _override_body(clone, step.name, step.body_override, warnings)

    if step.requires:
        prerequest = clone.script("prerequest")
        prerequest.exec.extend(["", "// Validate workflow inputs before sending"])
        for variable in step.requires:
            prerequest.exec.extend(required_variable_lines(variable, fatal=True))

    if step.extracts:
        test = clone.script("test")
        test.exec.extend(["", "// Persist values for subsequent workflow steps"])
        for variable, strategy in step.extracts:
            test.exec.extend(extraction_lines(variable, strategy))
    return clone


def _override_body(
    clone: Item,
    step_name: str,
    override: BodyOverride,
    warnings: list[str],
) -> None:
    body = clone.request.body
    if body is None or body.language != "json":
        message = f"Workflow step {step_name!r} has no JSON body to override"
        logger.warning(message)
        warnings.append(message)
        return
    try:
        current = json.loads(body.raw)
    except json.JSONDecodeError:
        message = f"Could not parse body for workflow step {step_name!r}"
        logger.warning(message)
        warnings.append(message)
        return
    body.raw = json.dumps(override(current), indent=2)


def _chain(items: Iterable[Item]) -> None:
    ordered = list(items)
    for index, item in enumerate(ordered):
        test = item.script("test")
        if index < len(ordered) - 1:
            test.exec.extend(next_request_lines(ordered[index + 1].name))
        else:
            test.exec.extend(completion_lines())


def _source_of(item: Item) -> str:
    # Items built outside the compiler carry no source path; fall back to the URL.
    return item.source_path or item.request.url.raw
