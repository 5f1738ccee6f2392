"""High-level compiler orchestration."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .collection import build_collection, group_by_tag, iter_operations
from .dependencies import DependencyGraph, load_dependency_config
from .enhancer import enhance_spec
from .environment import build_environment
from .items import RequestSynthesizer
from .json_types import SpecDocument
from .ledger import LEDGER_PROFILE
from .loader import load_spec, validate_spec
from .model_types import CompileResult, VerificationItem
from .paths import normalize_paths
from .postman import Collection, Environment
from .profile import CompilerProfile
from .resolver import Resolver
from .verify import VerificationReport, verify_bodies
from .workflow import compose_workflow, load_workflow_config
from .writer import WriteError, render_json_document, write_text_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledDocuments:
    """In-memory output of one compile, before anything is written."""

    collection: Collection
    environment: Environment
    graph: DependencyGraph
    resolver: Resolver
    verification_items: tuple[VerificationItem, ...]
    workflow_step_count: int
    warnings: tuple[str, ...]


@dataclass(frozen=True)
class CompileRun:
    """Compile result with optional verification report."""

    result: CompileResult
    verification_report: Optional[VerificationReport]


def compile_document(
    document: SpecDocument,
    *,
    profile: CompilerProfile = LEDGER_PROFILE,
    exclude: Sequence[str] = (),
    workflow: bool = True,
    environment_name: Optional[str] = None,
) -> CompiledDocuments:
    """Compile a loaded interface description into collection and environment models.

    The document is normalized and enhanced in place.

    Args:
        document (SpecDocument): Loaded interface description.
        profile (CompilerProfile): Domain tables driving synthesis.
        exclude (Sequence[str]): Path fragments whose operations are skipped.
        workflow (bool): Whether to append the workflow folder.
        environment_name (Optional[str]): Overrides the profile's environment name.

    Returns:
        CompiledDocuments: Both documents plus run metadata.
    """
    normalize_paths(document, known_parameters=profile.positional_parameters)
    warnings: list[str] = validate_spec(document)
    enhance_spec(document)

    operations, naming_warnings = iter_operations(document, exclude=exclude)
    warnings.extend(naming_warnings)
    graph = profile.dependency_graph().with_annotations(operations)

    synthesizer = RequestSynthesizer(document=document, profile=profile, graph=graph)
    compiled = [(operation, synthesizer.build_item(operation)) for operation in operations]
    logger.info("Compiled %d requests", len(compiled))

    env_name = environment_name or profile.environment_name
    collection = build_collection(
        document,
        group_by_tag(compiled),
        profile=profile,
        environment_name=env_name,
    )

    workflow_step_count = 0
    if workflow and profile.workflow_steps:
        collection, workflow_warnings = compose_workflow(
            collection,
            profile.workflow_steps,
            folder_name=profile.workflow_folder,
            description=profile.workflow_description,
            graph=graph,
        )
        warnings.extend(workflow_warnings)
        workflow_folder = collection.folder(profile.workflow_folder)
        workflow_step_count = len(workflow_folder.item) if workflow_folder is not None else 0

    warnings.extend(synthesizer.warnings)
    warnings.extend(synthesizer.synthesizer.warnings)

    environment = build_environment(
        env_name,
        graph=graph,
        routing=profile.routing,
        collection=collection,
    )
    return CompiledDocuments(
        collection=collection,
        environment=environment,
        graph=graph,
        resolver=synthesizer.resolver,
        verification_items=tuple(synthesizer.verification_items),
        workflow_step_count=workflow_step_count,
        warnings=tuple(warnings),
    )


def run_compile(
    *,
    input_path: Path,
    output_path: Path,
    env_path: Optional[Path] = None,
    profile: CompilerProfile = LEDGER_PROFILE,
    dependencies_path: Optional[Path] = None,
    workflow_path: Optional[Path] = None,
    exclude: Sequence[str] = (),
    workflow: bool = True,
    environment_name: Optional[str] = None,
    verify: bool = False,
) -> CompileRun:
    """Compile an interface description file into a collection (and environment) file.

    Both documents are rendered before anything is written, so a failure while
    loading or compiling never leaves partial output behind. When the environment
    cannot be written, the collection written just before it is removed again.

    Args:
        input_path (Path): JSON or YAML interface description.
        output_path (Path): Destination of the collection document.
        env_path (Optional[Path]): Destination of the environment template, if wanted.
        profile (CompilerProfile): Domain tables driving synthesis.
        dependencies_path (Optional[Path]): Dependency configuration replacing the profile's table.
        workflow_path (Optional[Path]): Workflow definition replacing the profile's scenario.
        exclude (Sequence[str]): Path fragments whose operations are skipped.
        workflow (bool): Whether to append the workflow folder.
        environment_name (Optional[str]): Overrides the profile's environment name.
        verify (bool): Whether to verify synthesized bodies against their schemas.

    Returns:
        CompileRun: Compile metadata and optional verification report.
    """
    document = load_spec(input_path)
    if dependencies_path is not None:
        profile = profile.with_dependency_graph(load_dependency_config(dependencies_path))
    if workflow_path is not None:
        profile = profile.with_workflow(load_workflow_config(workflow_path))

    compiled = compile_document(
        document,
        profile=profile,
        exclude=exclude,
        workflow=workflow,
        environment_name=environment_name,
    )

    collection_text = render_json_document(compiled.collection.render())
    environment_text = (
        render_json_document(compiled.environment.render()) if env_path is not None else None
    )

    write_text_document(output_path, collection_text)
    if env_path is not None and environment_text is not None:
        try:
            write_text_document(env_path, environment_text)
        except WriteError:
            _discard(output_path)
            raise

    result = CompileResult(
        output_path=str(output_path),
        environment_path=str(env_path) if env_path is not None else None,
        item_count=sum(1 for _ in compiled.collection.iter_items()),
        workflow_step_count=compiled.workflow_step_count,
        verification_items=compiled.verification_items,
        warnings=compiled.warnings,
    )

    if not verify:
        return CompileRun(result=result, verification_report=None)

    report = verify_bodies(items=list(compiled.verification_items), resolver=compiled.resolver)
    return CompileRun(result=result, verification_report=report)


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove partial output %s: %s", path, exc)
