"""Operation discovery, tag grouping and collection assembly."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .enhancer import HTTP_METHODS
from .json_types import JSONObject, SpecDocument
from .model_types import OperationSpec
from .naming import duplicate_item_names
from .postman import Collection, Folder, Info, Item, Variable
from .profile import CompilerProfile

logger = logging.getLogger(__name__)

DEFAULT_TAG = "default"


def iter_operations(
    document: JSONObject,
    *,
    exclude: Sequence[str] = (),
) -> tuple[list[OperationSpec], list[str]]:
    """Extract operations in document order.

    Operations whose path contains any ``exclude`` fragment are skipped with
    an info log line.

    Returns:
        tuple[list[OperationSpec], list[str]]: Operations and naming warnings.
    """
    raw_paths = document.get("paths")
    if not isinstance(raw_paths, dict):
        return [], []

    operations: list[OperationSpec] = []
    for path, path_item in raw_paths.items():
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue
            path_text = str(path)
            fragment = next((fragment for fragment in exclude if fragment in path_text), None)
            if fragment is not None:
                logger.info(
                    "Skipping endpoint %s %s (excluded by %r)",
                    method.upper(),
                    path_text,
                    fragment,
                )
                continue
            operations.append(
                OperationSpec(
                    path=path_text,
                    method=method,
                    operation=operation,
                    path_item=path_item,
                )
            )
    return operations, duplicate_item_names(operations)


def group_by_tag(compiled: Iterable[tuple[OperationSpec, Item]]) -> dict[str, list[Item]]:
    """Group compiled items by tag, keeping first-seen tag order.

    An operation carrying several tags appears in every tag's group; each
    extra occurrence is an independent copy.
    """
    groups: dict[str, list[Item]] = {}
    for operation, item in compiled:
        for index, tag in enumerate(operation.tags):
            entry = item if index == 0 else item.model_copy(deep=True)
            groups.setdefault(tag, []).append(entry)
    return groups


def tag_description(document: JSONObject, tag: str, profile: CompilerProfile) -> str:
    """Describe a folder: declared tag description, profile default, then a generic sentence."""
    declared = document.get("tags")
    if isinstance(declared, list):
        for entry in declared:
            if not isinstance(entry, dict) or entry.get("name") != tag:
                continue
            description = entry.get("description")
            if isinstance(description, str) and description.strip():
                return description
    fallback = profile.tag_description(tag)
    if fallback:
        return fallback
    return f"Endpoints related to {tag}."


def build_collection(
    document: SpecDocument,
    groups: dict[str, list[Item]],
    *,
    profile: CompilerProfile,
    environment_name: str,
) -> Collection:
    """Assemble folders, collection info and collection variables."""
    info = document.get("info")
    info = info if isinstance(info, dict) else {}
    title = info.get("title")
    description = info.get("description")
    version = info.get("version")

    note = (
        f"**IMPORTANT**: This collection requires the **{environment_name}** environment "
        "to be selected for proper functionality."
    )
    if isinstance(description, str) and description:
        full_description = f"{description}\n\n{note}"
    else:
        full_description = note

    folders = [
        Folder(name=tag, description=tag_description(document, tag, profile), item=items)
        for tag, items in groups.items()
    ]
    return Collection(
        info=Info(
            name=title if isinstance(title, str) and title else "API",
            description=full_description,
            version=str(version) if version is not None else "1.0.0",
        ),
        item=folders,
        variable=[
            Variable(
                key="environment",
                value=environment_name,
                description=(
                    f"This collection requires the {environment_name} environment "
                    "to be selected for proper functionality."
                ),
            )
        ],
    )
