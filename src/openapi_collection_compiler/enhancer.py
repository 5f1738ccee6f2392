"""Inject canonical schemas and standardize error responses."""

from __future__ import annotations

import logging
from copy import deepcopy

from .json_types import MutableJSONObject, SpecDocument
from .standard_schemas import (
    ERROR_SCHEMA,
    PAGINATION_SCHEMA,
    STANDARD_ERROR_RESPONSES,
    STATUS_RESPONSE_NAMES,
)

logger = logging.getLogger(__name__)

HTTP_METHODS: tuple[str, ...] = (
    "get",
    "put",
    "post",
    "delete",
    "patch",
    "head",
    "options",
    "trace",
)


def enhance_spec(document: SpecDocument) -> SpecDocument:
    """Apply canonical schemas and error responses to ``document`` in place.

    ``Pagination`` and ``Error`` are only replaced when the source already
    declares them. The five canonical responses are always written, and every
    operation's 400/401/403/404/500 response is replaced by a reference to the
    matching canonical response. Running this twice yields the same document.

    Args:
        document (SpecDocument): Path-normalized interface description.

    Returns:
        SpecDocument: The same document, enhanced.
    """
    components = _ensure_mapping(document, "components")
    schemas = _ensure_mapping(components, "schemas")
    responses = _ensure_mapping(components, "responses")

    if "Pagination" in schemas:
        logger.info("Enhancing Pagination schema")
        schemas["Pagination"] = deepcopy(PAGINATION_SCHEMA)
    if "Error" in schemas:
        logger.info("Enhancing Error schema")
        schemas["Error"] = deepcopy(ERROR_SCHEMA)

    logger.info("Adding standard error responses")
    for name, response in STANDARD_ERROR_RESPONSES.items():
        responses[name] = deepcopy(response)

    replaced = standardize_error_responses(document)
    logger.info("Rewired %d operation error responses to canonical definitions", replaced)
    return document


def standardize_error_responses(document: SpecDocument) -> int:
    """Point numbered error responses at the canonical definitions.

    Returns:
        int: Number of response entries rewritten.
    """
    raw_paths = document.get("paths")
    if not isinstance(raw_paths, dict):
        return 0

    replaced = 0
    for path_item in raw_paths.values():
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue
            operation_responses = operation.get("responses")
            if not isinstance(operation_responses, dict):
                continue
            for status_code, response_name in STATUS_RESPONSE_NAMES.items():
                key = _status_key(operation_responses, status_code)
                if key is None:
                    continue
                operation_responses[key] = {"$ref": f"#/components/responses/{response_name}"}
                replaced += 1
    return replaced


def _status_key(responses: dict, status_code: str) -> str | int | None:
    # YAML loads unquoted status codes as integers.
    if status_code in responses:
        return status_code
    numeric = int(status_code)
    if numeric in responses:
        return numeric
    return None


def _ensure_mapping(parent: MutableJSONObject, key: str) -> MutableJSONObject:
    value = parent.get(key)
    if not isinstance(value, dict):
        value = {}
        parent[key] = value
    return value
