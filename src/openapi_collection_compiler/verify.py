"""Verification of synthesized request bodies against their source schemas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from .model_types import VerificationItem
from .resolver import ResolveError, Resolver

_DRAFT_2020_12 = "https://json-schema.org/draft/2020-12/schema"
_OPENAPI_ONLY_KEYS = frozenset({"discriminator", "xml", "externalDocs", "example", "x-omitempty"})


@dataclass(frozen=True)
class VerificationMismatch:
    """One body that does not satisfy its schema."""

    item_name: str
    method: str
    path: str
    location: str
    message: str


@dataclass(frozen=True)
class VerificationReport:
    """Result of the verification phase."""

    verified_count: int
    mismatch_count: int
    mismatches: tuple[VerificationMismatch, ...]


def verify_bodies(*, items: list[VerificationItem], resolver: Resolver) -> VerificationReport:
    """Validate every synthesized body against its inlined, normalized schema.

    Only the first validation error of each body is reported. Bodies whose
    schema cannot be inlined or is itself invalid are reported as mismatches.
    """
    mismatches: list[VerificationMismatch] = []

    for item in items:
        try:
            schema = normalize_source_schema(resolver.inline(item.source_schema))
        except ResolveError as exc:
            mismatches.append(_mismatch(item, location="$", message=str(exc)))
            continue

        validator_class = validator_for(schema)
        try:
            validator_class.check_schema(schema)
        except SchemaError as exc:
            mismatches.append(_mismatch(item, location="$schema", message=exc.message))
            continue

        errors = sorted(
            validator_class(schema).iter_errors(item.body),
            key=lambda error: [str(part) for part in error.absolute_path],
        )
        if errors:
            first = errors[0]
            location = "$" + "".join(f"[{part!r}]" for part in first.absolute_path)
            mismatches.append(_mismatch(item, location=location, message=first.message))

    return VerificationReport(
        verified_count=len(items),
        mismatch_count=len(mismatches),
        mismatches=tuple(mismatches),
    )


def format_report(report: VerificationReport) -> str:
    """Render report as CLI output text."""
    lines = [
        f"Verified bodies: {report.verified_count}",
        f"Mismatches: {report.mismatch_count}",
    ]
    for mismatch in report.mismatches:
        lines.extend(
            [
                f"- {mismatch.method} {mismatch.path} ({mismatch.item_name})",
                f"  at: {mismatch.location}",
                f"  error: {short_repr(mismatch.message)}",
            ]
        )
    return "\n".join(lines)


def normalize_source_schema(schema: Any) -> dict[str, Any]:
    """Turn an inlined OpenAPI schema into a Draft 2020-12 JSON Schema."""
    normalized = _normalize_nullable(schema)
    normalized = _strip_openapi_keys(normalized)
    if not isinstance(normalized, dict):
        return {"$schema": _DRAFT_2020_12}
    return {"$schema": _DRAFT_2020_12, **normalized}


def short_repr(value: Any, *, limit: int = 160) -> str:
    """A short representation for mismatch diagnostics."""
    text = value if isinstance(value, str) else repr(value)
    return text if len(text) <= limit else f"{text[: limit - 3]}..."


def _mismatch(item: VerificationItem, *, location: str, message: str) -> VerificationMismatch:
    return VerificationMismatch(
        item_name=item.item_name,
        method=item.method,
        path=item.path,
        location=location,
        message=message,
    )


def _normalize_nullable(node: Any) -> Any:
    if isinstance(node, list):
        return [_normalize_nullable(item) for item in node]
    if not isinstance(node, dict):
        return node

    normalized = {key: _normalize_nullable(value) for key, value in node.items()}
    if isinstance(normalized.get("nullable"), bool):
        nullable = normalized.pop("nullable")
    else:
        nullable = None

    if nullable is True:
        schema_type = normalized.get("type")
        if isinstance(schema_type, str):
            normalized["type"] = sorted([schema_type, "null"])
        elif isinstance(schema_type, list):
            members = [member for member in schema_type if isinstance(member, str)]
            if "null" not in members:
                members.append("null")
            normalized["type"] = sorted(set(members))
        else:
            wrapped = {key: value for key, value in normalized.items() if key != "anyOf"}
            any_of = normalized.get("anyOf")
            options: list[Any] = []
            if isinstance(any_of, list):
                options.extend(any_of)
            else:
                options.append(wrapped)
            options.append({"type": "null"})
            normalized = {"anyOf": options}
    return normalized


def _strip_openapi_keys(node: Any, *, in_properties: bool = False) -> Any:
    if isinstance(node, list):
        return [_strip_openapi_keys(item) for item in node]
    if not isinstance(node, dict):
        return node
    stripped: dict[str, Any] = {}
    for key, value in node.items():
        # Inside ``properties`` the keys are field names, not keywords.
        if not in_properties and key in _OPENAPI_ONLY_KEYS:
            continue
        child_is_properties = key == "properties" and not in_properties
        stripped[key] = _strip_openapi_keys(value, in_properties=child_is_properties)
    return stripped
