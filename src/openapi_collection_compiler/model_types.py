"""Internal datatypes for compilation and verification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .json_types import JSONObject, JSONValue


@dataclass(frozen=True)
class OperationSpec:
    """Normalized operation metadata extracted from OpenAPI paths."""

    path: str
    method: str
    operation: JSONObject
    path_item: JSONObject

    @property
    def key(self) -> str:
        """Dependency-table key, ``"METHOD /path/{param}"``."""
        return f"{self.method.upper()} {self.path}"

    @property
    def tags(self) -> tuple[str, ...]:
        raw_tags = self.operation.get("tags")
        if not isinstance(raw_tags, list):
            return ("default",)
        tags = tuple(tag for tag in raw_tags if isinstance(tag, str) and tag)
        return tags or ("default",)


@dataclass(frozen=True)
class VerificationItem:
    """A synthesized request body paired with the schema it was produced from."""

    item_name: str
    method: str
    path: str
    source_schema: JSONObject
    body: JSONValue


@dataclass(frozen=True)
class CompileResult:
    """Compilation output metadata."""

    output_path: str
    environment_path: Optional[str]
    item_count: int
    workflow_step_count: int
    verification_items: tuple[VerificationItem, ...]
    warnings: tuple[str, ...]
