"""Rewrite positional ``:name`` path parameters into ``{name}`` placeholders."""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

from .json_types import JSONValue, SpecDocument

DEFAULT_POSITIONAL_PARAMETERS: tuple[str, ...] = (
    "organization_id",
    "ledger_id",
    "account_id",
    "transaction_id",
    "operation_id",
    "balance_id",
    "external_id",
    "asset_code",
    "portfolio_id",
    "segment_id",
    "id",
)


@lru_cache(maxsize=16)
def _positional_pattern(names: tuple[str, ...]) -> re.Pattern[str]:
    # Longest names first so ``:id`` never shadows ``:id_something``.
    ordered = sorted(set(names), key=len, reverse=True)
    alternation = "|".join(re.escape(name) for name in ordered)
    return re.compile(rf":(?P<name>{alternation})(?=/|$)")


def normalize_path(
    path: str,
    *,
    known_parameters: Iterable[str] = DEFAULT_POSITIONAL_PARAMETERS,
) -> str:
    """Replace every recognized ``:name`` segment with ``{name}``.

    Unknown positional tokens are left as literal path text. Already bracketed
    paths are returned unchanged.
    """
    names = tuple(known_parameters)
    if not names:
        return path
    pattern = _positional_pattern(names)
    return pattern.sub(lambda match: "{" + match.group("name") + "}", path)


def normalize_paths(
    document: SpecDocument,
    *,
    known_parameters: Iterable[str] = DEFAULT_POSITIONAL_PARAMETERS,
) -> SpecDocument:
    """Rewrite the keys of ``document["paths"]`` in place, preserving order."""
    raw_paths = document.get("paths")
    if not isinstance(raw_paths, dict):
        return document

    names = tuple(known_parameters)
    fixed: dict[str, JSONValue] = {}
    for path, path_item in raw_paths.items():
        fixed[normalize_path(str(path), known_parameters=names)] = path_item
    document["paths"] = fixed
    return document
