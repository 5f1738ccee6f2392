"""Filesystem writers for compiled documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class WriteError(RuntimeError):
    """Raised when output files cannot be written."""


def render_json_document(document: Any) -> str:
    """Serialize a document with two-space indentation and a trailing newline."""
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def ensure_parent_directory(path: Path) -> None:
    """Create the parent directory of ``path`` when it does not exist yet."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WriteError(f"Failed to create output directory {path.parent}: {exc}") from exc


def write_text_document(path: Path, content: str) -> None:
    """Write pre-rendered content to ``path``.

    Args:
        path (Path): Destination file.
        content (str): Rendered document.
    """
    ensure_parent_directory(path)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise WriteError(f"Failed to write file {path}: {exc}") from exc
    logger.info("Wrote %s", path)


def write_json_document(path: Path, document: Any) -> None:
    """Render and write one JSON document."""
    write_text_document(path, render_json_document(document))
