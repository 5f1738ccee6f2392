"""Output rendering and write failures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from openapi_collection_compiler.writer import (
    WriteError,
    render_json_document,
    write_json_document,
    write_text_document,
)


def test_render_json_document() -> None:
    text = render_json_document({"name": "Café", "items": [1]})
    assert text.endswith("}\n")
    assert '  "name": "Café"' in text
    assert json.loads(text) == {"name": "Café", "items": [1]}


def test_write_creates_parent_directories(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "deeper" / "collection.json"
    write_json_document(target, {"ok": True})
    assert json.loads(target.read_text(encoding="utf-8")) == {"ok": True}


def test_write_failure_raises_write_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    with pytest.raises(WriteError):
        write_text_document(blocker / "collection.json", "{}\n")


def test_os_error_while_writing_is_wrapped(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(self: Path, *args: object, **kwargs: object) -> int:
        raise PermissionError("read-only file system")

    monkeypatch.setattr(Path, "write_text", _fail)
    with pytest.raises(WriteError, match="read-only file system"):
        write_text_document(tmp_path / "collection.json", "{}\n")
