"""Fixture-based interface description validation tests."""

from __future__ import annotations

from pathlib import Path

from openapi_collection_compiler.loader import get_spec_version, load_spec, validate_spec
from openapi_collection_compiler.paths import normalize_paths

from .fixture_helpers import fixture_dir, iter_fixture_paths, parametrize_fixtures


def test_fixture_directory_exists() -> None:
    """Ensure the fixtures directory is present and populated."""
    assert fixture_dir().is_dir(), f"Fixture directory not found: {fixture_dir()}"
    assert iter_fixture_paths()


@parametrize_fixtures()
def test_fixture_declares_version(fixture_path: Path) -> None:
    document = load_spec(fixture_path)
    assert get_spec_version(document) in {"2.0", "3.0.3"}


@parametrize_fixtures()
def test_fixture_is_valid_after_path_normalization(fixture_path: Path) -> None:
    """Each fixture validates once positional ``:name`` segments are bracketed."""
    document = normalize_paths(load_spec(fixture_path))
    assert validate_spec(document) == []
