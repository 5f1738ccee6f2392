"""Pre-request and test script generation."""

from __future__ import annotations

import pytest

from openapi_collection_compiler.dependencies import DependencyEntry, ExtractionStrategy
from openapi_collection_compiler.scripts import (
    build_prerequest_script,
    build_test_script,
    completion_lines,
    extraction_lines,
    next_request_lines,
    required_variable_lines,
    status_assertion_lines,
)


def _text(lines: list[str]) -> str:
    return "\n".join(lines)


@pytest.mark.parametrize(
    ("method", "expected"),
    [
        ("POST", "pm.expect(pm.response.code).to.be.oneOf([200, 201]);"),
        ("post", "pm.expect(pm.response.code).to.be.oneOf([200, 201]);"),
        ("DELETE", "pm.expect(pm.response.code).to.equal(204);"),
        ("GET", "pm.expect(pm.response.code).to.equal(200);"),
        ("PATCH", "pm.expect(pm.response.code).to.equal(200);"),
        ("PUT", "pm.expect(pm.response.code).to.equal(200);"),
    ],
)
def test_status_assertions(method: str, expected: str) -> None:
    assert f"  {expected}" in status_assertion_lines(method)


def test_prerequest_without_requirements() -> None:
    script = _text(build_prerequest_script(DependencyEntry()))
    assert 'pm.environment.get("authToken")' in script
    assert "X-Request-Id" in script
    assert "Validate required variables" not in script
    assert "idempotencyKey" not in script


def test_prerequest_checks_each_required_variable() -> None:
    script = _text(build_prerequest_script(DependencyEntry(requires=("organizationId", "ledgerId"))))
    assert 'if (!pm.environment.get("organizationId")) {' in script
    assert 'if (!pm.environment.get("ledgerId")) {' in script
    assert "Warning: ledgerId is not set. This request may fail." in script


def test_prerequest_generates_idempotency_key_first() -> None:
    lines = build_prerequest_script(DependencyEntry(), idempotent=True)
    assert lines[0].startswith("// Generate a unique idempotency key")
    assert any('pm.environment.set("idempotencyKey"' in line for line in lines)


def test_fatal_required_variable_lines() -> None:
    lines = required_variable_lines("accountId", fatal=True)
    assert lines[1] == '  console.error("ERROR: accountId is not set in the environment. This request will fail.");'


def test_test_script_extracts_organization_id_from_id() -> None:
    graph_entry = DependencyEntry(provides=("organizationId",))
    script = _text(build_test_script("POST", graph_entry, lambda _name: ExtractionStrategy.ID))
    assert 'pm.environment.set("organizationId", jsonData.id);' in script
    assert "pm.response.to.be.json;" in script
    assert "pm.response.code === 204" in script


def test_id_extraction_block_is_guarded_by_response_field() -> None:
    assert extraction_lines("organizationId", ExtractionStrategy.ID) == [
        "try {",
        "  var jsonData = pm.response.json();",
        "  if (jsonData && jsonData.id) {",
        '    pm.environment.set("organizationId", jsonData.id);',
        '    console.log("organizationId set to: " + jsonData.id);',
        "  }",
        "} catch (error) {",
        '  console.error("Failed to extract organizationId: ", error);',
        "}",
    ]


def test_test_script_without_provides_has_no_extraction() -> None:
    script = _text(build_test_script("GET", DependencyEntry(requires=("organizationId",)), lambda _name: ExtractionStrategy.ID))
    assert "pm.environment.set" not in script


@pytest.mark.parametrize(
    ("strategy", "fragment"),
    [
        (ExtractionStrategy.ID, "jsonData.id"),
        (ExtractionStrategy.ALIAS, 'pm.environment.set("value", jsonData.alias);'),
        (ExtractionStrategy.LIST, "credit.balanceId"),
        (ExtractionStrategy.OPERATION, 'op.type === "CREDIT"'),
    ],
)
def test_extraction_strategies(strategy: ExtractionStrategy, fragment: str) -> None:
    lines = extraction_lines("value", strategy)
    assert lines[0] == "try {"
    assert lines[-1] == "}"
    assert fragment in _text(lines)


def test_variable_names_are_escaped() -> None:
    script = _text(extraction_lines('we"ird', ExtractionStrategy.ID))
    assert 'pm.environment.set("we\\"ird", jsonData.id);' in script


def test_chaining_lines() -> None:
    assert next_request_lines("2. Create Organization")[-1] == 'pm.execution.setNextRequest("2. Create Organization");'
    assert completion_lines()[-1] == 'console.log("E2E workflow completed successfully!");'
