"""Pre-request and test script generation.

Scripts are emitted as ordered lists of JavaScript statements, the form the
collection runner stores in an event's ``exec`` array.
"""

from __future__ import annotations

import json
from collections.abc import Callable

from .dependencies import DependencyEntry, ExtractionStrategy

IDEMPOTENCY_KEY_VARIABLE = "idempotencyKey"

_AUTH_LINES: tuple[str, ...] = (
    "// Check for auth token",
    'if (!pm.environment.get("authToken")) {',
    '  console.log("Warning: authToken is not set in the environment");',
    "}",
    "",
    "// Set authorization header if it exists",
    'if (pm.environment.get("authToken")) {',
    "  pm.request.headers.upsert({",
    '    key: "Authorization",',
    '    value: "Bearer " + pm.environment.get("authToken")',
    "  });",
    "}",
    "",
    "// Set request ID for tracing",
    "pm.request.headers.upsert({",
    '  key: "X-Request-Id",',
    '  value: pm.variables.replaceIn("{{$guid}}")',
    "});",
)

_IDEMPOTENCY_LINES: tuple[str, ...] = (
    "// Generate a unique idempotency key for this transaction",
    "const timestamp = new Date().getTime();",
    "const random = Math.floor(Math.random() * 1000000);",
    'const stepId = pm.variables.replaceIn("{{$guid}}");',
    f'pm.environment.set("{IDEMPOTENCY_KEY_VARIABLE}", '
    'timestamp + "-" + random + "-" + stepId.slice(0, 8));',
    f'console.log("Generated idempotency key:", pm.environment.get("{IDEMPOTENCY_KEY_VARIABLE}"));',
    "",
)

_STRUCTURE_LINES: tuple[str, ...] = (
    "",
    "// Validate response has the expected format",
    'pm.test("Response has the correct structure", function () {',
    "  // 204 No Content carries no body",
    "  if (pm.response.code === 204) {",
    "    pm.expect(true).to.be.true;",
    "    return;",
    "  }",
    "  pm.response.to.be.json;",
    "});",
)


def build_prerequest_script(entry: DependencyEntry, *, idempotent: bool = False) -> list[str]:
    """Build the pre-request script for one request.

    Args:
        entry (DependencyEntry): Dependency entry of the endpoint.
        idempotent (bool): Whether to generate a fresh idempotency key first.

    Returns:
        list[str]: Script statements.
    """
    lines: list[str] = []
    if idempotent:
        lines.extend(_IDEMPOTENCY_LINES)
    lines.extend(_AUTH_LINES)
    if entry.requires:
        lines.extend(["", "// Validate required variables"])
        for variable in entry.requires:
            lines.extend(required_variable_lines(variable))
    return lines


def required_variable_lines(variable: str, *, fatal: bool = False) -> list[str]:
    """Warn (or report an error, when ``fatal``) if ``variable`` is unbound."""
    if fatal:
        message = f"ERROR: {variable} is not set in the environment. This request will fail."
        call = "console.error"
    else:
        message = f"Warning: {variable} is not set. This request may fail."
        call = "console.log"
    return [
        f"if (!pm.environment.get({_js(variable)})) {{",
        f"  {call}({_js(message)});",
        "}",
    ]


def status_assertion_lines(method: str) -> list[str]:
    """Assert the success status expected for ``method``.

    POST accepts 200 or 201, DELETE requires 204 and every other method 200.
    """
    verb = method.upper()
    if verb == "POST":
        title = "Status code is 200 or 201"
        assertion = "pm.expect(pm.response.code).to.be.oneOf([200, 201]);"
    elif verb == "DELETE":
        title = "Status code is 204 No Content"
        assertion = "pm.expect(pm.response.code).to.equal(204);"
    else:
        title = "Status code is 200 OK"
        assertion = "pm.expect(pm.response.code).to.equal(200);"
    return [
        "// Test for successful response status",
        f"pm.test({_js(title)}, function () {{",
        f"  {assertion}",
        "});",
    ]


def extraction_lines(variable: str, strategy: ExtractionStrategy) -> list[str]:
    """Persist one variable from the response body into the environment."""
    target = _js(variable)
    match strategy:
        case ExtractionStrategy.ALIAS:
            body = _field_extraction(target, "alias")
        case ExtractionStrategy.LIST:
            body = [
                "  var jsonData = pm.response.json();",
                "  var operations = (jsonData && Array.isArray(jsonData.operations)) ? jsonData.operations : [];",
                "  var credit = operations.find(function (op) { return op.type === \"CREDIT\" && op.balanceId; });",
                "  var items = Array.isArray(jsonData) ? jsonData : (jsonData && jsonData.data);",
                "  if (credit) {",
                f"    pm.environment.set({target}, credit.balanceId);",
                f'    console.log({_js(variable + " set to: ")} + credit.balanceId);',
                "  } else if (Array.isArray(items) && items.length > 0 && items[0].id) {",
                f"    pm.environment.set({target}, items[0].id);",
                f'    console.log({_js(variable + " set to: ")} + items[0].id);',
                "  }",
            ]
        case ExtractionStrategy.OPERATION:
            body = [
                "  var jsonData = pm.response.json();",
                "  var operations = (jsonData && Array.isArray(jsonData.operations)) ? jsonData.operations : [];",
                "  var selected = operations.find(function (op) { return op.type === \"CREDIT\"; })",
                "    || operations.find(function (op) { return op.id; })",
                "    || operations[0];",
                "  if (selected && selected.id) {",
                f"    pm.environment.set({target}, selected.id);",
                f'    console.log({_js(variable + " set to: ")} + selected.id);',
                "  } else {",
                f'    console.warn({_js("No operation found for " + variable + " extraction")});',
                "  }",
            ]
        case _:
            body = _field_extraction(target, "id")
    return [
        "try {",
        *body,
        "} catch (error) {",
        f'  console.error({_js("Failed to extract " + variable + ": ")}, error);',
        "}",
    ]


def build_test_script(
    method: str,
    entry: DependencyEntry,
    extraction_for: Callable[[str], ExtractionStrategy],
) -> list[str]:
    """Build the test script for one request.

    Args:
        method (str): HTTP method of the request.
        entry (DependencyEntry): Dependency entry of the endpoint.
        extraction_for (Callable[[str], ExtractionStrategy]): Strategy lookup per variable.

    Returns:
        list[str]: Script statements.
    """
    lines = status_assertion_lines(method)
    lines.extend(_STRUCTURE_LINES)
    if entry.provides:
        lines.extend(["", "// Extract variables from response for use in subsequent requests"])
        for variable in entry.provides:
            lines.extend(extraction_lines(variable, extraction_for(variable)))
    return lines


def next_request_lines(next_name: str) -> list[str]:
    """Chain the runner to the named request."""
    return ["", "// Set next request in workflow", f"pm.execution.setNextRequest({_js(next_name)});"]


def completion_lines() -> list[str]:
    """Mark the final workflow step."""
    return [
        "",
        "// This is the last step in the workflow",
        'console.log("E2E workflow completed successfully!");',
    ]


def _field_extraction(target: str, field_name: str) -> list[str]:
    variable = json.loads(target)
    return [
        "  var jsonData = pm.response.json();",
        f"  if (jsonData && jsonData.{field_name}) {{",
        f"    pm.environment.set({target}, jsonData.{field_name});",
        f'    console.log({_js(variable + " set to: ")} + jsonData.{field_name});',
        "  }",
    ]


def _js(text: str) -> str:
    return json.dumps(text)
