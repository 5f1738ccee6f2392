"""End-to-end compiler and command line behavior."""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from openapi_collection_compiler.cli import main
from openapi_collection_compiler.compiler import compile_document, run_compile
from openapi_collection_compiler.loader import SpecNotFound, SpecParseError
from openapi_collection_compiler.profile import GENERIC_PROFILE
from openapi_collection_compiler.writer import WriteError

from .fixture_helpers import fixture_path, load_fixture, parametrize_fixtures

_EXPECTED_WORKFLOW = [
    "1. List Organizations",
    "2. Create Organization",
    "3. Get Organization",
    "4. Update Organization",
    "5. List Ledgers",
    "6. Create Ledger",
    "10. Create USD Asset",
    "13. List Accounts",
    "14. Create Account",
    "15. Get Account",
    "27. Create Transaction using JSON",
    "32. List All Balances",
    "33. Get Balance by ID",
    "46. Delete Organization",
]


def _run_cli(*args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    source_root = str(Path(__file__).resolve().parents[1] / "src")
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [source_root, env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "openapi_collection_compiler", *args],
        capture_output=True,
        text=True,
        check=False,
        env=env,
    )


def _items(collection: dict) -> list[dict]:
    return [item for folder in collection["item"] for item in folder["item"]]


def test_compile_ledger_fixture(tmp_path: Path) -> None:
    output = tmp_path / "out" / "collection.json"
    env = tmp_path / "out" / "environment.json"

    run = run_compile(input_path=fixture_path("ledger.yaml"), output_path=output, env_path=env)

    collection = json.loads(output.read_text(encoding="utf-8"))
    environment = json.loads(env.read_text(encoding="utf-8"))

    assert [folder["name"] for folder in collection["item"]] == [
        "Organizations",
        "Ledgers",
        "Assets",
        "Accounts",
        "Balances",
        "Transactions",
        "default",
        "E2E Flow",
    ]
    assert collection["info"]["name"] == "Ledger Onboarding API"
    assert collection["info"]["version"] == "2.1.0"
    assert "**MIDAZ**" in collection["info"]["description"]
    assert collection["item"][0]["description"] == "Organization lifecycle."

    organizations = collection["item"][0]["item"]
    create = next(item for item in organizations if item["name"] == "Create an Organization")
    assert create["request"]["url"]["raw"] == "{{onboardingUrl}}/v1/organizations"
    test_script = next(event for event in create["event"] if event["listen"] == "test")
    assert any('pm.environment.set("organizationId", jsonData.id);' in line for line in test_script["script"]["exec"])

    workflow = collection["item"][-1]
    assert [item["name"] for item in workflow["item"]] == _EXPECTED_WORKFLOW
    assert run.result.workflow_step_count == len(_EXPECTED_WORKFLOW)
    assert run.result.item_count == len(_items(collection))
    assert "Could not find request for workflow step: 7. Get Ledger" in run.result.warnings

    assert environment["name"] == "MIDAZ"
    keys = [value["key"] for value in environment["values"]]
    assert keys[:3] == ["authToken", "onboardingUrl", "transactionUrl"]
    assert "idempotencyKey" in keys
    assert run.result.environment_path == str(env)
    assert run.verification_report is None


def test_workflow_overrides_and_chaining(tmp_path: Path) -> None:
    output = tmp_path / "collection.json"
    run_compile(input_path=fixture_path("ledger.yaml"), output_path=output)
    workflow = json.loads(output.read_text(encoding="utf-8"))["item"][-1]["item"]
    by_name = {item["name"]: item for item in workflow}

    asset = json.loads(by_name["10. Create USD Asset"]["request"]["body"]["raw"])
    assert asset["code"] == "USD"
    assert asset["name"] == "US Dollar"

    account = json.loads(by_name["14. Create Account"]["request"]["body"]["raw"])
    assert "parentAccountId" not in account
    assert "portfolioId" not in account

    funding = by_name["27. Create Transaction using JSON"]
    assert json.loads(funding["request"]["body"]["raw"])["send"]["value"] == 1000
    prerequest = next(event for event in funding["event"] if event["listen"] == "prerequest")
    assert any("ERROR: accountId is not set" in line for line in prerequest["script"]["exec"])

    for current, following in zip(workflow, workflow[1:]):
        test = next(event for event in current["event"] if event["listen"] == "test")
        assert test["script"]["exec"][-1] == f"pm.execution.setNextRequest({json.dumps(following['name'])});"
    last_test = next(event for event in workflow[-1]["event"] if event["listen"] == "test")
    assert last_test["script"]["exec"][-1] == 'console.log("E2E workflow completed successfully!");'


def test_compile_is_deterministic_apart_from_timestamps(tmp_path: Path) -> None:
    first = tmp_path / "first.json"
    second = tmp_path / "second.json"
    run_compile(input_path=fixture_path("ledger.yaml"), output_path=first)
    run_compile(input_path=fixture_path("ledger.yaml"), output_path=second)

    def _without_responses(path: Path) -> dict:
        # Response examples synthesize date-time values from the wall clock.
        document = json.loads(path.read_text(encoding="utf-8"))
        for item in _items(document):
            item.pop("response", None)
        return document

    assert _without_responses(first) == _without_responses(second)


@parametrize_fixtures()
def test_every_fixture_compiles(tmp_path: Path, fixture_path: Path) -> None:
    output = tmp_path / "collection.json"
    run = run_compile(input_path=fixture_path, output_path=output, workflow=False)
    assert run.result.item_count > 0
    assert run.result.workflow_step_count == 0
    assert json.loads(output.read_text(encoding="utf-8"))["info"]["schema"].endswith("collection.json")


def test_compile_document_with_generic_profile() -> None:
    compiled = compile_document(load_fixture("ledger.yaml"), profile=GENERIC_PROFILE)
    assert compiled.workflow_step_count == 0
    assert compiled.collection.folder("E2E Flow") is None
    assert compiled.environment.name == "API"
    keys = compiled.environment.keys()
    assert keys[:2] == ["authToken", "baseUrl"]
    assert keys[-1] == "idempotencyKey"
    assert "onboardingUrl" not in keys


def test_exclude_and_environment_name(tmp_path: Path) -> None:
    output = tmp_path / "collection.json"
    run = run_compile(
        input_path=fixture_path("ledger.yaml"),
        output_path=output,
        exclude=("/transactions",),
        environment_name="SANDBOX",
        workflow=False,
    )
    collection = json.loads(output.read_text(encoding="utf-8"))
    assert "Transactions" not in [folder["name"] for folder in collection["item"]]
    assert collection["variable"][0]["value"] == "SANDBOX"
    assert run.result.environment_path is None


def test_dependency_configuration_replaces_table(tmp_path: Path) -> None:
    deps = tmp_path / "deps.yaml"
    deps.write_text(
        "dependencies:\n  GET /v1/health:\n    provides: [healthToken]\n",
        encoding="utf-8",
    )
    output = tmp_path / "collection.json"
    env = tmp_path / "env.json"

    run_compile(
        input_path=fixture_path("ledger.yaml"),
        output_path=output,
        env_path=env,
        dependencies_path=deps,
        workflow=False,
    )

    items = {item["name"]: item for item in _items(json.loads(output.read_text(encoding="utf-8")))}
    health_test = next(event for event in items["GET /v1/health"]["event"] if event["listen"] == "test")
    assert any('pm.environment.set("healthToken", jsonData.id);' in line for line in health_test["script"]["exec"])
    create_test = next(event for event in items["Create an Organization"]["event"] if event["listen"] == "test")
    assert not any("organizationId" in line for line in create_test["script"]["exec"])
    keys = [value["key"] for value in json.loads(env.read_text(encoding="utf-8"))["values"]]
    assert "healthToken" in keys


def test_verify_reports_bodies(tmp_path: Path) -> None:
    run = run_compile(
        input_path=fixture_path("organizations_swagger2.json"),
        output_path=tmp_path / "collection.json",
        verify=True,
    )
    assert run.verification_report is not None
    assert run.verification_report.verified_count == 1
    assert run.verification_report.mismatch_count == 0


def test_missing_input_raises_without_output(tmp_path: Path) -> None:
    output = tmp_path / "collection.json"
    with pytest.raises(SpecNotFound):
        run_compile(input_path=tmp_path / "missing.yaml", output_path=output)
    assert not output.exists()


def test_parse_failure_writes_nothing(tmp_path: Path) -> None:
    source = tmp_path / "broken.json"
    source.write_text("{", encoding="utf-8")
    output = tmp_path / "collection.json"
    with pytest.raises(SpecParseError):
        run_compile(input_path=source, output_path=output)
    assert not output.exists()


def test_environment_write_failure_removes_collection(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    output = tmp_path / "collection.json"
    with pytest.raises(WriteError):
        run_compile(
            input_path=fixture_path("ledger.yaml"),
            output_path=output,
            env_path=blocker / "environment.json",
        )
    assert not output.exists()


def test_unquoted_yaml_dates_compile(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "collection.json"

    exit_code = main([str(fixture_path("events.yaml")), str(output), "--no-workflow"])

    assert exit_code == 0, capsys.readouterr().err
    create = _items(json.loads(output.read_text(encoding="utf-8")))[0]
    assert json.loads(create["request"]["body"]["raw"]) == {
        "title": "Launch",
        "startsOn": "2024-01-01",
        "opensAt": "2024-01-01T10:00:00+00:00",
    }
    created = next(response for response in create["response"] if response["code"] == 201)
    assert json.loads(created["body"])["startsOn"] == "2024-01-01"


def test_compile_document_accepts_raw_yaml_dates() -> None:
    compiled = compile_document(load_fixture("events.yaml"), workflow=False)
    item = next(compiled.collection.iter_items())
    assert json.loads(item.request.body.raw)["startsOn"] == "2024-01-01"


def test_workflow_file_replaces_builtin_scenario(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    workflow = tmp_path / "workflow.yaml"
    workflow.write_text(
        "folder: Smoke\n"
        "steps:\n"
        "  - name: 1. Create Organization\n"
        "    request: POST /v1/organizations\n"
        "  - name: 2. Read Organization\n"
        "    request: \"GET /v1/organizations/{id}\"\n"
        "    uses: [organizationId]\n"
        "  - name: 3. Create Ledger\n"
        "    request: \"POST /v1/organizations/{organization_id}/ledgers\"\n"
        "    uses: [organizationId, portfolioId]\n",
        encoding="utf-8",
    )
    output = tmp_path / "collection.json"

    exit_code = main([str(fixture_path("ledger.yaml")), str(output), "--workflow", str(workflow)])

    captured = capsys.readouterr()
    assert exit_code == 0
    folder = json.loads(output.read_text(encoding="utf-8"))["item"][-1]
    assert folder["name"] == "Smoke"
    assert [item["name"] for item in folder["item"]] == [
        "1. Create Organization",
        "2. Read Organization",
        "3. Create Ledger",
    ]
    assert "Workflow steps: 3" in captured.out
    assert "Warning: Workflow step '3. Create Ledger' uses 'portfolioId' but no earlier step outputs it" in captured.out
    assert "organizationId' but no earlier" not in captured.out


def test_main_invalid_workflow_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    workflow = tmp_path / "workflow.json"
    workflow.write_text('{"steps": [{"name": "x", "request": "nowhere"}]}', encoding="utf-8")
    output = tmp_path / "out.json"
    exit_code = main([str(fixture_path("ledger.yaml")), str(output), "--workflow", str(workflow)])
    assert exit_code == 1
    assert "Invalid workflow definition" in capsys.readouterr().err
    assert not output.exists()


def test_main_success(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "collection.json"
    env = tmp_path / "environment.json"

    exit_code = main([str(fixture_path("ledger.yaml")), str(output), "--env", str(env), "--verify"])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert output.is_file()
    assert env.is_file()
    assert "Warning: Could not find request for workflow step: 7. Get Ledger" in captured.out
    assert "Verified bodies:" in captured.out
    assert f"Environment written to {env}" in captured.out


def test_main_missing_input(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main([str(tmp_path / "missing.yaml"), str(tmp_path / "out.json")])
    captured = capsys.readouterr()
    assert exit_code == 1
    assert "openapi-collection-compiler: error: Input file not found" in captured.err
    assert not (tmp_path / "out.json").exists()


def test_main_invalid_dependency_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    deps = tmp_path / "deps.json"
    deps.write_text('{"dependencies": {"nonsense": {}}}', encoding="utf-8")
    exit_code = main([str(fixture_path("ledger.yaml")), str(tmp_path / "out.json"), "--dependencies", str(deps)])
    assert exit_code == 1
    assert "Invalid dependency configuration" in capsys.readouterr().err


def test_main_usage_error_exits_one(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["only-one-argument.yaml"])
    assert excinfo.value.code == 1
    assert "usage:" in capsys.readouterr().err


def test_cli_module_entry_point(tmp_path: Path) -> None:
    output = tmp_path / "collection.json"
    result = _run_cli(str(fixture_path("organizations_swagger2.json")), str(output), "--no-workflow")
    assert result.returncode == 0, result.stderr
    assert "Collection written to" in result.stdout
    collection = json.loads(output.read_text(encoding="utf-8"))
    assert collection["info"]["name"] == "Organizations (Swagger 2)"


def test_cli_without_arguments_exits_one() -> None:
    result = _run_cli()
    assert result.returncode == 1
    assert "usage:" in result.stderr


def test_cli_unparsable_input_exits_one(tmp_path: Path) -> None:
    source = tmp_path / "broken.yaml"
    source.write_text("paths: [unclosed", encoding="utf-8")
    output = tmp_path / "collection.json"
    result = _run_cli(str(source), str(output))
    assert result.returncode == 1
    assert "Failed to parse YAML" in result.stderr
    assert not output.exists()
