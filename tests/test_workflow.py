"""Workflow composition over a compiled collection."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from openapi_collection_compiler.dependencies import DependencyEntry, DependencyGraph, ExtractionStrategy
from openapi_collection_compiler.ledger import LEDGER_PROFILE
from openapi_collection_compiler.postman import (
    Body,
    Collection,
    Event,
    Folder,
    Info,
    Item,
    Request,
    Script,
    Url,
)
from openapi_collection_compiler.workflow import (
    WorkflowConfigError,
    WorkflowStep,
    compose_workflow,
    find_item,
    load_workflow_config,
    unresolved_inputs,
)


def _item(method: str, path: str, name: str, body: dict | None = None) -> Item:
    segments = [segment for segment in path.split("/") if segment]
    request = Request(
        method=method,
        url=Url(raw="{{baseUrl}}/" + "/".join(segments), host=["{{baseUrl}}"], path=segments),
        body=Body(raw=json.dumps(body, indent=2)) if body is not None else None,
    )
    item = Item(
        name=name,
        request=request,
        event=[Event(listen="test", script=Script(exec=["// base test"]))],
    )
    return item.bind_source(method=method, path=path)


def _collection() -> Collection:
    return Collection(
        info=Info(name="Widgets"),
        item=[
            Folder(
                name="Widgets",
                item=[
                    _item("GET", "/widgets", "List Widgets"),
                    _item("POST", "/widgets", "Create Widget", {"name": "string", "size": 0}),
                    _item("GET", "/widgets/{id}", "Retrieve Widget"),
                    _item("DELETE", "/widgets/{id}", "Delete Widget"),
                ],
            )
        ],
    )


def _test_lines(item: Item) -> list[str]:
    return item.script("test").exec


def test_missing_step_is_skipped_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    steps = [
        WorkflowStep("POST", "/widgets", "1. Create"),
        WorkflowStep("PUT", "/gadgets", "2. Replace Gadget"),
        WorkflowStep("GET", "/widgets/{id}", "3. Read"),
    ]

    composed, warnings = compose_workflow(_collection(), steps)

    folder = composed.folder("E2E Flow")
    assert folder is not None
    assert [item.name for item in folder.item] == ["1. Create", "3. Read"]
    assert warnings == ["Could not find request for workflow step: 2. Replace Gadget"]
    assert "Could not find request for workflow step: 2. Replace Gadget" in caplog.text


def test_steps_chain_to_next_included_step() -> None:
    steps = [
        WorkflowStep("POST", "/widgets", "1. Create"),
        WorkflowStep("PUT", "/gadgets", "2. Missing"),
        WorkflowStep("GET", "/widgets/{id}", "3. Read"),
    ]

    composed, _warnings = compose_workflow(_collection(), steps)
    first, last = composed.folder("E2E Flow").item

    assert _test_lines(first)[-1] == 'pm.execution.setNextRequest("3. Read");'
    assert _test_lines(last)[-1] == 'console.log("E2E workflow completed successfully!");'
    assert _test_lines(first)[0] == "// base test"


def test_source_collection_is_not_modified() -> None:
    collection = _collection()
    before = collection.render()

    composed, _warnings = compose_workflow(
        collection,
        [WorkflowStep("POST", "/widgets", "1. Create", body_override=lambda body: {**body, "size": 3})],
    )

    assert collection.render() == before
    assert [folder.name for folder in composed.item] == ["Widgets", "E2E Flow"]
    original = composed.folder("Widgets").item[1]
    assert original.name == "Create Widget"
    assert json.loads(original.request.body.raw) == {"name": "string", "size": 0}


def test_body_override() -> None:
    composed, warnings = compose_workflow(
        _collection(),
        [WorkflowStep("POST", "/widgets", "1. Create", body_override=lambda body: {**body, "size": 3})],
    )
    clone = composed.folder("E2E Flow").item[0]
    assert json.loads(clone.request.body.raw) == {"name": "string", "size": 3}
    assert warnings == []


def test_body_override_without_body_warns() -> None:
    composed, warnings = compose_workflow(
        _collection(),
        [WorkflowStep("GET", "/widgets", "1. List", body_override=lambda body: {"x": 1})],
    )
    assert composed.folder("E2E Flow").item[0].request.body is None
    assert warnings == ["Workflow step '1. List' has no JSON body to override"]


def test_extracts_and_requires_are_appended() -> None:
    step = WorkflowStep(
        "GET",
        "/widgets/{id}",
        "1. Read",
        extracts=(("widgetAlias", ExtractionStrategy.ALIAS),),
        requires=("widgetId",),
    )
    composed, _warnings = compose_workflow(_collection(), [step])
    clone = composed.folder("E2E Flow").item[0]

    prerequest = "\n".join(clone.script("prerequest").exec)
    test = "\n".join(_test_lines(clone))
    assert "ERROR: widgetId is not set in the environment. This request will fail." in prerequest
    assert 'pm.environment.set("widgetAlias", jsonData.alias);' in test
    assert test.index("jsonData.alias") < test.index("E2E workflow completed successfully!")


def test_exact_match_beats_substring_match() -> None:
    collection = _collection()
    assert find_item(collection, "GET", "/widgets").name == "List Widgets"
    assert find_item(collection, "get", "/widgets/{id}").name == "Retrieve Widget"
    assert find_item(collection, "DELETE", "/widgets").name == "Delete Widget"
    assert find_item(collection, "PATCH", "/widgets") is None


def test_items_without_source_fall_back_to_url() -> None:
    item = Item(
        name="Imported",
        request=Request(method="GET", url=Url(raw="{{baseUrl}}/imported/things", host=["{{baseUrl}}"], path=[])),
    )
    collection = Collection(info=Info(name="x"), item=[Folder(name="f", item=[item])])
    assert find_item(collection, "GET", "/imported/things") is not None


def test_custom_folder_name_and_description() -> None:
    composed, _warnings = compose_workflow(
        _collection(),
        [WorkflowStep("GET", "/widgets", "1. List")],
        folder_name="Smoke",
        description="Quick pass",
    )
    folder = composed.folder("Smoke")
    assert folder is not None
    assert folder.description == "Quick pass"


def test_empty_workflow_adds_empty_folder() -> None:
    composed, warnings = compose_workflow(_collection(), [WorkflowStep("PUT", "/none", "1. None")])
    assert composed.folder("E2E Flow").item == []
    assert len(warnings) == 1


def test_unresolved_inputs_follow_step_order() -> None:
    steps = [
        WorkflowStep("GET", "/widgets/{id}", "1. Read", requires=("widgetId",)),
        WorkflowStep("POST", "/widgets", "2. Create", extracts=(("widgetId", ExtractionStrategy.ID),)),
        WorkflowStep("DELETE", "/widgets/{id}", "3. Delete", requires=("widgetId",)),
    ]
    assert unresolved_inputs(steps) == ["Workflow step '1. Read' uses 'widgetId' but no earlier step outputs it"]


def test_graph_provides_count_as_step_outputs() -> None:
    graph = DependencyGraph(entries={"POST /widgets": DependencyEntry(provides=("widgetId",))})
    steps = [
        WorkflowStep("POST", "/widgets", "1. Create"),
        WorkflowStep("GET", "/widgets/{id}", "2. Read", requires=("widgetId", "ownerId")),
    ]
    assert unresolved_inputs(steps) == [
        "Workflow step '2. Read' uses 'widgetId' but no earlier step outputs it",
        "Workflow step '2. Read' uses 'ownerId' but no earlier step outputs it",
    ]
    assert unresolved_inputs(steps, graph) == ["Workflow step '2. Read' uses 'ownerId' but no earlier step outputs it"]


def test_compose_reports_inputs_of_included_steps_only(caplog: pytest.LogCaptureFixture) -> None:
    steps = [
        WorkflowStep("PUT", "/gadgets", "1. Missing Provider", extracts=(("widgetId", ExtractionStrategy.ID),)),
        WorkflowStep("GET", "/widgets/{id}", "2. Read", requires=("widgetId",)),
    ]
    _composed, warnings = compose_workflow(_collection(), steps)
    message = "Workflow step '2. Read' uses 'widgetId' but no earlier step outputs it"
    assert warnings == ["Could not find request for workflow step: 1. Missing Provider", message]
    assert message in caplog.text


def test_load_workflow_config(tmp_path: Path) -> None:
    path = tmp_path / "workflow.yaml"
    path.write_text(
        "folder: Smoke\n"
        "description: Create then read\n"
        "steps:\n"
        "  - name: 1. Create\n"
        "    request: post /widgets\n"
        "    outputs: {widgetId: id}\n"
        "    body: {name: fixed}\n"
        "  - name: 2. Read\n"
        "    request: \"GET /widgets/{id}\"\n"
        "    uses: [widgetId]\n",
        encoding="utf-8",
    )

    definition = load_workflow_config(path)

    assert definition.folder_name == "Smoke"
    assert definition.description == "Create then read"
    create, read = definition.steps
    assert (create.method, create.path) == ("POST", "/widgets")
    assert create.extracts == (("widgetId", ExtractionStrategy.ID),)
    assert read.requires == ("widgetId",)
    assert unresolved_inputs(definition.steps) == []

    composed, warnings = compose_workflow(
        _collection(),
        definition.steps,
        folder_name=definition.folder_name,
    )
    assert warnings == []
    clone = composed.folder("Smoke").item[0]
    assert json.loads(clone.request.body.raw) == {"name": "fixed"}


@pytest.mark.parametrize(
    "payload",
    [
        {"steps": []},
        {"steps": [{"name": "1. Create", "request": "widgets"}]},
        {"steps": [{"name": "1. Create", "request": "POST /widgets", "outputs": {"widgetId": "nope"}}]},
        {"steps": [{"name": "1. Create", "request": "POST /widgets", "extra": True}]},
    ],
)
def test_invalid_workflow_config(tmp_path: Path, payload: dict) -> None:
    path = tmp_path / "workflow.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(WorkflowConfigError, match="Invalid workflow definition"):
        load_workflow_config(path)


def test_missing_workflow_config(tmp_path: Path) -> None:
    with pytest.raises(WorkflowConfigError, match="Cannot load workflow definition"):
        load_workflow_config(tmp_path / "absent.yaml")


def test_profile_with_workflow_replaces_scenario(tmp_path: Path) -> None:
    path = tmp_path / "workflow.json"
    path.write_text(
        json.dumps({"steps": [{"name": "1. Health", "request": "GET /v1/health"}]}),
        encoding="utf-8",
    )
    profile = LEDGER_PROFILE.with_workflow(load_workflow_config(path))
    assert [step.name for step in profile.workflow_steps] == ["1. Health"]
    assert profile.workflow_folder == LEDGER_PROFILE.workflow_folder
    assert profile.workflow_description == LEDGER_PROFILE.workflow_description
