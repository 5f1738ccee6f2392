"""Request synthesizer: compile one operation into a runnable collection item."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from .dependencies import DependencyGraph
from .examples import ExampleSynthesizer, explicit_example
from .json_types import JSONValue, MutableJSONObject, SpecDocument
from .loader import json_compatible
from .model_types import OperationSpec, VerificationItem
from .naming import item_name
from .postman import (
    Body,
    BodyOptions,
    Event,
    Header,
    Item,
    OriginalRequest,
    PathVariable,
    QueryParam,
    RawOptions,
    Request,
    ResponseExample,
    Script,
    Url,
)
from .profile import CompilerProfile
from .resolver import ResolveError, Resolver
from .schema_utils import first_json_media
from .scripts import IDEMPOTENCY_KEY_VARIABLE, build_prerequest_script, build_test_script

logger = logging.getLogger(__name__)

IGNORE_MARKER = "swagger:ignore"
AUTH_HEADER = "Authorization"
REQUEST_ID_HEADER = "X-Request-Id"
IDEMPOTENCY_HEADER = "X-Idempotency"


@dataclass
class RequestSynthesizer:
    """Compile operations of one document into collection items.

    Holds the per-run state shared by every item: the resolver, the example
    synthesizer (and its accumulated warnings), the dependency graph and the
    bodies collected for optional verification.
    """

    document: SpecDocument
    profile: CompilerProfile
    graph: DependencyGraph
    resolver: Resolver = field(init=False)
    synthesizer: ExampleSynthesizer = field(init=False)
    verification_items: list[VerificationItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.resolver = Resolver(self.document)
        self.synthesizer = ExampleSynthesizer(self.resolver, self.profile.heuristics)

    def build_item(self, operation: OperationSpec) -> Item:
        """Compile one operation.

        Args:
            operation (OperationSpec): Operation to compile.

        Returns:
            Item: The collection item, bound to its source method and path.
        """
        method = operation.method.upper()
        path = operation.path
        parameters = self._parameters(operation)
        url = self._url(path, parameters)

        headers = self._headers(parameters)
        idempotent = self.profile.is_idempotent(method, path)
        if idempotent:
            headers.append(
                Header(
                    key=IDEMPOTENCY_HEADER,
                    value="{{" + IDEMPOTENCY_KEY_VARIABLE + "}}",
                    description="Unique key to prevent duplicate transactions",
                )
            )

        description = operation.operation.get("description")
        request = Request(
            method=method,
            header=headers,
            url=url,
            body=self._body(operation, parameters, url.raw),
            description=description if isinstance(description, str) and description else None,
        )

        entry = self.graph.lookup(method, path)
        if entry.is_empty:
            logger.debug("No dependency entry for %s; no variable checks generated", operation.key)
        item = Item(
            name=item_name(operation),
            request=request,
            event=[
                Event(
                    listen="prerequest",
                    script=Script(exec=build_prerequest_script(entry, idempotent=idempotent)),
                ),
                Event(
                    listen="test",
                    script=Script(
                        exec=build_test_script(method, entry, self.graph.extraction_for)
                    ),
                ),
            ],
        )
        item.response = self._response_examples(operation, request)
        return item.bind_source(method=method, path=path)

    def _parameters(self, operation: OperationSpec) -> list[MutableJSONObject]:
        merged: dict[tuple[str, str], MutableJSONObject] = {}
        for source in (operation.path_item.get("parameters"), operation.operation.get("parameters")):
            if not isinstance(source, list):
                continue
            for raw in source:
                parameter = self._deref(raw)
                if not isinstance(parameter, dict):
                    continue
                name = parameter.get("name")
                location = parameter.get("in")
                if not isinstance(name, str) or not isinstance(location, str):
                    continue
                merged[(name, location)] = parameter
        return list(merged.values())

    def _url(self, path: str, parameters: list[MutableJSONObject]) -> Url:
        routing = self.profile.routing
        base = "{{" + routing.base_variable(path) + "}}"
        segments = routing.template_segments(path)
        raw = base + "/" + "/".join(segments) if segments else base

        variables = [
            PathVariable(
                key=parameter["name"],
                value="{{" + routing.variable_for(parameter["name"], path) + "}}",
                description=_text(parameter.get("description")),
            )
            for parameter in parameters
            if parameter.get("in") == "path"
        ]
        query = [
            QueryParam(
                key=parameter["name"],
                value=_default_value(parameter),
                description=_text(parameter.get("description")),
                disabled=not bool(parameter.get("required")),
            )
            for parameter in parameters
            if parameter.get("in") == "query"
        ]
        return Url(raw=raw, host=[base], path=segments, query=query, variable=variables)

    def _headers(self, parameters: list[MutableJSONObject]) -> list[Header]:
        headers: list[Header] = []
        for parameter in parameters:
            if parameter.get("in") != "header":
                continue
            name = parameter["name"]
            if name.lower() == AUTH_HEADER.lower():
                value = "Bearer {{authToken}}"
            elif name.lower() == REQUEST_ID_HEADER.lower():
                value = "{{$guid}}"
            else:
                value = _default_value(parameter)
            headers.append(
                Header(
                    key=name,
                    value=value,
                    description=_text(parameter.get("description")),
                    disabled=not bool(parameter.get("required")),
                )
            )

        present = {header.key.lower() for header in headers}
        if AUTH_HEADER.lower() not in present:
            headers.append(
                Header(
                    key=AUTH_HEADER,
                    value="Bearer {{authToken}}",
                    description="Authorization Bearer Token",
                )
            )
        if REQUEST_ID_HEADER.lower() not in present:
            headers.append(
                Header(
                    key=REQUEST_ID_HEADER,
                    value="{{$guid}}",
                    description="Request ID",
                    disabled=True,
                )
            )
        return headers

    def _body(
        self,
        operation: OperationSpec,
        parameters: list[MutableJSONObject],
        url: str,
    ) -> Optional[Body]:
        method = operation.method.upper()
        text = self.profile.text_body_for(method, operation.path)
        if text is not None:
            return Body(raw=text, options=BodyOptions(raw=RawOptions(language="text")))

        schema: Any = None
        example: JSONValue
        request_body = self._deref(operation.operation.get("requestBody"))
        if isinstance(request_body, dict):
            media = first_json_media(request_body.get("content"))
            if media is None:
                return None
            schema = media.get("schema")
            found, explicit = _media_example(media, self._deref)
            example = explicit if found else self.synthesizer.synthesize(schema, url=url)
        else:
            body_parameter = next(
                (parameter for parameter in parameters if parameter.get("in") == "body"),
                None,
            )
            if body_parameter is None or not isinstance(body_parameter.get("schema"), dict):
                return None
            schema = body_parameter["schema"]
            example = self.synthesizer.synthesize(
                schema,
                url=url,
                excluded=self.profile.heuristics.excluded_body_properties,
            )

        example = self._strip_ignored(example, schema)
        example = self.profile.fix_body(method, operation.path, example)
        if isinstance(schema, dict):
            self.verification_items.append(
                VerificationItem(
                    item_name=item_name(operation),
                    method=method,
                    path=operation.path,
                    source_schema=schema,
                    body=example,
                )
            )
        return Body(raw=json.dumps(example, indent=2))

    def _response_examples(self, operation: OperationSpec, request: Request) -> list[ResponseExample]:
        responses = operation.operation.get("responses")
        if not isinstance(responses, dict):
            return []

        original = OriginalRequest(
            method=request.method,
            header=[header.model_copy() for header in request.header],
            url=request.url.model_copy(deep=True),
            body=request.body.model_copy(deep=True) if request.body is not None else None,
        )
        examples: list[ResponseExample] = []
        for status, raw_response in responses.items():
            status_text = str(status)
            if not status_text.isdigit():
                continue
            response = self._deref(raw_response)
            if not isinstance(response, dict):
                continue
            found, example = self._response_example(response)
            if not found:
                continue
            examples.append(
                ResponseExample(
                    name=f"{status_text} - {_text(response.get('description')) or 'Response'}",
                    original_request=original,
                    status=status_text,
                    code=int(status_text),
                    body=json.dumps(example, indent=2),
                )
            )
        return examples

    def _response_example(self, response: MutableJSONObject) -> tuple[bool, JSONValue]:
        media = first_json_media(response.get("content"))
        if media is not None:
            found, explicit = _media_example(media, self._deref)
            if found:
                return True, explicit
            if "schema" not in media:
                return False, None
            return True, self.synthesizer.synthesize(media["schema"])

        # Swagger 2 responses carry ``schema`` and ``examples`` directly.
        swagger_examples = response.get("examples")
        if isinstance(swagger_examples, dict) and "application/json" in swagger_examples:
            return True, json_compatible(swagger_examples["application/json"])
        if isinstance(response.get("schema"), dict):
            return True, self.synthesizer.synthesize(response["schema"])
        return False, None

    def _strip_ignored(self, value: JSONValue, schema: Any, depth: int = 0) -> JSONValue:
        """Drop fields marked ``swagger:ignore`` (and profile-ignored names) recursively."""
        if not isinstance(value, dict) or depth > self.synthesizer.max_depth:
            return value
        resolved = self._schema_of(schema)
        properties = resolved.get("properties") if isinstance(resolved, dict) else None
        if not isinstance(properties, dict):
            properties = {}

        stripped: MutableJSONObject = {}
        for name, child in value.items():
            if name in self.profile.ignored_body_fields:
                continue
            child_schema = self._schema_of(properties.get(name))
            description = child_schema.get("description") if isinstance(child_schema, dict) else None
            if isinstance(description, str) and IGNORE_MARKER in description:
                continue
            stripped[name] = self._strip_ignored(child, child_schema, depth + 1)
        return stripped

    def _schema_of(self, schema: Any) -> Any:
        if isinstance(schema, dict) and isinstance(schema.get("$ref"), str):
            return self.resolver.lookup_schema(schema["$ref"]) or {}
        return schema

    def _deref(self, node: Any) -> Any:
        try:
            return self.resolver.deref(node)
        except ResolveError as exc:
            message = str(exc)
            if message not in self.warnings:
                logger.warning(message)
                self.warnings.append(message)
            return None


def build_item(
    operation: OperationSpec,
    document: SpecDocument,
    *,
    profile: CompilerProfile,
    graph: Optional[DependencyGraph] = None,
) -> Item:
    """Compile a single operation without sharing state with other items."""
    synthesizer = RequestSynthesizer(
        document=document,
        profile=profile,
        graph=graph if graph is not None else profile.dependency_graph(),
    )
    return synthesizer.build_item(operation)


def _media_example(
    media: MutableJSONObject,
    deref: Callable[[Any], Any],
) -> tuple[bool, JSONValue]:
    named = media.get("examples")
    if isinstance(named, dict):
        for example in named.values():
            resolved = deref(example)
            if isinstance(resolved, dict) and "value" in resolved:
                return True, json_compatible(resolved["value"])
    return explicit_example({"example": media["example"]}) if "example" in media else (False, None)


def _default_value(parameter: MutableJSONObject) -> str:
    schema = parameter.get("schema")
    default = schema.get("default") if isinstance(schema, dict) else None
    if default is None:
        default = parameter.get("default")
    if default is None:
        return ""
    if isinstance(default, bool):
        return "true" if default else "false"
    return str(default)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""
