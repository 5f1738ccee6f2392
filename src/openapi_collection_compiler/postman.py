"""pydantic models of the collection (v2.1) and environment documents."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

COLLECTION_SCHEMA_URL = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"


class PostmanModel(BaseModel):
    """Base for every emitted node: populate by field name, dump by alias."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def render(self) -> dict[str, Any]:
        """Return the JSON-ready document."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Variable(PostmanModel):
    key: str
    value: str = ""
    type: str = "string"
    description: Optional[str] = None


class Header(PostmanModel):
    key: str
    value: str = ""
    description: str = ""
    disabled: bool = False


class QueryParam(PostmanModel):
    key: str
    value: str = ""
    description: str = ""
    disabled: bool = False


class PathVariable(PostmanModel):
    key: str
    value: str = ""
    description: str = ""


class Url(PostmanModel):
    raw: str
    host: list[str]
    path: list[str]
    query: list[QueryParam] = Field(default_factory=list)
    variable: list[PathVariable] = Field(default_factory=list)


class RawOptions(PostmanModel):
    language: Literal["json", "text"] = "json"


class BodyOptions(PostmanModel):
    raw: RawOptions = Field(default_factory=RawOptions)


class Body(PostmanModel):
    mode: Literal["raw"] = "raw"
    raw: str
    options: BodyOptions = Field(default_factory=BodyOptions)

    @property
    def language(self) -> str:
        return self.options.raw.language


class Script(PostmanModel):
    type: str = "text/javascript"
    exec: list[str] = Field(default_factory=list)


class Event(PostmanModel):
    listen: Literal["prerequest", "test"]
    script: Script


class Request(PostmanModel):
    method: str
    header: list[Header] = Field(default_factory=list)
    url: Url
    body: Optional[Body] = None
    description: Optional[str] = None


class OriginalRequest(PostmanModel):
    method: str
    header: list[Header] = Field(default_factory=list)
    url: Url
    body: Optional[Body] = None


class ResponseHeader(PostmanModel):
    key: str
    value: str


class ResponseExample(PostmanModel):
    name: str
    original_request: OriginalRequest = Field(alias="originalRequest")
    status: str
    code: int
    preview_language: str = Field("json", alias="_postman_previewlanguage")
    header: list[ResponseHeader] = Field(
        default_factory=lambda: [ResponseHeader(key="Content-Type", value="application/json")]
    )
    cookie: list[dict[str, Any]] = Field(default_factory=list)
    body: str = ""


class Item(PostmanModel):
    """One compiled request.

    The source path and method are kept as private attributes so the workflow
    composer can match items structurally instead of by templated URL.
    """

    name: str
    request: Request
    event: list[Event] = Field(default_factory=list)
    response: list[ResponseExample] = Field(default_factory=list)

    _source_path: str = PrivateAttr(default="")
    _source_method: str = PrivateAttr(default="")

    @property
    def source_path(self) -> str:
        return self._source_path

    @property
    def source_method(self) -> str:
        return self._source_method or self.request.method

    def bind_source(self, *, method: str, path: str) -> Item:
        """Record the operation this item was compiled from and return the item."""
        self._source_method = method.upper()
        self._source_path = path
        return self

    def script(self, listen: Literal["prerequest", "test"]) -> Script:
        """Return the script of one event, creating the event when absent."""
        for event in self.event:
            if event.listen == listen:
                return event.script
        event = Event(listen=listen, script=Script())
        self.event.append(event)
        return event.script


class Folder(PostmanModel):
    name: str
    description: str = ""
    item: list[Item] = Field(default_factory=list)


class Info(PostmanModel):
    name: str
    description: str = ""
    schema_url: str = Field(COLLECTION_SCHEMA_URL, alias="schema")
    version: str = "1.0.0"


class Collection(PostmanModel):
    info: Info
    item: list[Folder] = Field(default_factory=list)
    variable: list[Variable] = Field(default_factory=list)

    def iter_items(self) -> Iterator[Item]:
        """Yield every request item, folder by folder."""
        for folder in self.item:
            yield from folder.item

    def folder(self, name: str) -> Optional[Folder]:
        for folder in self.item:
            if folder.name == name:
                return folder
        return None


class EnvironmentValue(PostmanModel):
    key: str
    value: str = ""
    type: Literal["default", "secret"] = "default"
    enabled: bool = True


class Environment(PostmanModel):
    name: str
    values: list[EnvironmentValue] = Field(default_factory=list)
    variable_scope: str = Field("environment", alias="_postman_variable_scope")

    def keys(self) -> list[str]:
        return [value.key for value in self.values]
