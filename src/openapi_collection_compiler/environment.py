"""Environment template listing every variable the collection reads."""

from __future__ import annotations

from collections.abc import Iterable

from .dependencies import DependencyGraph
from .naming import template_variables
from .postman import Collection, Environment, EnvironmentValue, Item
from .routing import RoutingTable
from .scripts import IDEMPOTENCY_KEY_VARIABLE

AUTH_TOKEN_VARIABLE = "authToken"


def build_environment(
    name: str,
    *,
    graph: DependencyGraph,
    routing: RoutingTable,
    collection: Collection | None = None,
) -> Environment:
    """Build the environment template.

    Entries, all with empty values: the auth token (``secret``), every base-URL
    variable, every dependency variable, every ``{{variable}}`` referenced by a
    compiled URL and the idempotency key. Dynamic ``{{$...}}`` variables are
    left to the runner.

    Args:
        name (str): Environment name.
        graph (DependencyGraph): Dependency graph used for the compile.
        routing (RoutingTable): Service routing used for the compile.
        collection (Collection | None): Compiled collection to scan for URL variables.

    Returns:
        Environment: The environment document.
    """
    keys: dict[str, None] = {}
    for key in (
        AUTH_TOKEN_VARIABLE,
        *routing.base_variables(),
        *graph.variables(),
        *(_url_variables(collection.iter_items()) if collection is not None else ()),
        IDEMPOTENCY_KEY_VARIABLE,
    ):
        if key and not key.startswith("$"):
            keys.setdefault(key, None)

    return Environment(
        name=name,
        values=[
            EnvironmentValue(key=key, type="secret" if key == AUTH_TOKEN_VARIABLE else "default")
            for key in keys
        ],
    )


def _url_variables(items: Iterable[Item]) -> list[str]:
    found: list[str] = []
    for item in items:
        url = item.request.url
        found.extend(template_variables(url.raw))
        for variable in url.variable:
            found.extend(template_variables(variable.value))
    return found
