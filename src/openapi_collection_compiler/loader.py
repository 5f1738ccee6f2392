"""Interface description loading and minimal validation."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml
from openapi_spec_validator import validate
from openapi_spec_validator.validation.exceptions import (
    OpenAPIValidationError,
    ValidatorDetectError,
)
from referencing.exceptions import Unresolvable

from .json_types import JSONObject, JSONValue, SpecDocument

logger = logging.getLogger(__name__)

_JSON_SUFFIXES = frozenset({".json"})
_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class SpecLoadError(RuntimeError):
    """Raised when a source interface description cannot be loaded."""


class SpecNotFound(SpecLoadError):
    """Raised when the input path does not exist."""


class SpecParseError(SpecLoadError):
    """Raised when the input cannot be deserialized."""


class UnsupportedSpecFormat(SpecLoadError):
    """Raised when the input extension is neither JSON nor YAML."""


def load_spec(path: Path) -> SpecDocument:
    """Load an OpenAPI/Swagger document from a JSON or YAML file.

    The deserializer is chosen by file extension. YAML timestamps are turned
    back into ISO 8601 strings so the document stays JSON-serializable.

    Args:
        path (Path): Path to the interface description.

    Returns:
        SpecDocument: Parsed document as a mutable mapping.
    """
    if not path.exists():
        raise SpecNotFound(f"Input file not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in _JSON_SUFFIXES and suffix not in _YAML_SUFFIXES:
        raise UnsupportedSpecFormat(
            f"Input file must be JSON or YAML format (.json, .yaml, .yml): {path}"
        )

    try:
        with path.open("r", encoding="utf-8") as handle:
            if suffix in _JSON_SUFFIXES:
                payload = json.load(handle)
            else:
                payload = yaml.safe_load(handle)
    except OSError as exc:
        raise SpecLoadError(f"Failed to read input file {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise SpecParseError(f"Input file {path} is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SpecParseError(f"Failed to parse JSON in {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise SpecParseError(f"Failed to parse YAML in {path}: {exc}") from exc

    payload_value: JSONValue = json_compatible(payload)
    if not isinstance(payload_value, dict):
        raise SpecParseError(
            f"Interface description must deserialize to a mapping, got {type(payload_value)!r}"
        )
    return payload_value


def get_spec_version(document: JSONObject) -> str:
    """Return the declared ``openapi`` or ``swagger`` version, or an empty string."""
    for key in ("openapi", "swagger"):
        version = document.get(key)
        if isinstance(version, (str, int, float)) and str(version).strip():
            return str(version).strip()
    return ""


def is_swagger2(document: JSONObject) -> bool:
    """Return whether the document is a Swagger 2.0 description."""
    if "swagger" in document:
        return True
    return "definitions" in document and "components" not in document


def validate_spec(document: JSONObject) -> list[str]:
    """Run advisory validation and return warning messages.

    Documents declaring a version are checked with openapi-spec-validator
    (Swagger 2.0, OpenAPI 3.0 and 3.1). Problems never stop the compile.
    """
    warnings: list[str] = []
    version = get_spec_version(document)
    if not version:
        warnings.append("Interface description declares neither 'openapi' nor 'swagger' version")
    if not isinstance(document.get("paths"), dict):
        warnings.append("Interface description has no 'paths' object; no requests will be compiled")
    elif version:
        try:
            validate(_json_copy(document))
        except OpenAPIValidationError as exc:
            warnings.append(
                f"Interface description failed schema validation ({exc.message}); "
                "compiling anyway"
            )
        except (ValidatorDetectError, Unresolvable) as exc:
            warnings.append(f"Interface description could not be validated ({exc}); compiling anyway")
    for warning in warnings:
        logger.warning(warning)
    return warnings


def _json_copy(document: JSONObject) -> dict:
    # YAML allows integer keys (response codes) and dates; the validator wants plain JSON.
    return json.loads(json.dumps(document, default=str))


def json_compatible(value: Any) -> Any:
    """Return ``value`` with ``date``/``datetime`` leaves replaced by ISO 8601 strings.

    Mapping keys are kept as they are; YAML integer response codes stay integers.
    """
    if isinstance(value, dict):
        return {key: json_compatible(child) for key, child in value.items()}
    if isinstance(value, list):
        return [json_compatible(child) for child in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
