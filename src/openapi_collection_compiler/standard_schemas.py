"""Canonical schema and response definitions injected by the enhancer."""

from __future__ import annotations

from .json_types import MutableJSONObject

ERROR_SCHEMA_REF = "#/components/schemas/Error"
_REQUEST_ID = "req_abc123def456"
_TIMESTAMP = "2023-04-01T12:34:56Z"
_ENTITY_ID = "f47ac10b-58cc-4372-a567-0e02b2c3d479"
_CURSOR = "MDAwMDAwMDAtMDAwMC0wMDAwLTAwMDAtMDAwMDAwMDAwMDAwMA=="

PAGINATION_SCHEMA: MutableJSONObject = {
    "description": (
        "Pagination is a standardized structure used across all list endpoints. "
        "It supports both cursor-based navigation (prev_cursor/next_cursor) and "
        "offset-based navigation (page/limit)."
    ),
    "type": "object",
    "properties": {
        "limit": {
            "description": "Maximum number of items to return per page.",
            "type": "integer",
            "minimum": 1,
            "maximum": 100,
            "example": 10,
        },
        "page": {
            "description": "Current page number in offset-based pagination. Pages are 1-indexed.",
            "type": "integer",
            "minimum": 1,
            "example": 1,
        },
        "next_cursor": {
            "description": "Opaque cursor for the next page; null or empty on the last page.",
            "type": "string",
            "nullable": True,
            "x-omitempty": True,
            "example": _CURSOR,
        },
        "prev_cursor": {
            "description": "Opaque cursor for the previous page; null or empty on the first page.",
            "type": "string",
            "nullable": True,
            "x-omitempty": True,
            "example": _CURSOR,
        },
        "total_items": {
            "description": "Total number of matching items across all pages, when affordable.",
            "type": "integer",
            "nullable": True,
            "x-omitempty": True,
        },
        "total_pages": {
            "description": "Total number of pages for the current limit, when affordable.",
            "type": "integer",
            "nullable": True,
            "x-omitempty": True,
        },
    },
    "example": {
        "prev_cursor": None,
        "next_cursor": _CURSOR,
        "limit": 10,
        "page": 1,
        "total_items": 42,
        "total_pages": 5,
    },
}

ERROR_SCHEMA: MutableJSONObject = {
    "description": (
        "Standardized error response format used across all API endpoints. "
        "Provides a code, a message and optional field-level validation detail."
    ),
    "type": "object",
    "required": ["code", "message"],
    "properties": {
        "code": {
            "description": "Error code in the form ERR_[CATEGORY]_[SPECIFIC].",
            "type": "string",
            "maxLength": 50,
            "example": "ERR_INVALID_INPUT",
        },
        "message": {
            "description": "Human-readable error message.",
            "type": "string",
            "example": "The provided input data is invalid.",
        },
        "details": {
            "description": "Additional detail intended for developers.",
            "type": "string",
            "x-omitempty": True,
            "example": "Validation failed for the following fields: legalName, legalDocument",
        },
        "entityType": {
            "description": "Type of entity associated with the error.",
            "type": "string",
            "maxLength": 100,
            "x-omitempty": True,
            "example": "Organization",
        },
        "entityId": {
            "description": "ID of the entity associated with the error.",
            "type": "string",
            "format": "uuid",
            "x-omitempty": True,
            "example": _ENTITY_ID,
        },
        "fields": {
            "description": "Map of field names to validation messages.",
            "type": "object",
            "additionalProperties": {"type": "string"},
            "x-omitempty": True,
            "example": {
                "legalName": "Legal name is required and must be between 3 and 150 characters",
                "legalDocument": "Legal document must be a valid identification number",
            },
        },
        "requestId": {
            "description": "Unique identifier for this request.",
            "type": "string",
            "x-omitempty": True,
            "example": _REQUEST_ID,
        },
        "timestamp": {
            "description": "ISO8601 timestamp of when the error occurred.",
            "type": "string",
            "format": "date-time",
            "example": _TIMESTAMP,
        },
    },
    "example": {
        "code": "ERR_INVALID_INPUT",
        "message": "The provided input data is invalid.",
        "details": "Validation failed for the following fields: legalName, legalDocument",
        "entityType": "Organization",
        "fields": {
            "legalName": "Legal name is required and must be between 3 and 150 characters",
            "legalDocument": "Legal document must be a valid identification number",
        },
        "requestId": _REQUEST_ID,
        "timestamp": _TIMESTAMP,
    },
}


def _error_response(
    description: str,
    examples: dict[str, tuple[str, MutableJSONObject]],
) -> MutableJSONObject:
    named: MutableJSONObject = {}
    for key, (summary, value) in examples.items():
        payload: MutableJSONObject = dict(value)
        payload.setdefault("requestId", _REQUEST_ID)
        payload.setdefault("timestamp", _TIMESTAMP)
        named[key] = {"summary": summary, "value": payload}
    return {
        "description": description,
        "content": {
            "application/json": {
                "schema": {"$ref": ERROR_SCHEMA_REF},
                "examples": named,
            }
        },
    }


STANDARD_ERROR_RESPONSES: dict[str, MutableJSONObject] = {
    "BadRequest": _error_response(
        "Bad Request - The request was invalid or cannot be otherwise served.",
        {
            "validation_error": (
                "Validation Error",
                {
                    "code": "ERR_VALIDATION_FAILED",
                    "message": "Request validation failed",
                    "details": "One or more fields failed validation",
                    "fields": {
                        "legalName": "Must be between 3 and 150 characters",
                        "legalDocument": "Must be a valid document format",
                    },
                },
            ),
            "missing_field": (
                "Missing Required Field",
                {
                    "code": "ERR_MISSING_REQUIRED_FIELD",
                    "message": "Missing required field",
                    "details": "The request is missing one or more required fields",
                    "fields": {"legalName": "This field is required"},
                },
            ),
        },
    ),
    "Unauthorized": _error_response(
        "Unauthorized - Authentication is required and has failed or has not been provided.",
        {
            "no_token": (
                "No Authentication Token",
                {
                    "code": "ERR_NO_AUTH_TOKEN",
                    "message": "Authentication required",
                    "details": "No authentication token was provided in the request",
                },
            ),
            "invalid_token": (
                "Invalid Authentication Token",
                {
                    "code": "ERR_INVALID_AUTH_TOKEN",
                    "message": "Invalid authentication token",
                    "details": "The provided authentication token is invalid or expired",
                },
            ),
        },
    ),
    "Forbidden": _error_response(
        "Forbidden - The server understood the request but refuses to authorize it.",
        {
            "insufficient_permissions": (
                "Insufficient Permissions",
                {
                    "code": "ERR_INSUFFICIENT_PERMISSIONS",
                    "message": "Insufficient permissions",
                    "details": "You do not have the required permissions to perform this operation",
                    "entityType": "Organization",
                    "entityId": _ENTITY_ID,
                },
            ),
        },
    ),
    "NotFound": _error_response(
        "Not Found - The requested resource could not be found.",
        {
            "resource_not_found": (
                "Resource Not Found",
                {
                    "code": "ERR_RESOURCE_NOT_FOUND",
                    "message": "Resource not found",
                    "details": "The requested resource does not exist or has been deleted",
                    "entityType": "Organization",
                    "entityId": _ENTITY_ID,
                },
            ),
        },
    ),
    "InternalServerError": _error_response(
        "Internal Server Error - An unexpected error occurred on the server.",
        {
            "internal_error": (
                "Internal Server Error",
                {
                    "code": "ERR_INTERNAL_SERVER_ERROR",
                    "message": "An unexpected error occurred",
                    "details": (
                        "The server encountered an unexpected condition that prevented "
                        "it from fulfilling the request"
                    ),
                },
            ),
        },
    ),
}

STATUS_RESPONSE_NAMES: dict[str, str] = {
    "400": "BadRequest",
    "401": "Unauthorized",
    "403": "Forbidden",
    "404": "NotFound",
    "500": "InternalServerError",
}
