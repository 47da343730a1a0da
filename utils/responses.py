"""
Standardized HTTP response utilities for Lambda functions.

This module provides consistent response formatting, error handling,
and JSON serialization across all API endpoints.
"""

import base64
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

from .exceptions import EStockError


class HTTPStatus(Enum):
    """HTTP status codes for API responses."""

    OK = 200
    CREATED = 201
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503


# CORS headers for API responses
cors_headers = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,PUT,PATCH,DELETE,OPTIONS",
}

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class APIJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for API responses that handles:
    - Decimal numbers read back from DynamoDB
    - datetime and date objects
    - Enums (roles, field kinds)
    - Pydantic models
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return int(obj) if obj == obj.to_integral_value() else float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json", by_alias=True)
        return super().default(obj)


def create_response(
    status_code: Union[int, HTTPStatus],
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    cors_enabled: bool = True,
) -> Dict[str, Any]:
    """
    Create a standardized Lambda HTTP response.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized)
        headers: Additional headers
        cors_enabled: Whether to include CORS headers

    Returns:
        Lambda HTTP response dictionary
    """
    if isinstance(status_code, HTTPStatus):
        status_code = status_code.value

    response_headers = {}
    if cors_enabled:
        response_headers.update(cors_headers)
    if headers:
        response_headers.update(headers)

    response = {
        "statusCode": status_code,
        "headers": response_headers,
    }

    if body is not None:
        if isinstance(body, (dict, list)) or hasattr(body, "model_dump"):
            response["body"] = json.dumps(body, cls=APIJSONEncoder)
            response_headers.setdefault("Content-Type", "application/json")
        else:
            response["body"] = str(body)

    return response


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    status_code: Union[int, HTTPStatus] = HTTPStatus.OK,
) -> Dict[str, Any]:
    """
    Create a success response.

    Dictionaries are merged into the top level of the body; anything else is
    placed under ``data``.
    """
    body = {}

    if message:
        body["message"] = message

    if data is not None:
        if isinstance(data, dict):
            body.update(data)
        else:
            body["data"] = data

    return create_response(status_code, body)


def error_response(
    message: str,
    status_code: Union[int, HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    Create an error response.

    Args:
        message: Error message
        status_code: HTTP status code
        error_code: Application-specific error code
        details: Additional error details
        headers: Additional headers

    Returns:
        Lambda HTTP response dictionary
    """
    body = {"error": message}

    if error_code:
        body["error_code"] = error_code
    if details:
        body["details"] = details

    return create_response(status_code, body, headers=headers)


def exception_response(error: EStockError) -> Dict[str, Any]:
    """Render an application exception with its own status and code."""
    return error_response(
        error.message,
        status_code=error.status_code,
        error_code=error.error_code,
        details=error.details or None,
    )


def validation_error_response(
    message: str = "Validation failed", errors: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    return error_response(
        message=message,
        status_code=HTTPStatus.BAD_REQUEST,
        error_code="VALIDATION_ERROR",
        details=errors,
    )


def not_found_response(
    resource: str, identifier: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create a not found error response.

    Args:
        resource: Resource type (e.g., "User", "Record")
        identifier: Resource identifier
    """
    if identifier:
        message = f"{resource} '{identifier}' not found"
    else:
        message = f"{resource} not found"

    return error_response(
        message=message,
        status_code=HTTPStatus.NOT_FOUND,
        error_code="RESOURCE_NOT_FOUND",
    )


def unauthorized_response(message: str = "Unauthorized access") -> Dict[str, Any]:
    return error_response(
        message=message, status_code=HTTPStatus.UNAUTHORIZED, error_code="UNAUTHENTICATED"
    )


def forbidden_response(message: str = "Forbidden") -> Dict[str, Any]:
    return error_response(
        message=message, status_code=HTTPStatus.FORBIDDEN, error_code="FORBIDDEN"
    )


def method_not_allowed_response(allowed: Iterable[str]) -> Dict[str, Any]:
    """405 with an ``Allow`` header and no body."""
    return create_response(
        HTTPStatus.METHOD_NOT_ALLOWED, headers={"Allow": ", ".join(allowed)}
    )


def file_response(
    content: bytes, filename: str, content_type: str = XLSX_CONTENT_TYPE
) -> Dict[str, Any]:
    """
    Create a binary download response.

    API Gateway decodes the base64 body when ``isBase64Encoded`` is set.
    """
    response = create_response(
        HTTPStatus.OK,
        headers={
            "Content-Type": content_type,
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )
    response["body"] = base64.b64encode(content).decode("ascii")
    response["isBase64Encoded"] = True
    return response
