"""
Decorators for Lambda function handlers.

This module provides decorators that add consistent logging, error handling,
authorization and request parsing to Lambda functions.
"""

import base64
import json
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional, Type

import pydantic

from models.profile import Role, parse_role
from models.session import Session

from .exceptions import AccountDisabled, EStockError
from .logging import (log_error, log_lambda_event, log_lambda_response,
                      setup_logger)
from .responses import (HTTPStatus, error_response, exception_response,
                        forbidden_response, method_not_allowed_response,
                        success_response, unauthorized_response,
                        validation_error_response)


def lambda_handler(
    logger_name: Optional[str] = None,
    log_event: bool = True,
    log_response: bool = True,
    structured_logging: bool = True,
) -> Callable:
    """
    Decorator for Lambda function handlers that provides:
    - Consistent logging setup
    - Automatic event/response logging
    - Application exceptions rendered with their own status and error code
    - Any other exception logged and returned as a 500
    - Execution time tracking

    Args:
        logger_name: Logger name (defaults to function module name)
        log_event: Whether to log incoming events
        log_response: Whether to log responses
        structured_logging: Whether to use structured JSON logging

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            logger = setup_logger(
                logger_name or func.__module__, structured=structured_logging
            )

            start_time = time.time()

            def error_context() -> Dict[str, Any]:
                return {
                    "function_name": getattr(context, "function_name", "unknown"),
                    "request_id": getattr(context, "aws_request_id", "unknown"),
                    "execution_time_ms": (time.time() - start_time) * 1000,
                    "event_path": event.get("path") or event.get("rawPath"),
                    "event_method": http_method(event),
                }

            try:
                if log_event:
                    log_lambda_event(logger, event, context)

                response = func(event, context)

                # Ensure response is properly formatted
                if not isinstance(response, dict) or "statusCode" not in response:
                    logger.warning("Handler returned invalid response format")
                    response = error_response(
                        "Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR
                    )

            except EStockError as e:
                if e.status_code >= 500:
                    log_error(logger, e, error_context())
                else:
                    logger.warning(
                        f"Request rejected: {e.message}",
                        extra={"error_code": e.error_code, **error_context()},
                    )
                response = exception_response(e)

            except Exception as e:
                log_error(logger, e, error_context())
                return error_response(
                    "Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR
                )

            if log_response:
                execution_time = (time.time() - start_time) * 1000
                log_lambda_response(logger, response, execution_time)

            return response

        return wrapper

    return decorator


def http_method(event: Dict[str, Any]) -> Optional[str]:
    """HTTP method of a REST (v1) or HTTP API (v2) event."""
    method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get(
        "method"
    )
    return method.upper() if method else None


def _auth_context(event: Dict[str, Any]) -> Dict[str, Any]:
    # HTTP API puts the authorizer context under "lambda", REST API at the top
    authorizer_context = event.get("requestContext", {}).get("authorizer") or {}
    return authorizer_context.get("lambda", authorizer_context) or {}


def _flag(value: Any) -> bool:
    return value is True or str(value).lower() == "true"


def require_session(func: Callable) -> Callable:
    """
    Decorator that requires the session resolved by the Lambda authorizer.

    The session is placed in ``event["session"]``. Disabled accounts are
    rejected with 403 and ``signOut`` in the error details.
    """

    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        auth_context = _auth_context(event)

        if not auth_context.get("uid"):
            logger = setup_logger(__name__)
            logger.info(
                "Authorization failed - no valid context found",
                extra={"event_keys": list(event.keys())},
            )
            return unauthorized_response()

        if _flag(auth_context.get("disabled")):
            return exception_response(AccountDisabled(details={"signOut": True}))

        event["session"] = Session(
            uid=auth_context["uid"],
            email=auth_context.get("email") or "",
            display_name=auth_context.get("displayName") or "",
            role=parse_role(auth_context.get("role")),
        )
        return func(event, context)

    return wrapper


def require_role(*roles: Role) -> Callable:
    """Decorator that requires a session whose role is one of ``roles``."""
    allowed = frozenset(roles)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            session = event["session"]
            if session.role not in allowed:
                return forbidden_response(
                    f"Requires role: {', '.join(sorted(r.value for r in allowed))}"
                )
            return func(event, context)

        return require_session(wrapper)

    return decorator


def verify_bearer_token(resolver) -> Callable:
    """
    Decorator that verifies the bearer token inside the handler.

    For routes deployed without the Lambda authorizer: HTTP API answers a
    denied simple response with 403, while a missing, invalid or expired
    token here raises ``Unauthenticated`` and so renders as 401. The resolved
    session is stored as the authorizer context ``require_session`` reads;
    a request that already carries that context passes through unchanged.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            if not _auth_context(event).get("uid"):
                token = resolver.identity_provider.get_token_from_request(event)
                session = resolver.resolve_or_least_privilege(token)
                event.setdefault("requestContext", {})["authorizer"] = {
                    "lambda": {
                        "uid": session.uid,
                        "email": session.email,
                        "displayName": session.display_name,
                        "role": session.role.value,
                        "disabled": session.disabled,
                    }
                }
            return func(event, context)

        return wrapper

    return decorator


require_admin = require_role(Role.ADMIN)
require_writer = require_role(Role.ADMIN, Role.CONTRIBUTOR)


def allow_methods(*methods: str) -> Callable:
    """Decorator that answers 405 with an ``Allow`` header for other methods."""
    allowed = tuple(m.upper() for m in methods)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            if http_method(event) not in allowed:
                return method_not_allowed_response(allowed)
            return func(event, context)

        return wrapper

    return decorator


def _pydantic_errors(error: pydantic.ValidationError) -> list:
    return [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in error.errors()
    ]


def _read_body(event: Dict[str, Any]) -> Any:
    body_str = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        body_str = base64.b64decode(body_str).decode("utf-8")
    return json.loads(body_str)


def validate_json_body(
    required_fields: Optional[list] = None, model: Optional[Type[pydantic.BaseModel]] = None
) -> Callable:
    """
    Decorator that validates and parses JSON request body.

    Args:
        required_fields: List of required field names
        model: Pydantic model the body must validate against; the instance
            is placed in ``event["payload"]``

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            try:
                body = _read_body(event)
            except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
                return validation_error_response(
                    "Invalid JSON in request body", {"json_error": str(e)}
                )

            if not isinstance(body, dict):
                return validation_error_response("Request body must be a JSON object")
            event["json_body"] = body

            if required_fields:
                missing_fields = [
                    field
                    for field in required_fields
                    if field not in body or body[field] is None
                ]

                if missing_fields:
                    return validation_error_response(
                        f"Missing required fields: {', '.join(missing_fields)}",
                        {"missing_fields": missing_fields},
                    )

            if model is not None:
                try:
                    event["payload"] = model.model_validate(body)
                except pydantic.ValidationError as e:
                    return validation_error_response(
                        "Invalid request body", {"errors": _pydantic_errors(e)}
                    )

            return func(event, context)

        return wrapper

    return decorator


def extract_path_params(*param_names: str) -> Callable:
    """
    Decorator that extracts and validates path parameters.

    Args:
        param_names: Names of path parameters to extract

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            path_params = event.get("pathParameters") or {}

            # Check for missing parameters
            missing_params = [
                param
                for param in param_names
                if param not in path_params or not path_params[param]
            ]

            if missing_params:
                return validation_error_response(
                    f"Missing path parameters: {', '.join(missing_params)}",
                    {"missing_parameters": missing_params},
                )

            # Add extracted params to event for easy access
            event["path_params"] = {param: path_params[param] for param in param_names}

            return func(event, context)

        return wrapper

    return decorator


def callable_handler(model: Optional[Type[pydantic.BaseModel]] = None) -> Callable:
    """
    Decorator for callable operations: ``{"data": {...}}`` in,
    ``{"result": ...}`` out.

    The handler receives the event (with ``event["payload"]`` set when a
    model is given) and returns the bare result.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            try:
                body = _read_body(event)
            except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
                return validation_error_response(
                    "Invalid JSON in request body", {"json_error": str(e)}
                )

            data = body.get("data") if isinstance(body, dict) else None
            if data is None:
                data = {}
            if not isinstance(data, dict):
                return validation_error_response("'data' must be an object")
            event["data"] = data

            if model is not None:
                try:
                    event["payload"] = model.model_validate(data)
                except pydantic.ValidationError as e:
                    return validation_error_response(
                        "Invalid arguments", {"errors": _pydantic_errors(e)}
                    )

            return success_response({"result": func(event, context)})

        return wrapper

    return decorator
