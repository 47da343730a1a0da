"""
Utils package for shared utilities and cross-cutting concerns.

This package contains decorators, exceptions, logging utilities and
response formatters used across the application.
"""

from .decorators import (allow_methods, callable_handler, extract_path_params,
                         lambda_handler, require_admin, require_role,
                         require_session, require_writer, validate_json_body)
from .exceptions import EStockError
from .logging import (log_admin_action, log_error, log_lambda_event,
                      log_lambda_response, setup_logger)
from .responses import (HTTPStatus, error_response, exception_response,
                        file_response, forbidden_response,
                        method_not_allowed_response, not_found_response,
                        success_response, unauthorized_response,
                        validation_error_response)

__all__ = [
    # Decorators
    "lambda_handler",
    "require_session",
    "require_role",
    "require_admin",
    "require_writer",
    "allow_methods",
    "validate_json_body",
    "extract_path_params",
    "callable_handler",
    # Exceptions
    "EStockError",
    # Logging
    "setup_logger",
    "log_lambda_event",
    "log_lambda_response",
    "log_error",
    "log_admin_action",
    # Responses
    "HTTPStatus",
    "success_response",
    "error_response",
    "exception_response",
    "validation_error_response",
    "not_found_response",
    "unauthorized_response",
    "forbidden_response",
    "method_not_allowed_response",
    "file_response",
]
