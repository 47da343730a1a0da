"""
Centralized logging configuration for the E-Stock backend.

Every Lambda function and the stock view layer log through loggers created
here, so CloudWatch receives one JSON document per line with the ``extra``
fields of each call flattened into it.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = set(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class StructuredFormatter(logging.Formatter):
    """
    Formatter that renders each record as a single JSON object.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logger(
    name: str, level: Optional[str] = None, structured: bool = True
) -> logging.Logger:
    """
    Set up a logger with consistent configuration.

    Args:
        name: Logger name (typically __name__)
        level: Log level; defaults to the LOG_LEVEL environment variable or INFO
        structured: Whether to use structured JSON logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers on warm starts
    if logger.handlers:
        return logger

    level = level or os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def log_lambda_event(
    logger: logging.Logger, event: Dict[str, Any], context: Any
) -> None:
    """Log the request line of an API Gateway event."""
    headers = event.get("headers") or {}
    http = event.get("requestContext", {}).get("http", {})
    logger.info(
        "Lambda invocation started",
        extra={
            "request_id": getattr(context, "aws_request_id", "unknown"),
            "function_name": getattr(context, "function_name", "unknown"),
            "http_method": event.get("httpMethod") or http.get("method"),
            "path": event.get("path") or event.get("rawPath"),
            "user_agent": headers.get("user-agent") or headers.get("User-Agent"),
            "source_ip": http.get("sourceIp"),
        },
    )


def log_lambda_response(
    logger: logging.Logger,
    response: Dict[str, Any],
    execution_time_ms: Optional[float] = None,
) -> None:
    """Log status code, latency and body size of a handler response."""
    logger.info(
        "Lambda invocation completed",
        extra={
            "status_code": response.get("statusCode"),
            "execution_time_ms": execution_time_ms,
            "response_size": len(str(response.get("body", ""))),
        },
    )


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log errors with additional context.

    Args:
        logger: Logger instance
        error: Exception that occurred
        context: Additional context information
    """
    extra = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if context:
        extra.update(context)

    logger.error(f"Error occurred: {error}", extra=extra, exc_info=True)


def log_admin_action(
    logger: logging.Logger, action: str, actor_uid: str, target: str, **details: Any
) -> None:
    """
    Write the audit line for an administrative mutation.

    Args:
        logger: Logger instance
        action: Short action name, e.g. "create_user" or "set_role"
        actor_uid: Identity of the administrator performing the action
        target: uid or email the action applies to
        details: Extra fields recorded with the line
    """
    logger.info(
        f"Admin action: {action}",
        extra={"audit": True, "action": action, "actor_uid": actor_uid, "target": target, **details},
    )
