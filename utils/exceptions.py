"""
Application exception hierarchy.

Every exception carries the HTTP status and error code used when it escapes
a Lambda handler, so handlers can raise and let the ``lambda_handler``
decorator build the error envelope.
"""

from typing import Any, Dict, Iterable, Optional


class EStockError(Exception):
    """Base class for all application exceptions."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class Unauthenticated(EStockError):
    """Missing, invalid or expired credential."""

    status_code = 401
    error_code = "UNAUTHENTICATED"

    def __init__(
        self, message: str = "Unauthorized access", details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)


class Forbidden(EStockError):
    """Authenticated but the role does not allow the operation."""

    status_code = 403
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class AccountDisabled(Forbidden):
    """The profile is disabled; the caller must terminate the session."""

    error_code = "ACCOUNT_DISABLED"

    def __init__(
        self,
        message: str = "Account disabled. Please contact an administrator.",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)


class ValidationError(EStockError):
    """A required field or payload check failed before any write."""

    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str = "Validation failed",
        fields: Iterable[str] = (),
        details: Optional[Dict[str, Any]] = None,
    ):
        self.fields = list(fields)
        details = dict(details or {})
        if self.fields:
            details.setdefault("fields", self.fields)
        super().__init__(message, details)


class NotFound(EStockError):
    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"


class RoleResolutionError(EStockError):
    """The profile lookup failed; callers fall back to least privilege."""

    status_code = 503
    error_code = "ROLE_RESOLUTION_FAILED"


class RemoteWriteError(EStockError):
    """The document store rejected a create, update or delete."""

    status_code = 502
    error_code = "REMOTE_WRITE_FAILED"


class SubscriptionError(EStockError):
    status_code = 502
    error_code = "SUBSCRIPTION_FAILED"


class ExportUnavailable(EStockError):
    """No spreadsheet writer engine could be loaded."""

    status_code = 503
    error_code = "EXPORT_UNAVAILABLE"


class IdentityProviderError(EStockError):
    status_code = 502
    error_code = "IDENTITY_PROVIDER_ERROR"


class EmailDeliveryError(EStockError):
    status_code = 500
    error_code = "EMAIL_DELIVERY_FAILED"
