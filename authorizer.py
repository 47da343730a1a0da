"""
JWT Authorization Lambda for API Gateway.

This module validates Supabase access tokens for protected API endpoints,
resolves the caller's role from the profile document and denies disabled
accounts.
"""

from typing import Any, Dict

from services.dynamodb import DynamoDocumentStore
from services.profiles import ProfileRepository
from services.session import SessionResolver
from services.supabase_auth import supabase_auth
from utils.exceptions import Unauthenticated
from utils.logging import log_error, setup_logger

# Initialize shared resources at module level for optimal Lambda performance
# This avoids re-initialization on warm starts and reduces cold start time
logger = setup_logger(__name__)
resolver = SessionResolver(ProfileRepository(DynamoDocumentStore()), supabase_auth)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    HTTP API Gateway Lambda Authorizer.

    Validates the bearer token and returns the resolved session as the
    authorizer context. A profile that cannot be read yields a viewer
    session; a disabled profile is denied.

    Args:
        event: API Gateway authorizer event
        context: Lambda context object

    Returns:
        Authorization response for API Gateway
    """
    logger.info(
        "Authorization request received",
        extra={
            "request_id": getattr(context, "aws_request_id", "unknown"),
            "method": event.get("requestContext", {}).get("http", {}).get("method"),
            "path": event.get("rawPath"),
        },
    )

    try:
        token = supabase_auth.get_token_from_request(event)
        session = resolver.resolve_or_least_privilege(token)

        if session.disabled:
            logger.warning("Authorization denied: account disabled", extra={"uid": session.uid})
            return {"isAuthorized": False}

        logger.info(
            "User authorized successfully",
            extra={"uid": session.uid, "role": session.role.value},
        )

        return {
            "isAuthorized": True,
            "context": {
                "principalId": session.uid,
                "uid": session.uid,
                "email": session.email,
                "displayName": session.display_name,
                "role": session.role.value,
                "disabled": session.disabled,
            },
        }

    except Unauthenticated as e:
        logger.warning(f"Authorization failed: {e.message}")
        return {"isAuthorized": False}

    except Exception as e:
        log_error(
            logger,
            e,
            {
                "event_path": event.get("rawPath"),
                "event_method": event.get("requestContext", {})
                .get("http", {})
                .get("method"),
            },
        )
        return {"isAuthorized": False}
