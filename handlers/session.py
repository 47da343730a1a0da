"""
Session handlers.

POST /session is called right after sign-in: it verifies the bearer token
itself, creates the caller's profile on first sign-in and returns the
session. PATCH /profile lets the caller change their display name.
"""

from models.profile import ProfileUpdate
from services.dynamodb import DynamoDocumentStore
from services.profiles import ProfileRepository
from services.session import SessionResolver
from services.supabase_auth import supabase_auth
from stock.user_menu import build_user_menu
from utils.decorators import (allow_methods, lambda_handler, require_session,
                              validate_json_body)
from utils.exceptions import AccountDisabled
from utils.logging import setup_logger
from utils.responses import success_response

# Initialize shared resources at module level for optimal Lambda performance
logger = setup_logger(__name__)
profiles = ProfileRepository(DynamoDocumentStore())
resolver = SessionResolver(profiles, supabase_auth)


@lambda_handler()
@allow_methods("POST")
def start_session(event, context):
    """
    Resolve the caller's session, creating the profile on first sign-in.

    POST /session

    Returns:
        200 with the session and the user menu; 401 for a bad token; 403
        with ``signOut`` in the details for a disabled account
    """
    identity = supabase_auth.verify_request(event)
    profile = profiles.ensure(identity)
    if profile.disabled:
        logger.info("Disabled account refused", extra={"uid": identity.uid})
        raise AccountDisabled(details={"signOut": True})

    session = resolver.session_for(identity)
    menu = build_user_menu(identity, profile, show_role_badge=True)
    return success_response(
        {
            "session": {
                "uid": session.uid,
                "email": session.email,
                "displayName": session.display_name,
                "role": session.role.value,
                "canWrite": session.can_write,
            },
            "menu": {"text": menu.text, "initial": menu.initial, "title": menu.title},
        }
    )


@lambda_handler()
@require_session
@allow_methods("PATCH")
@validate_json_body(model=ProfileUpdate)
def update_profile(event, context):
    """
    Change the caller's display name.

    PATCH /profile
    """
    session = event["session"]
    update = event["payload"]
    profiles.update_display_name(session.uid, update.display_name)
    logger.info("Profile updated", extra={"uid": session.uid})
    return success_response({"uid": session.uid, "displayName": update.display_name})
