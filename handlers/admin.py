"""
Administrative user-provisioning handlers.

POST /admin/create-user provisions an account and emails a link to set its
password. The callable operations (POST /admin/<name>, body ``{"data": ...}``,
response ``{"result": ...}``) list, create, update, delete and soft-delete
users and send password resets. Every endpoint is admin-only.
"""

from models.admin import (CreateUserRequest, EmailRequest, UidRequest,
                          UpdateUserRequest)
from services.dynamodb import DynamoDocumentStore
from services.email import email_sender
from services.parameter_store import config
from services.profiles import ProfileRepository
from services.session import SessionResolver
from services.supabase_auth import supabase_auth
from services.user_admin import UserAdminService
from utils.decorators import (allow_methods, callable_handler, lambda_handler,
                              require_admin, validate_json_body,
                              verify_bearer_token)
from utils.logging import setup_logger
from utils.responses import HTTPStatus, success_response

# Initialize shared resources at module level for optimal Lambda performance
logger = setup_logger(__name__)
profiles = ProfileRepository(DynamoDocumentStore())
user_admin = UserAdminService(profiles, supabase_auth, email_sender, config.load_mail_config)
resolver = SessionResolver(profiles, supabase_auth)


@lambda_handler()
@verify_bearer_token(resolver)
@require_admin
@allow_methods("POST")
@validate_json_body(model=CreateUserRequest)
def create_user(event, context):
    """
    Provision a user account.

    POST /admin/create-user

    The route runs without the Lambda authorizer so a bad token answers 401.
    Finds or creates the identity, upserts its profile with the requested
    role, sets the role claim and emails a password-setup link.

    Returns:
        201 ``{uid, email, role, mailed: true}``
    """
    result = user_admin.provision_user(event["session"], event["payload"])
    return success_response(result, status_code=HTTPStatus.CREATED)


@lambda_handler()
@require_admin
@allow_methods("POST")
@callable_handler()
def admin_list_users(event, context):
    """adminListUsers: identity accounts with their roles, soft-deleted users excluded."""
    return user_admin.list_users()


@lambda_handler()
@require_admin
@allow_methods("POST")
@callable_handler(CreateUserRequest)
def admin_create_user(event, context):
    """adminCreateUser: ``{email, displayName?, role?}`` -> ``{uid}``."""
    return user_admin.create_user(event["session"], event["payload"])


@lambda_handler()
@require_admin
@allow_methods("POST")
@callable_handler(UpdateUserRequest)
def admin_update_user(event, context):
    """adminUpdateUser: ``{uid, role?, disabled?, displayName?}`` -> ``{ok: true}``."""
    return user_admin.update_user(event["session"], event["payload"])


@lambda_handler()
@require_admin
@allow_methods("POST")
@callable_handler(UidRequest)
def admin_delete_user(event, context):
    """adminDeleteUser: deletes the identity account; the profile goes best effort."""
    return user_admin.delete_user(event["session"], event["payload"].uid)


@lambda_handler()
@require_admin
@allow_methods("POST")
@callable_handler(UidRequest)
def admin_soft_delete_user(event, context):
    """adminSoftDeleteUser: marks the profile deleted; the account is kept."""
    return user_admin.soft_delete_user(event["session"], event["payload"].uid)


@lambda_handler()
@require_admin
@allow_methods("POST")
@callable_handler(EmailRequest)
def admin_send_password_reset(event, context):
    """adminSendPasswordReset: ``{email}`` -> ``{ok: true}``."""
    return user_admin.send_password_reset(event["session"], str(event["payload"].email))
