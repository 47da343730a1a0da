"""
Administrative user management.

Each operation keeps the identity provider account, its custom claims, the
profile document and the role mirror consistent, and writes an audit line.
"""

from html import escape
from typing import Any, Callable, Dict, List, Optional

from models.admin import CreateUserRequest, UpdateUserRequest
from models.profile import Role
from models.session import Identity, Session
from services.email import EmailSender
from services.profiles import ProfileRepository
from utils.exceptions import EmailDeliveryError, EStockError
from utils.logging import log_admin_action, setup_logger

logger = setup_logger(__name__)

RESET_EMAIL_TEMPLATE = """
<div style="font-family:Arial,sans-serif;max-width:560px">
  <h2>{brand}</h2>
  <p>Hello{greeting_name},</p>
  <p>An administrator has created an account for you. Use the button below to set your password:</p>
  <p style="margin:24px 0">
    <a href="{link}" style="background:#2563eb;color:#fff;padding:12px 18px;border-radius:6px;text-decoration:none">
      Set Password
    </a>
  </p>
  <p>If the button does not work, copy this link into your browser:</p>
  <p><a href="{link}">{link}</a></p>
  <hr/>
  <p style="color:#666;font-size:12px">This email was sent automatically. Contact your administrator if you need help.</p>
</div>
"""


def render_reset_email(brand: str, display_name: str, link: str) -> str:
    return RESET_EMAIL_TEMPLATE.format(
        brand=escape(brand),
        greeting_name=f" {escape(display_name)}" if display_name else "",
        link=escape(link, quote=True),
    )


class UserAdminService:
    def __init__(
        self,
        profiles: ProfileRepository,
        identity_provider,
        email_sender: EmailSender,
        mail_config: Callable[[], Dict[str, Optional[str]]],
    ):
        self.profiles = profiles
        self.identity_provider = identity_provider
        self.email_sender = email_sender
        self.mail_config = mail_config

    def provision_user(self, actor: Session, request: CreateUserRequest) -> Dict[str, Any]:
        """
        Create (or adopt) an account, record its role and email a link to set
        the password.

        An existing account with the same email is reused; its display name is
        updated when a different one is given.

        Raises:
            EmailDeliveryError: Mail is not configured or SES rejected the message
        """
        email = str(request.email)
        identity = self.identity_provider.get_by_email(email)
        if identity is None:
            identity = self.identity_provider.create_identity(email, request.display_name)
        elif request.display_name and identity.display_name != request.display_name:
            identity = self.identity_provider.update_identity(
                identity.uid, display_name=request.display_name
            )

        self.profiles.upsert(identity.uid, email, request.display_name, request.role, actor.uid)
        self.identity_provider.set_claims(identity.uid, {"role": request.role.value})

        mail = self.mail_config()
        reset_link = self.identity_provider.generate_reset_link(
            email, redirect_to=mail.get("reset_continue_url")
        )
        if not mail.get("sender"):
            logger.error("Email sender not configured", extra={"uid": identity.uid})
            raise EmailDeliveryError("Email sender not configured")

        brand = mail.get("brand_name") or "E-Stock"
        self.email_sender.send(
            to=email,
            sender=mail["sender"],
            subject=f"{brand}: Create or set your account password",
            html=render_reset_email(brand, request.display_name, reset_link),
        )
        log_admin_action(
            logger, "provision_user", actor.uid, identity.uid, email=email, role=request.role.value
        )
        return {"uid": identity.uid, "email": email, "role": request.role.value, "mailed": True}

    def list_users(self) -> List[Dict[str, Any]]:
        """Identity accounts joined with their profiles, soft-deleted ones left out."""
        profiles = {profile.uid: profile for profile in self.profiles.list(include_deleted=True)}
        users = []
        for identity in self.identity_provider.list_identities():
            profile = profiles.get(identity.uid)
            if profile is not None and profile.is_deleted:
                continue
            users.append(self._user_entry(identity, profile))
        return users

    @staticmethod
    def _user_entry(identity: Identity, profile) -> Dict[str, Any]:
        return {
            "uid": identity.uid,
            "email": identity.email or (profile.email if profile else ""),
            "displayName": identity.display_name or (profile.display_name if profile else ""),
            "disabled": identity.disabled or bool(profile and profile.disabled),
            "creationTime": identity.created_at or "",
            "lastSignInTime": identity.last_sign_in_at or "",
            "role": (profile.role if profile else Role.VIEWER).value,
        }

    def create_user(self, actor: Session, request: CreateUserRequest) -> Dict[str, Any]:
        email = str(request.email)
        identity = self.identity_provider.create_identity(email, request.display_name)
        self.profiles.upsert(identity.uid, email, request.display_name, request.role, actor.uid)
        self.identity_provider.set_claims(identity.uid, {"role": request.role.value})
        log_admin_action(
            logger, "create_user", actor.uid, identity.uid, email=email, role=request.role.value
        )
        return {"uid": identity.uid}

    def update_user(self, actor: Session, request: UpdateUserRequest) -> Dict[str, Any]:
        if request.display_name is not None or request.disabled is not None:
            self.identity_provider.update_identity(
                request.uid, display_name=request.display_name, disabled=request.disabled
            )
        if request.role is not None:
            self.identity_provider.set_claims(request.uid, {"role": request.role.value})

        self.profiles.apply_changes(
            request.uid,
            role=request.role,
            disabled=request.disabled,
            display_name=request.display_name,
        )
        log_admin_action(
            logger,
            "update_user",
            actor.uid,
            request.uid,
            **request.model_dump(exclude={"uid"}, exclude_none=True, mode="json"),
        )
        return {"ok": True}

    def set_role(self, actor: Session, uid: str, role: Role) -> Dict[str, Any]:
        return self.update_user(actor, UpdateUserRequest(uid=uid, role=role))

    def set_disabled(self, actor: Session, uid: str, disabled: bool) -> Dict[str, Any]:
        return self.update_user(actor, UpdateUserRequest(uid=uid, disabled=disabled))

    def delete_user(self, actor: Session, uid: str) -> Dict[str, Any]:
        """
        Delete the identity account. Removing the profile afterwards is best
        effort: a failure is logged and the call still succeeds.
        """
        self.identity_provider.delete_identity(uid)
        try:
            self.profiles.delete(uid)
        except EStockError as e:
            logger.warning(
                "Profile cleanup after account deletion failed",
                extra={"uid": uid, "error_type": type(e).__name__, "error_message": str(e)},
            )
        log_admin_action(logger, "delete_user", actor.uid, uid)
        return {"ok": True}

    def soft_delete_user(self, actor: Session, uid: str) -> Dict[str, Any]:
        """Hide the user from listings; the identity account stays usable."""
        self.profiles.soft_delete(uid)
        log_admin_action(logger, "soft_delete_user", actor.uid, uid)
        return {"ok": True}

    def send_password_reset(self, actor: Session, email: str) -> Dict[str, Any]:
        self.identity_provider.send_password_reset_email(
            email, redirect_to=self.mail_config().get("reset_continue_url")
        )
        log_admin_action(logger, "send_password_reset", actor.uid, email)
        return {"ok": True}
