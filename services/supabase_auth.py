"""
Supabase identity provider adapter.

Verifies access tokens issued to signed-in users and performs the
administrative account operations (lookup, create, update, delete, custom
claims, password recovery) through the GoTrue admin REST API.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import jwt
import requests
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from models.session import Identity
from services.parameter_store import config
from utils.exceptions import IdentityProviderError, NotFound, Unauthenticated
from utils.logging import setup_logger

logger = setup_logger(__name__)

# Supabase has no "disabled" flag; a disabled account is banned for ~100 years.
DISABLED_BAN_DURATION = "876000h"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _display_name(metadata: Dict[str, Any]) -> str:
    return metadata.get("display_name") or metadata.get("full_name") or ""


class SupabaseAuth:
    def __init__(
        self,
        supabase_url: Optional[str] = None,
        jwt_secret: Optional[str] = None,
        anon_key: Optional[str] = None,
        service_role_key: Optional[str] = None,
        timeout: int = 10,
    ):
        self.supabase_url = (supabase_url or os.getenv("SUPABASE_URL") or "").rstrip("/")
        self.supabase_jwt_secret = jwt_secret or os.getenv("SUPABASE_JWT_SECRET")
        self.supabase_anon_key = anon_key or os.getenv("SUPABASE_ANON_KEY")
        self._service_role_key = service_role_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.timeout = timeout

        if not self.supabase_url:
            logger.warning("Supabase URL not configured")

        if not self.supabase_jwt_secret:
            logger.warning(
                "Supabase JWT secret not configured. Will use API-based verification."
            )

    @property
    def service_role_key(self) -> Optional[str]:
        if not self._service_role_key:
            self._service_role_key = config.get("supabase/service-role-key")
        return self._service_role_key

    # Token verification

    def validate_jwt_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Validate a Supabase JWT token and return user information

        Args:
            token: The JWT token from the Authorization header

        Returns:
            Dictionary containing user information if valid, None otherwise
        """
        if self.supabase_jwt_secret:
            return self._validate_jwt_manual(token)

        logger.info("Using API-based token verification (no JWT secret available)")
        return self._validate_jwt_via_api(token)

    def _validate_jwt_manual(self, token: str) -> Optional[Dict[str, Any]]:
        """Local HS256 verification with the project JWT secret"""
        try:
            payload = jwt.decode(
                token,
                self.supabase_jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except ExpiredSignatureError:
            logger.warning("JWT token has expired")
            return None
        except InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {e}")
            return None

        return {
            "uid": payload.get("sub"),
            "email": payload.get("email") or "",
            "display_name": _display_name(payload.get("user_metadata") or {}),
            "claims": payload.get("app_metadata") or {},
            "exp": payload.get("exp"),
        }

    def _validate_jwt_via_api(self, token: str) -> Optional[Dict[str, Any]]:
        """Ask the Supabase auth API who the token belongs to"""
        if not self.supabase_url or not self.supabase_anon_key:
            logger.error("Supabase URL or anon key not configured for API verification")
            return None

        headers = {
            "Authorization": f"Bearer {token}",
            "apikey": self.supabase_anon_key,
            "Content-Type": "application/json",
        }
        try:
            response = requests.get(
                f"{self.supabase_url}/auth/v1/user", headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Error validating JWT token via API: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Token validation failed via API: {response.status_code}")
            return None

        user_data = response.json()
        return {
            "uid": user_data.get("id"),
            "email": user_data.get("email") or "",
            "display_name": _display_name(user_data.get("user_metadata") or {}),
            "claims": user_data.get("app_metadata") or {},
            "exp": None,
        }

    def extract_token_from_header(self, authorization_header: str) -> Optional[str]:
        """
        Extract the JWT token from a ``Bearer <token>`` Authorization header.
        """
        if not authorization_header:
            return None

        parts = authorization_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None

        return parts[1]

    def get_token_from_request(self, event: Dict[str, Any]) -> Optional[str]:
        headers = event.get("headers") or {}
        authorization = headers.get("Authorization") or headers.get("authorization")
        if not authorization:
            logger.debug("No Authorization header found")
            return None
        return self.extract_token_from_header(authorization)

    def verify_token(self, token: Optional[str]) -> Identity:
        """
        Identity the token was issued to.

        Raises:
            Unauthenticated: The token is missing, malformed, expired or revoked
        """
        if not token:
            raise Unauthenticated("Missing ID token")
        user_info = self.validate_jwt_token(token)
        if not user_info or not user_info.get("uid"):
            raise Unauthenticated("Invalid or expired ID token")
        return Identity(
            uid=user_info["uid"],
            email=user_info["email"],
            display_name=user_info["display_name"],
            claims=user_info["claims"],
        )

    def verify_request(self, event: Dict[str, Any]) -> Identity:
        return self.verify_token(self.get_token_from_request(event))

    # Administrative operations

    def _admin_request(
        self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        if not self.supabase_url or not self.service_role_key:
            raise IdentityProviderError("Supabase admin access not configured")

        headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
            "Content-Type": "application/json",
        }
        try:
            response = requests.request(
                method,
                f"{self.supabase_url}/auth/v1{path}",
                headers=headers,
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Supabase admin request {method} {path} failed: {e}")
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

        if response.status_code == 404:
            raise NotFound(f"Identity not found ({path})")
        if response.status_code >= 400:
            logger.error(
                "Supabase admin request rejected",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            raise IdentityProviderError(
                f"Identity provider rejected {method} {path}",
                {"status_code": response.status_code, "body": response.text[:500]},
            )
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def to_identity(user: Dict[str, Any]) -> Identity:
        banned_until = _parse_timestamp(user.get("banned_until"))
        return Identity(
            uid=user["id"],
            email=user.get("email") or "",
            display_name=_display_name(user.get("user_metadata") or {}),
            disabled=bool(banned_until and banned_until > datetime.now(timezone.utc)),
            claims=user.get("app_metadata") or {},
            created_at=user.get("created_at"),
            last_sign_in_at=user.get("last_sign_in_at"),
        )

    def list_identities(self, per_page: int = 1000) -> List[Identity]:
        identities = []
        page = 1
        while True:
            body = self._admin_request(
                "GET", "/admin/users", params={"page": page, "per_page": per_page}
            ) or {}
            users = body.get("users", [])
            identities.extend(self.to_identity(user) for user in users)
            if len(users) < per_page:
                return identities
            page += 1

    def get_by_email(self, email: str) -> Optional[Identity]:
        wanted = email.strip().lower()
        for identity in self.list_identities():
            if identity.email.lower() == wanted:
                return identity
        return None

    def get_identity(self, uid: str) -> Identity:
        return self.to_identity(self._admin_request("GET", f"/admin/users/{uid}"))

    def create_identity(
        self, email: str, display_name: str = "", disabled: bool = False
    ) -> Identity:
        body: Dict[str, Any] = {
            "email": email,
            "email_confirm": True,
            "user_metadata": {"display_name": display_name},
        }
        if disabled:
            body["ban_duration"] = DISABLED_BAN_DURATION
        user = self._admin_request("POST", "/admin/users", json=body)
        logger.info("Created identity", extra={"uid": user.get("id"), "email": email})
        return self.to_identity(user)

    def update_identity(
        self, uid: str, display_name: Optional[str] = None, disabled: Optional[bool] = None
    ) -> Identity:
        body: Dict[str, Any] = {}
        if display_name is not None:
            body["user_metadata"] = {"display_name": display_name}
        if disabled is not None:
            body["ban_duration"] = DISABLED_BAN_DURATION if disabled else "none"
        return self.to_identity(self._admin_request("PUT", f"/admin/users/{uid}", json=body))

    def delete_identity(self, uid: str) -> None:
        self._admin_request("DELETE", f"/admin/users/{uid}")
        logger.info("Deleted identity", extra={"uid": uid})

    def set_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        """Store custom claims in app_metadata; they appear in future tokens."""
        self._admin_request("PUT", f"/admin/users/{uid}", json={"app_metadata": claims})

    def generate_reset_link(self, email: str, redirect_to: Optional[str] = None) -> str:
        body: Dict[str, Any] = {"type": "recovery", "email": email}
        if redirect_to:
            body["redirect_to"] = redirect_to
        result = self._admin_request("POST", "/admin/generate_link", json=body) or {}
        link = result.get("action_link") or (result.get("properties") or {}).get("action_link")
        if not link:
            raise IdentityProviderError("Identity provider returned no recovery link")
        return link

    def send_password_reset_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        """Have the provider send its own recovery email."""
        if not self.supabase_url or not self.supabase_anon_key:
            raise IdentityProviderError("Supabase URL or anon key not configured")
        try:
            response = requests.post(
                f"{self.supabase_url}/auth/v1/recover",
                headers={"apikey": self.supabase_anon_key, "Content-Type": "application/json"},
                params={"redirect_to": redirect_to} if redirect_to else None,
                json={"email": email},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e
        if response.status_code >= 400:
            raise IdentityProviderError(
                "Failed to send password reset email", {"status_code": response.status_code}
            )


# Global instance
supabase_auth = SupabaseAuth()
