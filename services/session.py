"""
Session resolution: verified identity plus the role and status of its profile.

Authorization is decided from ``users/{uid}`` only and fails closed: a
missing profile is an enabled viewer, and a profile that cannot be read is
never treated as more than a viewer.
"""

from typing import Callable, List, Optional, Tuple

from models.profile import Role, UserProfile
from models.session import Identity, Session
from services.profiles import ProfileRepository
from utils.exceptions import Forbidden, RoleResolutionError
from utils.logging import setup_logger

logger = setup_logger(__name__)


class SessionResolver:
    def __init__(self, profiles: ProfileRepository, identity_provider):
        self.profiles = profiles
        self.identity_provider = identity_provider

    def load_profile(self, uid: str) -> Optional[UserProfile]:
        try:
            return self.profiles.get(uid)
        except Exception as e:
            logger.error(
                "Failed to read profile", extra={"uid": uid, "error_message": str(e)}
            )
            raise RoleResolutionError(f"Could not resolve role for {uid}") from e

    def resolve_role(self, uid: str) -> Tuple[Role, bool]:
        """
        ``(role, disabled)`` of a uid; an absent profile is ``(viewer, False)``.

        Raises:
            RoleResolutionError: The profile could not be read
        """
        profile = self.load_profile(uid)
        if profile is None:
            return Role.VIEWER, False
        return profile.role, profile.disabled

    def session_for(self, identity: Identity) -> Session:
        profile = self.load_profile(identity.uid)
        if profile is None:
            return Session(
                uid=identity.uid, email=identity.email, display_name=identity.display_name
            )
        return Session(
            uid=identity.uid,
            email=identity.email or profile.email,
            display_name=profile.display_name or identity.display_name,
            role=profile.role,
            disabled=profile.disabled,
        )

    def resolve(self, token: Optional[str]) -> Session:
        """
        Session of a bearer token.

        Raises:
            Unauthenticated: The token is missing or invalid
            RoleResolutionError: The profile could not be read
        """
        identity = self.identity_provider.verify_token(token)
        return self.session_for(identity)

    def resolve_or_least_privilege(self, token: Optional[str]) -> Session:
        """Like ``resolve`` but a profile read failure yields a viewer session."""
        identity = self.identity_provider.verify_token(token)
        try:
            return self.session_for(identity)
        except RoleResolutionError:
            logger.warning(
                "Role resolution failed, continuing as viewer", extra={"uid": identity.uid}
            )
            return Session(
                uid=identity.uid, email=identity.email, display_name=identity.display_name
            )

    @staticmethod
    def require_admin(session: Session) -> Session:
        if not session.is_admin:
            raise Forbidden("Admin only")
        return session

    @staticmethod
    def require_writer(session: Session) -> Session:
        if not session.can_write:
            raise Forbidden("Write access requires the admin or contributor role")
        return session


SessionListener = Callable[[Optional[Session]], None]


class SessionContext:
    """
    Holds the current session of a client.

    The session value is immutable; authentication and role changes replace
    it as a whole and notify every subscriber.
    """

    def __init__(self, session: Optional[Session] = None):
        self._session = session
        self._listeners: List[SessionListener] = []

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def role(self) -> Role:
        return self._session.role if self._session else Role.VIEWER

    def replace(self, session: Optional[Session]) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
