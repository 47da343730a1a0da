"""
Page access check run on every load of a gated page.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from models.profile import Role
from models.session import Session
from services.session import SessionResolver
from utils.exceptions import RoleResolutionError, Unauthenticated
from utils.logging import setup_logger

logger = setup_logger(__name__)

LOGIN_URL = "/login_main.html"
DENIED_URL = "/index.html"
DISABLED_NOTICE = "Account disabled. Please contact an administrator."
DENIED_NOTICE = "You do not have access to this page."


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    redirect: Optional[str] = None
    sign_out: bool = False
    notice: Optional[str] = None
    session: Optional[Session] = None


class PageGuard:
    def __init__(
        self,
        resolver: SessionResolver,
        allow: Iterable[Role] = tuple(Role),
        login_url: str = LOGIN_URL,
        denied_url: str = DENIED_URL,
    ):
        self.resolver = resolver
        self.allow = frozenset(allow)
        self.login_url = login_url
        self.denied_url = denied_url

    def check(self, token: Optional[str]) -> GuardDecision:
        """Decide a page load for the bearer of ``token``."""
        try:
            session = self.resolver.resolve(token)
        except Unauthenticated:
            return GuardDecision(allowed=False, redirect=self.login_url)
        except RoleResolutionError as e:
            logger.warning("Guard could not resolve role", extra={"error_message": str(e)})
            return GuardDecision(allowed=False, redirect=self.login_url)
        return self.check_session(session)

    def check_session(self, session: Optional[Session]) -> GuardDecision:
        if session is None:
            return GuardDecision(allowed=False, redirect=self.login_url)
        if session.disabled:
            logger.info("Disabled account signed out", extra={"uid": session.uid})
            return GuardDecision(
                allowed=False,
                redirect=self.login_url,
                sign_out=True,
                notice=DISABLED_NOTICE,
                session=session,
            )
        if session.role not in self.allow:
            return GuardDecision(
                allowed=False, redirect=self.denied_url, notice=DENIED_NOTICE, session=session
            )
        return GuardDecision(allowed=True, session=session)
