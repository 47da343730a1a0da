"""User menu shown in the navigation bar."""

from dataclasses import dataclass
from typing import Optional, Tuple

from models.profile import Role, UserProfile
from models.session import Identity
from services.profiles import ProfileRepository
from utils.logging import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class MenuEntry:
    key: str
    label: str
    href: Optional[str] = None


@dataclass(frozen=True)
class UserMenuView:
    text: str
    initial: str
    title: str
    entries: Tuple[MenuEntry, ...]


def menu_entries(
    profile_url: str = "./profile.html",
    about_url: str = "./about.html",
    login_url: str = "./login_main.html",
) -> Tuple[MenuEntry, ...]:
    return (
        MenuEntry("profile", "Profile", profile_url),
        MenuEntry("about", "About", about_url),
        MenuEntry("logout", "Logout", login_url),
    )


def build_user_menu(
    identity: Identity, profile: Optional[UserProfile], show_role_badge: bool = False
) -> UserMenuView:
    display_name = ((profile.display_name if profile else "") or identity.display_name).strip()
    email = identity.email or (profile.email if profile else "")
    text = display_name or email or "User"
    if show_role_badge:
        role = profile.role if profile else Role.VIEWER
        text = f"{text} ({role.value})"
    initial = (display_name or email or "?").strip()[:1].upper() or "?"
    return UserMenuView(text=text, initial=initial, title=email, entries=menu_entries())


def load_user_menu(
    profiles: ProfileRepository, identity: Identity, show_role_badge: bool = False
) -> UserMenuView:
    """Menu of a signed-in identity; a failed profile read falls back to the email."""
    try:
        profile = profiles.get(identity.uid)
    except Exception as e:
        logger.warning(
            "Failed to load profile for user menu",
            extra={"uid": identity.uid, "error_message": str(e)},
        )
        text = identity.email or "User"
        return UserMenuView(
            text=text, initial=text[:1].upper(), title=identity.email, entries=menu_entries()
        )
    return build_user_menu(identity, profile, show_role_badge)
