from unittest.mock import MagicMock

from models.profile import Role, UserProfile
from models.session import Identity
from stock.user_menu import build_user_menu, load_user_menu


def test_profile_display_name_wins():
    identity = Identity(uid="u1", email="ann@example.com", display_name="ann-idp")
    profile = UserProfile(uid="u1", display_name="Ann", role=Role.CONTRIBUTOR)

    menu = build_user_menu(identity, profile, show_role_badge=True)

    assert menu.text == "Ann (contributor)"
    assert menu.initial == "A"
    assert menu.title == "ann@example.com"
    assert [e.key for e in menu.entries] == ["profile", "about", "logout"]


def test_falls_back_to_email_then_placeholder():
    assert build_user_menu(Identity(uid="u1", email="bob@example.com"), None).text == "bob@example.com"

    anonymous = build_user_menu(Identity(uid="u2"), None, show_role_badge=True)
    assert anonymous.text == "User (viewer)"
    assert anonymous.initial == "?"


def test_profile_read_failure_shows_email():
    profiles = MagicMock()
    profiles.get.side_effect = RuntimeError("unavailable")

    menu = load_user_menu(profiles, Identity(uid="u1", email="cy@example.com", display_name="Cy"))

    assert menu.text == "cy@example.com"
    assert menu.initial == "C"


def test_load_user_menu_reads_profile(profiles, store):
    store.set("users", "u1", {"displayName": "Dee", "role": "admin"})

    menu = load_user_menu(profiles, Identity(uid="u1", email="dee@example.com"), show_role_badge=True)

    assert menu.text == "Dee (admin)"
