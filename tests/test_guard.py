from unittest.mock import MagicMock

from conftest import make_session
from models.profile import Role
from services.session import SessionResolver
from stock.guard import DISABLED_NOTICE, LOGIN_URL, PageGuard
from utils.exceptions import Unauthenticated


def test_missing_token_redirects_to_login(resolver, identity_provider):
    identity_provider.verify_token.side_effect = Unauthenticated()

    decision = PageGuard(resolver).check(None)

    assert not decision.allowed
    assert decision.redirect == LOGIN_URL


def test_disabled_account_is_signed_out(resolver, store):
    store.set("users", "ann", {"role": "admin", "disabled": True})

    decision = PageGuard(resolver).check("ann")

    assert not decision.allowed
    assert decision.sign_out
    assert decision.notice == DISABLED_NOTICE
    assert decision.redirect == LOGIN_URL


def test_role_lookup_failure_redirects_to_login(identity_provider):
    profiles = MagicMock()
    profiles.get.side_effect = RuntimeError("timeout")

    decision = PageGuard(SessionResolver(profiles, identity_provider)).check("ann")

    assert not decision.allowed
    assert decision.redirect == LOGIN_URL
    assert not decision.sign_out


def test_role_outside_allow_list_goes_to_default_page(resolver, store):
    store.set("users", "ann", {"role": "viewer"})
    guard = PageGuard(resolver, allow=[Role.ADMIN], denied_url="/index.html")

    decision = guard.check("ann")

    assert not decision.allowed
    assert decision.redirect == "/index.html"
    assert decision.session.uid == "ann"


def test_allowed_session_passes():
    guard = PageGuard(MagicMock(), allow=[Role.ADMIN, Role.CONTRIBUTOR])

    decision = guard.check_session(make_session(Role.CONTRIBUTOR))

    assert decision.allowed
    assert decision.redirect is None
