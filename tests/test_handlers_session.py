from unittest.mock import MagicMock, patch

import pytest

from conftest import api_event, auth_context, body_of
from handlers import session as session_handlers
from models.profile import Role
from models.session import Identity
from services.session import SessionResolver
from utils.exceptions import Unauthenticated


@pytest.fixture
def auth(profiles, identity_provider):
    provider = MagicMock()
    provider.verify_request.return_value = Identity(
        uid="u1", email="ann@example.com", display_name="Ann"
    )
    with patch.object(session_handlers, "supabase_auth", provider), patch.object(
        session_handlers, "profiles", profiles
    ), patch.object(
        session_handlers, "resolver", SessionResolver(profiles, identity_provider)
    ):
        yield provider


def test_first_sign_in_creates_viewer_profile(auth, store):
    response = session_handlers.start_session(api_event("POST"), None)

    assert response["statusCode"] == 200
    body = body_of(response)
    assert body["session"] == {
        "uid": "u1",
        "email": "ann@example.com",
        "displayName": "Ann",
        "role": "viewer",
        "canWrite": False,
    }
    assert body["menu"]["text"] == "Ann (viewer)"
    assert store.get("users", "u1").data["role"] == "viewer"


def test_existing_contributor_can_write(auth, store):
    store.set("users", "u1", {"role": "contributor", "displayName": "Ann B."})

    body = body_of(session_handlers.start_session(api_event("POST"), None))

    assert body["session"]["role"] == "contributor"
    assert body["session"]["canWrite"] is True
    assert body["session"]["displayName"] == "Ann B."


def test_disabled_profile_is_signed_out(auth, store):
    store.set("users", "u1", {"role": "admin", "disabled": True})

    response = session_handlers.start_session(api_event("POST"), None)

    assert response["statusCode"] == 403
    assert body_of(response)["details"] == {"signOut": True}


def test_invalid_token_is_401(auth):
    auth.verify_request.side_effect = Unauthenticated("Invalid or expired token")

    assert session_handlers.start_session(api_event("POST"), None)["statusCode"] == 401


def test_update_profile_display_name(auth, store):
    store.set("users", "c1", {"role": "contributor", "displayName": "Old"})

    response = session_handlers.update_profile(
        api_event("PATCH", body={"displayName": "  New Name "}, auth=auth_context(Role.CONTRIBUTOR, uid="c1")),
        None,
    )

    assert body_of(response) == {"uid": "c1", "displayName": "New Name"}
    assert store.get("users", "c1").data["displayName"] == "New Name"


def test_update_profile_of_missing_document_is_404(auth):
    response = session_handlers.update_profile(
        api_event("PATCH", body={"displayName": "X"}, auth=auth_context(Role.VIEWER, uid="ghost")),
        None,
    )

    assert response["statusCode"] == 404
