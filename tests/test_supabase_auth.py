import time
from unittest.mock import MagicMock, patch

import jwt
import pytest
import requests

from conftest import JWT_SECRET
from services.supabase_auth import SupabaseAuth
from utils.exceptions import IdentityProviderError, NotFound, Unauthenticated


def make_token(secret=JWT_SECRET, **claims):
    payload = {
        "sub": "user-1",
        "email": "ann@example.com",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
        "user_metadata": {"display_name": "Ann"},
        "app_metadata": {"role": "contributor"},
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def http_response(status_code=200, json_body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_body
    response.content = b"{}" if json_body is not None else b""
    response.text = ""
    return response


@pytest.fixture
def auth():
    return SupabaseAuth(
        supabase_url="https://project.supabase.co",
        jwt_secret=JWT_SECRET,
        anon_key="anon-key",
        service_role_key="service-role-key",
    )


def test_verify_token_with_jwt_secret(auth):
    identity = auth.verify_token(make_token())

    assert identity.uid == "user-1"
    assert identity.email == "ann@example.com"
    assert identity.display_name == "Ann"
    assert identity.claims == {"role": "contributor"}


@pytest.mark.parametrize(
    "token",
    [
        None,
        "",
        "not-a-jwt",
        make_token(exp=int(time.time()) - 10),
        make_token(aud="anon"),
        make_token(secret="another-secret-that-is-also-32-bytes"),
    ],
)
def test_verify_token_rejects_bad_tokens(auth, token):
    with pytest.raises(Unauthenticated):
        auth.verify_token(token)


def test_verify_token_via_api_without_secret():
    auth = SupabaseAuth(
        supabase_url="https://project.supabase.co", anon_key="anon-key", jwt_secret=None
    )
    auth.supabase_jwt_secret = None
    user = {"id": "user-2", "email": "bob@example.com", "user_metadata": {}, "app_metadata": {}}

    with patch("services.supabase_auth.requests.get", return_value=http_response(200, user)) as get:
        identity = auth.verify_token("opaque")

    assert identity.uid == "user-2"
    assert get.call_args.args[0] == "https://project.supabase.co/auth/v1/user"
    assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer opaque"


def test_extract_token_from_header(auth):
    assert auth.extract_token_from_header("Bearer abc") == "abc"
    assert auth.extract_token_from_header("Basic abc") is None
    assert auth.get_token_from_request({"headers": {"authorization": "Bearer xyz"}}) == "xyz"


def test_create_identity_posts_to_admin_api(auth):
    created = {"id": "new-1", "email": "new@example.com", "user_metadata": {"display_name": "New"}}

    with patch(
        "services.supabase_auth.requests.request", return_value=http_response(200, created)
    ) as request:
        identity = auth.create_identity("new@example.com", "New")

    method, url = request.call_args.args
    assert (method, url) == ("POST", "https://project.supabase.co/auth/v1/admin/users")
    assert request.call_args.kwargs["json"]["email_confirm"] is True
    assert request.call_args.kwargs["headers"]["Authorization"] == "Bearer service-role-key"
    assert identity.uid == "new-1"
    assert identity.display_name == "New"


def test_get_by_email_matches_case_insensitively(auth):
    users = {
        "users": [
            {"id": "a", "email": "a@example.com"},
            {"id": "b", "email": "Bob@Example.com", "banned_until": "2999-01-01T00:00:00Z"},
        ]
    }

    with patch("services.supabase_auth.requests.request", return_value=http_response(200, users)):
        identity = auth.get_by_email("bob@example.com")
        missing = auth.get_by_email("nobody@example.com")

    assert identity.uid == "b"
    assert identity.disabled is True
    assert missing is None


def test_update_identity_disable_sets_ban(auth):
    with patch(
        "services.supabase_auth.requests.request",
        return_value=http_response(200, {"id": "u1", "email": "u1@example.com"}),
    ) as request:
        auth.update_identity("u1", disabled=True)
        auth.update_identity("u1", disabled=False)

    first, second = request.call_args_list
    assert first.kwargs["json"] == {"ban_duration": "876000h"}
    assert second.kwargs["json"] == {"ban_duration": "none"}


def test_generate_reset_link(auth):
    with patch(
        "services.supabase_auth.requests.request",
        return_value=http_response(200, {"action_link": "https://reset.example/link"}),
    ) as request:
        link = auth.generate_reset_link("ann@example.com", redirect_to="/login_main.html")

    assert link == "https://reset.example/link"
    assert request.call_args.kwargs["json"] == {
        "type": "recovery",
        "email": "ann@example.com",
        "redirect_to": "/login_main.html",
    }


def test_admin_errors_are_mapped(auth):
    with patch("services.supabase_auth.requests.request", return_value=http_response(404, {})):
        with pytest.raises(NotFound):
            auth.delete_identity("missing")

    with patch("services.supabase_auth.requests.request", return_value=http_response(500, {})):
        with pytest.raises(IdentityProviderError):
            auth.set_claims("u1", {"role": "admin"})

    with patch(
        "services.supabase_auth.requests.request",
        side_effect=requests.ConnectionError("down"),
    ):
        with pytest.raises(IdentityProviderError):
            auth.list_identities()


def test_send_password_reset_email(auth):
    with patch("services.supabase_auth.requests.post", return_value=http_response(200, {})) as post:
        auth.send_password_reset_email("ann@example.com", redirect_to="/login_main.html")

    assert post.call_args.args[0] == "https://project.supabase.co/auth/v1/recover"
    assert post.call_args.kwargs["json"] == {"email": "ann@example.com"}


def test_get_identity_reads_admin_user(auth):
    user = {"id": "u1", "email": "u1@example.com", "banned_until": "2000-01-01T00:00:00Z"}

    with patch("services.supabase_auth.requests.request", return_value=http_response(200, user)) as request:
        identity = auth.get_identity("u1")

    assert request.call_args.args == ("GET", "https://project.supabase.co/auth/v1/admin/users/u1")
    assert identity.disabled is False
