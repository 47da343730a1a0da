"""
Shared fixtures.

Settings are fixed through environment variables before any application
module is imported, and the SSM client is replaced so no test reaches AWS.
"""

import json
import os
from unittest.mock import MagicMock

import pytest

os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ["TABLE_NAME"] = "EStockTable-test"
os.environ["SUPABASE_URL"] = "https://project.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "anon-key"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-role-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-at-least-32-bytes!!"
os.environ.pop("E_STOCK_MAIL_FROM", None)
os.environ.pop("EXPORT_ENGINES", None)
os.environ.pop("EXPORT_SCOPE", None)

from botocore.exceptions import ClientError  # noqa: E402

from models.profile import Role  # noqa: E402
from models.session import Identity, Session  # noqa: E402
from services import parameter_store  # noqa: E402
from services.memory_store import MemoryDocumentStore  # noqa: E402
from services.profiles import ProfileRepository  # noqa: E402
from services.session import SessionContext, SessionResolver  # noqa: E402

JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]


@pytest.fixture(autouse=True)
def ssm_client(monkeypatch):
    client = MagicMock()
    client.get_parameter.side_effect = ClientError(
        {"Error": {"Code": "ParameterNotFound", "Message": "not found"}}, "GetParameter"
    )
    monkeypatch.setattr(parameter_store, "_ssm_client", client)
    parameter_store.clear_cache()
    yield client
    parameter_store.clear_cache()


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def profiles(store):
    return ProfileRepository(store)


@pytest.fixture
def identity_provider():
    provider = MagicMock()
    provider.verify_token.side_effect = lambda token: Identity(
        uid=token, email=f"{token}@example.com"
    )
    return provider


@pytest.fixture
def resolver(profiles, identity_provider):
    return SessionResolver(profiles, identity_provider)


def make_session(role: Role = Role.VIEWER, uid: str = "user-1", **kwargs) -> Session:
    return Session(uid=uid, email=f"{uid}@example.com", role=role, **kwargs)


@pytest.fixture
def admin_session():
    return make_session(Role.ADMIN, uid="admin-1")


@pytest.fixture
def contributor_context():
    return SessionContext(make_session(Role.CONTRIBUTOR, uid="contrib-1"))


@pytest.fixture
def viewer_context():
    return SessionContext(make_session(Role.VIEWER, uid="viewer-1"))


def api_event(
    method: str = "GET",
    body=None,
    path_params=None,
    query=None,
    auth=None,
    headers=None,
):
    """Synthetic HTTP API (v2) event with an optional authorizer context."""
    request_context = {"http": {"method": method, "sourceIp": "127.0.0.1"}}
    if auth is not None:
        request_context["authorizer"] = {"lambda": auth}
    event = {
        "rawPath": "/test",
        "headers": headers or {},
        "requestContext": request_context,
        "pathParameters": path_params,
        "queryStringParameters": query,
    }
    if body is not None:
        event["body"] = body if isinstance(body, str) else json.dumps(body)
    return event


def auth_context(role: Role = Role.ADMIN, uid: str = "admin-1", disabled: bool = False):
    return {
        "uid": uid,
        "email": f"{uid}@example.com",
        "displayName": uid,
        "role": role.value,
        "disabled": disabled,
    }


def body_of(response):
    return json.loads(response["body"])
