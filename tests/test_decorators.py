import base64
import json

from pydantic import BaseModel

from conftest import api_event, auth_context, body_of
from models.profile import Role
from utils.decorators import (allow_methods, callable_handler, lambda_handler,
                              require_admin, require_session, require_writer,
                              validate_json_body)
from utils.exceptions import NotFound, RemoteWriteError
from utils.responses import file_response, success_response


class Item(BaseModel):
    name: str


def echo_session(event, context):
    return success_response({"uid": event["session"].uid, "role": event["session"].role})


def test_lambda_handler_renders_application_errors():
    @lambda_handler()
    def handler(event, context):
        raise NotFound("Record 'x' not found")

    response = handler(api_event(), None)

    assert response["statusCode"] == 404
    assert body_of(response) == {"error": "Record 'x' not found", "error_code": "RESOURCE_NOT_FOUND"}


def test_lambda_handler_hides_unexpected_errors():
    @lambda_handler()
    def handler(event, context):
        raise KeyError("secret detail")

    response = handler(api_event(), None)

    assert response["statusCode"] == 500
    assert "secret detail" not in response["body"]


def test_lambda_handler_maps_remote_write_error_to_502():
    @lambda_handler()
    def handler(event, context):
        raise RemoteWriteError("Failed to save data.")

    assert handler(api_event(), None)["statusCode"] == 502


def test_require_session_reads_authorizer_context():
    handler = require_session(echo_session)

    response = handler(api_event(auth=auth_context(Role.CONTRIBUTOR, uid="c1")), None)

    assert body_of(response) == {"uid": "c1", "role": "contributor"}


def test_require_session_without_context_is_401():
    response = require_session(echo_session)(api_event(), None)

    assert response["statusCode"] == 401


def test_disabled_account_is_told_to_sign_out():
    response = require_session(echo_session)(api_event(auth=auth_context(disabled=True)), None)

    assert response["statusCode"] == 403
    assert body_of(response)["details"] == {"signOut": True}
    assert body_of(response)["error_code"] == "ACCOUNT_DISABLED"


def test_role_decorators():
    viewer = api_event(auth=auth_context(Role.VIEWER, uid="v1"))
    contributor = api_event(auth=auth_context(Role.CONTRIBUTOR, uid="c1"))

    assert require_writer(echo_session)(viewer, None)["statusCode"] == 403
    assert require_writer(echo_session)(contributor, None)["statusCode"] == 200
    assert require_admin(echo_session)(contributor, None)["statusCode"] == 403


def test_allow_methods_sets_allow_header():
    handler = allow_methods("POST")(echo_session)

    response = handler(api_event("GET"), None)

    assert response["statusCode"] == 405
    assert response["headers"]["Allow"] == "POST"


def test_validate_json_body_with_model_and_base64():
    seen = {}

    @validate_json_body(required_fields=["name"], model=Item)
    def handler(event, context):
        seen["payload"] = event["payload"]
        return success_response()

    encoded = base64.b64encode(json.dumps({"name": "pen"}).encode()).decode()
    event = api_event("POST", body=encoded)
    event["isBase64Encoded"] = True

    assert handler(event, None)["statusCode"] == 200
    assert seen["payload"].name == "pen"

    missing = handler(api_event("POST", body={}), None)
    assert missing["statusCode"] == 400
    assert body_of(missing)["details"] == {"missing_fields": ["name"]}

    assert handler(api_event("POST", body="{not json"), None)["statusCode"] == 400
    assert handler(api_event("POST", body=[1, 2]), None)["statusCode"] == 400


def test_callable_handler_wraps_result():
    @callable_handler(Item)
    def handler(event, context):
        return {"name": event["payload"].name.upper()}

    response = handler(api_event("POST", body={"data": {"name": "pen"}}), None)
    assert body_of(response) == {"result": {"name": "PEN"}}

    invalid = handler(api_event("POST", body={"data": {}}), None)
    assert invalid["statusCode"] == 400
    assert body_of(invalid)["details"]["errors"][0]["field"] == "name"

    assert handler(api_event("POST", body={"data": "x"}), None)["statusCode"] == 400


def test_file_response_is_base64_download():
    response = file_response(b"\x00\x01", "office_2024-01-01_00-00.xlsx")

    assert response["isBase64Encoded"] is True
    assert base64.b64decode(response["body"]) == b"\x00\x01"
    assert "office_2024-01-01_00-00.xlsx" in response["headers"]["Content-Disposition"]
