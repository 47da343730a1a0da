import base64
from io import BytesIO
from unittest.mock import patch

import openpyxl
import pytest

from conftest import api_event, auth_context, body_of
from handlers import records
from models.profile import Role


@pytest.fixture(autouse=True)
def memory_store(store):
    with patch.object(records, "store", store):
        yield store


def event(method="GET", collection="office", record_id=None, body=None, query=None, role=Role.CONTRIBUTOR):
    path_params = {"collection": collection}
    if record_id:
        path_params["id"] = record_id
    return api_event(method, body=body, path_params=path_params, query=query, auth=auth_context(role, uid="c1"))


def seed(store, count, collection="office"):
    for i in range(count):
        store.create(
            collection,
            {"materialNumber": f"M-{i:03d}", "qtyIn": i, "createdAt": f"2024-01-01T00:{i:02d}:00+00:00"},
        )


def test_list_pages_newest_first(memory_store):
    seed(memory_store, 25)

    response = records.list_records(event(query={"page": "2"}), None)

    body = body_of(response)
    assert response["statusCode"] == 200
    assert [item["materialNumber"] for item in body["items"]] == [f"M-{i:03d}" for i in range(14, 4, -1)]
    assert (body["page"], body["pageCount"], body["total"], body["pageSize"]) == (2, 3, 25, 10)
    assert body["canWrite"] is True


def test_list_searches_and_sorts(memory_store):
    seed(memory_store, 12)

    response = records.list_records(
        event(query={"q": "m-01", "sort": "qtyIn", "dir": "desc", "pageSize": "all"}, role=Role.VIEWER),
        None,
    )

    body = body_of(response)
    assert [item["materialNumber"] for item in body["items"]] == ["M-011", "M-010"]
    assert body["canWrite"] is False


@pytest.mark.parametrize(
    "query",
    [{"sort": "colour"}, {"pageSize": "7"}, {"page": "two"}, {"sort": "qtyIn", "dir": "up"}],
)
def test_list_rejects_bad_query(query):
    assert records.list_records(event(query=query), None)["statusCode"] == 400


def test_unknown_collection_is_404():
    assert records.list_records(event(collection="weapons"), None)["statusCode"] == 404


def test_create_record(memory_store):
    response = records.create_record(
        event("POST", body={"materialNumber": "M-001", "qtyIn": "5", "ignored": "x"}), None
    )

    assert response["statusCode"] == 201
    record_id = body_of(response)["id"]
    data = memory_store.get("office", record_id).data
    assert data["qtyIn"] == 5
    assert data["createdBy"] == "c1"
    assert "ignored" not in data


def test_create_without_required_field_is_400(memory_store):
    response = records.create_record(event("POST", body={"qtyIn": 1}), None)

    assert response["statusCode"] == 400
    assert body_of(response)["details"]["fields"] == ["materialNumber"]
    assert memory_store.query("office") == []


def test_viewer_cannot_create():
    response = records.create_record(event("POST", body={"materialNumber": "M-1"}, role=Role.VIEWER), None)

    assert response["statusCode"] == 403


def test_update_keeps_unsent_fields(memory_store):
    record_id = memory_store.create("office", {"materialNumber": "M-1", "location": "A1", "qtyIn": 2})

    response = records.update_record(event("PUT", record_id=record_id, body={"qtyIn": 7}), None)

    assert response["statusCode"] == 200
    data = memory_store.get("office", record_id).data
    assert (data["materialNumber"], data["location"], data["qtyIn"]) == ("M-1", "A1", 7)
    assert "updatedAt" in data


def test_update_and_delete_missing_record_are_404():
    assert records.update_record(event("PUT", record_id="nope", body={}), None)["statusCode"] == 404
    assert records.delete_record(event("DELETE", record_id="nope"), None)["statusCode"] == 404


def test_delete_record(memory_store):
    record_id = memory_store.create("office", {"materialNumber": "M-1"})

    response = records.delete_record(event("DELETE", record_id=record_id), None)

    assert body_of(response) == {"id": record_id, "deleted": True}
    assert memory_store.get("office", record_id) is None


def test_wrong_method_is_405():
    response = records.delete_record(event("GET", record_id="x"), None)

    assert response["statusCode"] == 405
    assert response["headers"]["Allow"] == "DELETE"


def test_viewer_can_export(memory_store):
    seed(memory_store, 3, collection="ppe")

    response = records.export_collection(event(collection="ppe", role=Role.VIEWER), None)

    assert response["statusCode"] == 200
    assert response["isBase64Encoded"] is True
    assert response["headers"]["Content-Disposition"].startswith('attachment; filename="ppe_')
    workbook = openpyxl.load_workbook(BytesIO(base64.b64decode(response["body"])))
    assert workbook.sheetnames == ["Data"]
    assert workbook["Data"].max_row == 4
