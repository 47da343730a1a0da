"""
Inventory record handlers.

The stock collections (office, ppe, souvenir, supplier) over HTTP:
- GET    /records/{collection}            list with search, sort and paging
- POST   /records/{collection}            create (admin, contributor)
- PUT    /records/{collection}/{id}       update (admin, contributor)
- DELETE /records/{collection}/{id}       delete (admin, contributor)
- GET    /records/{collection}/export     .xlsx download
"""

from typing import Any, Dict, List, Tuple

from models.record import Record
from services.dynamodb import DynamoDocumentStore
from services.session import SessionContext
from stock.catalog import PAGE_SIZES, ExportScope, TableConfig, get_table
from stock.editor import RecordEditor
from stock.export import export_records, load_exporter
from stock.table import (SortDirection, SortState, filter_records, paginate,
                         sort_records)
from utils.decorators import (allow_methods, extract_path_params,
                              lambda_handler, require_session, require_writer,
                              validate_json_body)
from utils.exceptions import NotFound, ValidationError
from utils.logging import setup_logger
from utils.responses import HTTPStatus, file_response, success_response

# Initialize shared resources at module level for optimal Lambda performance
logger = setup_logger(__name__)
store = DynamoDocumentStore()


def _table(event) -> TableConfig:
    collection = event["path_params"]["collection"]
    table = get_table(collection)
    if table is None:
        raise NotFound(f"Unknown collection '{collection}'")
    return table


def _load(table: TableConfig) -> List[Record]:
    documents = store.query(table.collection, table.order_by, descending=True)
    return [Record.from_document(document) for document in documents]


def _view_options(table: TableConfig, params: Dict[str, Any]) -> Tuple[str, SortState]:
    """Search term and sort state from the query string."""
    term = params.get("q") or ""
    sort_key = params.get("sort")
    if not sort_key:
        return term, SortState()
    if sort_key not in table.column_keys():
        raise ValidationError(f"Unknown sort column '{sort_key}'", fields=["sort"])
    try:
        direction = SortDirection((params.get("dir") or "asc").lower())
    except ValueError:
        raise ValidationError("dir must be asc, desc or none", fields=["dir"])
    return term, SortState(sort_key, direction)


def _paging(table: TableConfig, params: Dict[str, Any]) -> Tuple[int, Any]:
    raw_size = params.get("pageSize")
    page_size = table.default_page_size
    if raw_size:
        page_size = raw_size if raw_size == "all" else _int_param(raw_size, "pageSize")
        if page_size not in PAGE_SIZES:
            raise ValidationError(
                f"pageSize must be one of {', '.join(map(str, PAGE_SIZES))}", fields=["pageSize"]
            )
    return _int_param(params.get("page") or "1", "page"), page_size


def _int_param(raw: str, name: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", fields=[name])


@lambda_handler()
@require_session
@allow_methods("GET")
@extract_path_params("collection")
def list_records(event, context):
    """
    One page of a collection after search and sort.

    GET /records/{collection}?q=&sort=&dir=&page=&pageSize=
    """
    table = _table(event)
    params = event.get("queryStringParameters") or {}
    term, sort = _view_options(table, params)
    page_number, page_size = _paging(table, params)

    records = sort_records(table, filter_records(table, _load(table), term), sort)
    page = paginate(records, page_number, page_size)
    return success_response(
        {
            "items": [record.as_dict() for record in page.records],
            "page": page.number,
            "pageCount": page.count,
            "total": page.total,
            "pageSize": page_size,
            "canWrite": event["session"].can_write,
        }
    )


def _editor(event, table: TableConfig) -> RecordEditor:
    return RecordEditor(table, store, SessionContext(event["session"]))


def _fill(editor: RecordEditor, table: TableConfig, body: Dict[str, Any]) -> None:
    for spec in table.fields:
        if spec.key in body:
            editor.set_value(spec.key, body[spec.key])


@lambda_handler()
@require_writer
@allow_methods("POST")
@extract_path_params("collection")
@validate_json_body()
def create_record(event, context):
    """
    Create a record.

    POST /records/{collection}
    """
    table = _table(event)
    editor = _editor(event, table)
    editor.open_create()
    _fill(editor, table, event["json_body"])
    record_id = editor.save()

    logger.info(
        "Record created",
        extra={"collection": table.collection, "record_id": record_id, "uid": event["session"].uid},
    )
    return success_response(
        {"id": record_id}, message="Record created", status_code=HTTPStatus.CREATED
    )


@lambda_handler()
@require_writer
@allow_methods("PUT")
@extract_path_params("collection", "id")
@validate_json_body()
def update_record(event, context):
    """
    Update the fields of a record; fields missing from the body keep their value.

    PUT /records/{collection}/{id}
    """
    table = _table(event)
    record_id = event["path_params"]["id"]
    current = store.get(table.collection, record_id)
    if current is None:
        raise NotFound(f"Record '{record_id}' not found")

    editor = _editor(event, table)
    editor.open_edit(record_id, current.data)
    _fill(editor, table, event["json_body"])
    editor.save()

    logger.info(
        "Record updated",
        extra={"collection": table.collection, "record_id": record_id, "uid": event["session"].uid},
    )
    return success_response({"id": record_id}, message="Record updated")


@lambda_handler()
@require_writer
@allow_methods("DELETE")
@extract_path_params("collection", "id")
def delete_record(event, context):
    """
    Hard-delete a record.

    DELETE /records/{collection}/{id}
    """
    table = _table(event)
    record_id = event["path_params"]["id"]
    if store.get(table.collection, record_id) is None:
        raise NotFound(f"Record '{record_id}' not found")

    store.delete(table.collection, record_id)
    logger.info(
        "Record deleted",
        extra={"collection": table.collection, "record_id": record_id, "uid": event["session"].uid},
    )
    return success_response({"id": record_id, "deleted": True})


@lambda_handler()
@require_session
@allow_methods("GET")
@extract_path_params("collection")
def export_collection(event, context):
    """
    Spreadsheet of a collection, one sheet "Data".

    GET /records/{collection}/export

    With the filtered export scope the ``q``, ``sort`` and ``dir`` query
    parameters select and order the rows.
    """
    table = _table(event)
    records = _load(table)
    if table.export_scope is ExportScope.FILTERED:
        term, sort = _view_options(table, event.get("queryStringParameters") or {})
        records = sort_records(table, filter_records(table, records, term), sort)

    export = export_records(table, records, load_exporter())
    return file_response(export.content, export.filename, export.content_type)
