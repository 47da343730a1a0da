from dataclasses import replace
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError

from models.document import Document, Snapshot, SnapshotEvent
from services.dynamodb import DynamoDocumentStore
from stock.actions import DELETE_FAILED_MESSAGE, ActionBar
from stock.catalog import OFFICE, ExportScope
from stock.editor import EditorMode, RecordEditor
from stock.export import Exporter
from stock.page import StockPage
from stock.table import SortDirection, SortState, TableController
from utils.exceptions import Forbidden, NotFound, RemoteWriteError


class RecordingExporter(Exporter):
    def __init__(self):
        self.calls = []

    def export(self, headers, rows, sheet_name="Data"):
        self.calls.append((list(headers), [list(r) for r in rows], sheet_name))
        return b"xlsx"


def load(controller, *rows):
    documents = tuple(Document(id=f"r{i}", data=data) for i, data in enumerate(rows))
    controller.apply_event(SnapshotEvent(snapshot=Snapshot(collection="office", documents=documents)))


def action_bar(context, store=None, config=OFFICE, exporter=None):
    store = store if store is not None else MagicMock()
    controller = TableController(config, context)
    editor = RecordEditor(config, store, context)
    return ActionBar(controller, editor, store, context, exporter)


def test_write_actions_follow_role(contributor_context, viewer_context):
    writer = action_bar(contributor_context).view()
    reader = action_bar(viewer_context).view()

    assert (writer.add, writer.edit, writer.delete, writer.export) == (True, True, True, True)
    assert (reader.add, reader.edit, reader.delete, reader.export) == (False, False, False, True)


def test_viewer_cannot_open_editor(viewer_context):
    bar = action_bar(viewer_context)

    with pytest.raises(Forbidden):
        bar.add()
    assert bar.editor.mode is EditorMode.CLOSED


def test_edit_opens_form_with_current_values(contributor_context):
    bar = action_bar(contributor_context)
    load(bar.controller, {"materialNumber": "M-7", "qtyIn": 3})

    bar.edit("r0")

    assert bar.editor.mode is EditorMode.EDIT
    assert bar.editor.values["materialNumber"] == "M-7"
    assert bar.editor.values["qtyIn"] == "3"
    with pytest.raises(NotFound):
        bar.edit("missing")


def test_delete_requires_confirmation(contributor_context):
    store = MagicMock()
    bar = action_bar(contributor_context, store)
    load(bar.controller, {"materialNumber": "M-1"})

    assert bar.delete("r0", confirm=lambda record: False) is False
    store.delete.assert_not_called()

    assert bar.delete("r0", confirm=lambda record: record.id == "r0") is True
    store.delete.assert_called_once_with("office", "r0")


def test_delete_failure_leaves_row(contributor_context):
    store = MagicMock()
    store.delete.side_effect = RemoteWriteError("denied")
    bar = action_bar(contributor_context, store)
    load(bar.controller, {"materialNumber": "M-1"})

    with pytest.raises(RemoteWriteError):
        bar.delete("r0", confirm=lambda record: True)

    assert bar.message == DELETE_FAILED_MESSAGE
    assert [r.id for r in bar.controller.records] == ["r0"]


def test_delete_connection_failure_leaves_row(contributor_context):
    table = MagicMock()
    table.delete_item.side_effect = EndpointConnectionError(endpoint_url="https://dynamodb.local")
    store = DynamoDocumentStore(table_name="EStockTable-test", poll_interval=0)
    store._table = table
    bar = action_bar(contributor_context, store)
    load(bar.controller, {"materialNumber": "M-1"})

    with pytest.raises(RemoteWriteError):
        bar.delete("r0", confirm=lambda record: True)

    assert bar.message == DELETE_FAILED_MESSAGE
    assert [r.id for r in bar.controller.records] == ["r0"]


def test_viewer_can_export_whole_dataset(viewer_context):
    exporter = RecordingExporter()
    bar = action_bar(viewer_context, exporter=exporter)
    load(bar.controller, {"materialNumber": "M-1"}, {"materialNumber": "X-2"})
    bar.controller.set_search("M-1")

    export = bar.export(now=datetime(2024, 5, 6, 7, 8))

    assert export.filename == "office_2024-05-06_07-08.xlsx"
    assert export.content == b"xlsx"
    _, rows, sheet = exporter.calls[0]
    assert [row[0] for row in rows] == ["r0", "r1"]
    assert sheet == "Data"


def test_filtered_export_scope_uses_visible_rows(contributor_context):
    config = replace(OFFICE, export_scope=ExportScope.FILTERED)
    exporter = RecordingExporter()
    bar = action_bar(contributor_context, config=config, exporter=exporter)
    load(bar.controller, {"materialNumber": "M-2"}, {"materialNumber": "X-1"}, {"materialNumber": "M-1"})
    bar.controller.set_search("m-")
    bar.controller.sort = SortState("materialNumber", SortDirection.ASC)

    bar.export()

    _, rows, _ = exporter.calls[0]
    assert [row[0] for row in rows] == ["r2", "r0"]


def test_stock_page_wires_components(store, contributor_context):
    page = StockPage(OFFICE, store, contributor_context, exporter=RecordingExporter())
    page.open()

    page.actions.add()
    page.editor.set_value("materialNumber", "M-9")
    page.editor.save()
    page.close()

    assert [d.data["materialNumber"] for d in store.query("office")] == ["M-9"]
    assert not page.editor.is_open
