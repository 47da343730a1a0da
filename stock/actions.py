"""
Role-gated toolbar and row actions of a stock table.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from models.record import Record
from services.document_store import DocumentStore
from services.session import SessionContext, SessionResolver
from stock.catalog import ExportScope
from stock.editor import RecordEditor
from stock.export import ExportFile, Exporter, export_records, load_exporter
from stock.table import TableController
from utils.exceptions import EStockError, NotFound, RemoteWriteError, Unauthenticated
from utils.logging import setup_logger

logger = setup_logger(__name__)

DELETE_FAILED_MESSAGE = "Failed to delete data."


@dataclass(frozen=True)
class ActionBarView:
    add: bool
    edit: bool
    delete: bool
    export: bool = True


class ActionBar:
    def __init__(
        self,
        controller: TableController,
        editor: RecordEditor,
        store: DocumentStore,
        context: SessionContext,
        exporter: Optional[Exporter] = None,
    ):
        self.controller = controller
        self.editor = editor
        self.store = store
        self.context = context
        self.exporter = exporter
        self.message: Optional[str] = None

    @property
    def config(self):
        return self.controller.config

    def view(self) -> ActionBarView:
        can_write = self.context.role.can_write
        return ActionBarView(add=can_write, edit=can_write, delete=can_write)

    def _writer(self):
        session = self.context.session
        if session is None:
            raise Unauthenticated()
        return SessionResolver.require_writer(session)

    def _record(self, record_id: str) -> Record:
        record = self.controller.record(record_id)
        if record is None:
            raise NotFound(f"Record '{record_id}' not found")
        return record

    def add(self) -> None:
        self._writer()
        self.editor.open_create()

    def edit(self, record_id: str) -> None:
        self._writer()
        record = self._record(record_id)
        self.editor.open_edit(record.id, record.data)

    def delete(self, record_id: str, confirm: Callable[[Record], bool]) -> bool:
        """
        Hard-delete a record once ``confirm`` agrees.

        Returns:
            False when the confirmation was declined

        Raises:
            RemoteWriteError: The store rejected the delete; the row stays
        """
        self._writer()
        record = self._record(record_id)
        if not confirm(record):
            return False
        self.message = None
        try:
            self.store.delete(self.config.collection, record.id)
        except EStockError as e:
            logger.error(
                "Failed to delete record",
                extra={
                    "collection": self.config.collection,
                    "record_id": record.id,
                    "error_message": str(e),
                },
            )
            self.message = DELETE_FAILED_MESSAGE
            raise RemoteWriteError(DELETE_FAILED_MESSAGE) from e
        return True

    def export_scope_records(self) -> List[Record]:
        if self.config.export_scope is ExportScope.FILTERED:
            return self.controller.visible()
        return list(self.controller.records)

    def export(self, now: Optional[datetime] = None) -> ExportFile:
        """
        Spreadsheet of the table, available to every role.

        Raises:
            ExportUnavailable: No spreadsheet engine could be loaded
        """
        exporter = self.exporter or load_exporter()
        return export_records(self.config, self.export_scope_records(), exporter, now)
