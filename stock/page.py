"""
One stock page: table controller, record editor and action bar sharing a
collection, a store and the session context.
"""

from typing import Callable, Optional

from services.document_store import DocumentStore
from services.session import SessionContext
from stock.actions import ActionBar
from stock.catalog import TableConfig
from stock.editor import RecordEditor
from stock.export import Exporter
from stock.table import TableController, TableView


class StockPage:
    def __init__(
        self,
        config: TableConfig,
        store: DocumentStore,
        context: SessionContext,
        exporter: Optional[Exporter] = None,
        on_render: Optional[Callable[[TableView], None]] = None,
    ):
        self.config = config
        self.store = store
        self.controller = TableController(config, context, on_render=on_render)
        self.editor = RecordEditor(config, store, context)
        self.actions = ActionBar(self.controller, self.editor, store, context, exporter)

    def open(self) -> None:
        self.controller.initialize(self.store)

    async def run(self) -> None:
        await self.controller.run()

    def close(self) -> None:
        self.editor.close()
        self.controller.teardown()
