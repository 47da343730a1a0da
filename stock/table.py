"""
Realtime table controller of the stock pages.

The controller subscribes to a collection ordered by ``createdAt``
descending, replaces its dataset with every snapshot, and derives the view
through filter, sort and paginate. Rendering is a pure function of the page
and the caller's role.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from models.document import Snapshot, SnapshotEvent
from models.profile import Role
from models.record import Record, coerce_number, is_empty
from services.document_store import DocumentStore, Subscription
from services.session import SessionContext
from stock.catalog import PAGE_SIZES, TOTAL_KEY, PageSize, TableConfig
from utils.logging import setup_logger

logger = setup_logger(__name__)

_DIGITS = re.compile(r"(\d+)")


class SortDirection(str, Enum):
    NONE = "none"
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortState:
    key: Optional[str] = None
    direction: SortDirection = SortDirection.NONE

    @property
    def active(self) -> bool:
        return self.key is not None and self.direction is not SortDirection.NONE

    def toggle(self, key: str) -> "SortState":
        """Next state after a header click: asc, desc, then store order."""
        if key != self.key or self.direction is SortDirection.NONE:
            return SortState(key, SortDirection.ASC)
        if self.direction is SortDirection.ASC:
            return SortState(key, SortDirection.DESC)
        return SortState()


def display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def natural_key(value: Any) -> Tuple[Tuple[int, int, str], ...]:
    """Case-insensitive, digit-aware ordering key ("item2" < "item10")."""
    parts = _DIGITS.split(display(value).casefold())
    return tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part) for part in parts if part
    )


def cell_value(config: TableConfig, record: Record, key: str) -> Any:
    if key == TOTAL_KEY and config.has_total:
        return config.compute_total(record.data)
    return record.value(key)


def filter_records(config: TableConfig, records: Sequence[Record], term: str) -> List[Record]:
    """Records whose id, field values or total contain ``term``, ignoring case."""
    needle = (term or "").strip().casefold()
    if not needle:
        return list(records)

    def matches(record: Record) -> bool:
        if needle in record.id.casefold():
            return True
        return any(
            needle in display(cell_value(config, record, key)).casefold()
            for key in config.column_keys()
        )

    return [record for record in records if matches(record)]


def sort_records(config: TableConfig, records: Sequence[Record], sort: SortState) -> List[Record]:
    """
    Order records by one column.

    Empty values go last ascending and first descending; equal values keep
    their store order.
    """
    if not sort.active:
        return list(records)

    numeric = config.is_numeric(sort.key)
    present, empty = [], []
    for record in records:
        value = cell_value(config, record, sort.key)
        (empty if is_empty(value) else present).append((value, record))

    if numeric:
        present.sort(key=lambda pair: coerce_number(pair[0]), reverse=sort.direction is SortDirection.DESC)
    else:
        present.sort(key=lambda pair: natural_key(pair[0]), reverse=sort.direction is SortDirection.DESC)

    ordered = [record for _, record in present]
    missing = [record for _, record in empty]
    if sort.direction is SortDirection.DESC:
        return missing + ordered
    return ordered + missing


@dataclass(frozen=True)
class Page:
    records: Tuple[Record, ...]
    number: int
    count: int
    total: int
    start: int


def paginate(records: Sequence[Record], page: int, page_size: PageSize) -> Page:
    """Slice for ``page``, clamped to the existing pages; an empty set has page 1."""
    total = len(records)
    if page_size == "all":
        return Page(tuple(records), 1, 1, total, 0)

    count = max(1, math.ceil(total / page_size))
    number = min(max(1, page), count)
    start = (number - 1) * page_size
    return Page(tuple(records[start:start + page_size]), number, count, total, start)


@dataclass(frozen=True)
class ColumnView:
    key: str
    label: str
    numeric: bool
    sort: SortDirection = SortDirection.NONE


@dataclass(frozen=True)
class RowView:
    id: str
    cells: Tuple[str, ...]
    actions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TableView:
    title: str
    columns: Tuple[ColumnView, ...]
    rows: Tuple[RowView, ...]
    show_add: bool
    show_export: bool
    show_actions: bool
    page: int
    page_count: int
    total_count: int
    page_size: PageSize
    dense: bool = False


def render(
    config: TableConfig,
    page: Page,
    role: Role,
    sort: SortState = SortState(),
    page_size: Optional[PageSize] = None,
) -> TableView:
    """View of one page; only writers get row actions and the add control."""
    can_write = role.can_write
    columns = [
        ColumnView(
            key=spec.key,
            label=spec.label,
            numeric=spec.is_numeric,
            sort=sort.direction if sort.key == spec.key else SortDirection.NONE,
        )
        for spec in config.fields
    ]
    if config.has_total:
        columns.append(
            ColumnView(
                key=TOTAL_KEY,
                label=config.total_label,
                numeric=True,
                sort=sort.direction if sort.key == TOTAL_KEY else SortDirection.NONE,
            )
        )

    actions = ("edit", "delete") if can_write else ()
    rows = tuple(
        RowView(
            id=record.id,
            cells=tuple(display(cell_value(config, record, c.key)) for c in columns),
            actions=actions,
        )
        for record in page.records
    )
    return TableView(
        title=config.title or config.collection,
        columns=tuple(columns),
        rows=rows,
        show_add=can_write,
        show_export=True,
        show_actions=can_write,
        page=page.number,
        page_count=page.count,
        total_count=page.total,
        page_size=page_size if page_size is not None else config.default_page_size,
        dense=config.dense,
    )


class ControllerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SUBSCRIBED = "subscribed"
    UPDATED = "updated"
    TORN_DOWN = "torn_down"


class TableController:
    """
    Live table over one collection.

    ``initialize`` opens the subscription, ``run`` consumes it until
    ``teardown``; every change to the data, search, sort, page or session
    re-renders through ``on_render``.
    """

    def __init__(
        self,
        config: TableConfig,
        context: SessionContext,
        on_render: Optional[Callable[[TableView], None]] = None,
    ):
        self.config = config
        self.context = context
        self.on_render = on_render
        self.state = ControllerState.UNINITIALIZED
        self.records: List[Record] = []
        self.search = ""
        self.sort = SortState()
        self.page = 1
        self.page_size: PageSize = config.default_page_size
        self.error_count = 0
        self.last_error: Optional[Exception] = None
        self.view: Optional[TableView] = None
        self._subscription: Optional[Subscription] = None
        self._unsubscribe_session: Optional[Callable[[], None]] = None

    def initialize(self, store: DocumentStore) -> Subscription:
        if self.state is not ControllerState.UNINITIALIZED:
            raise RuntimeError(f"Table controller is {self.state.value}")
        self._subscription = store.subscribe(
            self.config.collection, order_by=self.config.order_by, descending=True
        )
        self._unsubscribe_session = self.context.subscribe(lambda _session: self.refresh())
        self.state = ControllerState.SUBSCRIBED
        self.refresh()
        return self._subscription

    async def run(self) -> None:
        """Apply subscription events until the subscription closes."""
        if self._subscription is None:
            raise RuntimeError("Table controller is not initialized")
        async for event in self._subscription:
            self.apply_event(event)

    def apply_event(self, event: SnapshotEvent) -> None:
        if event.ok:
            self.apply_snapshot(event.snapshot)
            return
        self.error_count += 1
        self.last_error = event.error
        logger.warning(
            "Subscription error, keeping last dataset",
            extra={
                "collection": self.config.collection,
                "error_count": self.error_count,
                "error_message": str(event.error),
            },
        )

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        if self.state is ControllerState.TORN_DOWN:
            return
        self.records = [Record.from_document(document) for document in snapshot.documents]
        self.state = ControllerState.UPDATED
        self.refresh()

    def record(self, record_id: str) -> Optional[Record]:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def set_search(self, term: str) -> None:
        self.search = term or ""
        self.page = 1
        self.refresh()

    def toggle_sort(self, key: str) -> None:
        if key not in self.config.column_keys():
            raise ValueError(f"Unknown column '{key}'")
        self.sort = self.sort.toggle(key)
        self.refresh()

    def set_page(self, page: int) -> None:
        self.page = page
        self.refresh()

    def set_page_size(self, page_size: PageSize) -> None:
        if page_size not in PAGE_SIZES:
            raise ValueError(f"Page size must be one of {PAGE_SIZES}")
        self.page_size = page_size
        self.page = 1
        self.refresh()

    def filtered(self) -> List[Record]:
        return filter_records(self.config, self.records, self.search)

    def visible(self) -> List[Record]:
        """Filtered and sorted records, every page."""
        return sort_records(self.config, self.filtered(), self.sort)

    def current_page(self) -> Page:
        return paginate(self.visible(), self.page, self.page_size)

    def refresh(self) -> Optional[TableView]:
        if self.state is ControllerState.TORN_DOWN:
            return self.view
        page = self.current_page()
        self.page = page.number
        self.view = render(self.config, page, self.context.role, self.sort, self.page_size)
        if self.on_render is not None:
            self.on_render(self.view)
        return self.view

    def teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
        self.state = ControllerState.TORN_DOWN
