"""
Table configurations of the stock pages.

Every stock page is the same controller driven by one ``TableConfig``; the
differences between pages (fields, total column, export scope, page size,
density) are fields of the configuration.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from models.record import FieldKind, FieldSpec, Number, coerce_number

PageSize = Union[int, str]

PAGE_SIZES: Tuple[PageSize, ...] = (10, 25, 50, 100, "all")

# Sort/filter key of the computed total column
TOTAL_KEY = "total"


class ExportScope(str, Enum):
    ALL = "all"
    FILTERED = "filtered"


def default_export_scope() -> ExportScope:
    try:
        return ExportScope(os.getenv("EXPORT_SCOPE", "all").strip().lower())
    except ValueError:
        return ExportScope.ALL


@dataclass(frozen=True)
class TableConfig:
    """
    One tracked collection as presented by a stock page.

    ``total`` computes the optional total column from a record's data.
    """

    collection: str
    fields: Tuple[FieldSpec, ...]
    title: str = ""
    total: Optional[Callable[[Dict[str, Any]], Number]] = None
    total_label: str = "Total"
    export_scope: ExportScope = ExportScope.ALL
    default_page_size: PageSize = 10
    dense: bool = False
    order_by: str = "createdAt"

    def __post_init__(self):
        if not self.collection:
            raise ValueError("collection is required")
        if not self.fields:
            raise ValueError(f"{self.collection}: at least one field is required")
        keys = [f.key for f in self.fields]
        if len(set(keys)) != len(keys):
            raise ValueError(f"{self.collection}: duplicate field keys")
        if self.total is not None and TOTAL_KEY in keys:
            raise ValueError(f"{self.collection}: '{TOTAL_KEY}' is reserved for the total column")
        if self.default_page_size not in PAGE_SIZES:
            raise ValueError(f"{self.collection}: page size must be one of {PAGE_SIZES}")

    @property
    def has_total(self) -> bool:
        return self.total is not None

    def field(self, key: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.key == key:
                return spec
        return None

    def column_keys(self) -> Tuple[str, ...]:
        keys = tuple(f.key for f in self.fields)
        return keys + (TOTAL_KEY,) if self.has_total else keys

    def is_numeric(self, key: str) -> bool:
        if key == TOTAL_KEY and self.has_total:
            return True
        spec = self.field(key)
        return spec is not None and spec.is_numeric

    def compute_total(self, data: Dict[str, Any]) -> Optional[Number]:
        if self.total is None:
            return None
        return self.total(data)


def stock_balance(data: Dict[str, Any]) -> Number:
    """Quantity received minus quantity issued."""
    return coerce_number(data.get("qtyIn")) - coerce_number(data.get("qtyOut"))


_ITEM_FIELDS = (
    FieldSpec(key="materialNumber", label="Material Number", required=True),
    FieldSpec(key="description", label="Description"),
    FieldSpec(key="unit", label="Unit"),
    FieldSpec(key="qtyIn", label="Qty In", kind=FieldKind.NUMBER),
    FieldSpec(key="qtyOut", label="Qty Out", kind=FieldKind.NUMBER),
    FieldSpec(key="location", label="Location"),
    FieldSpec(key="receivedDate", label="Received Date", kind=FieldKind.DATE),
)


def _stock_table(collection: str, title: str, **overrides) -> TableConfig:
    options = {
        "total": stock_balance,
        "total_label": "Total Stock",
        "export_scope": default_export_scope(),
    }
    options.update(overrides)
    return TableConfig(collection=collection, fields=_ITEM_FIELDS, title=title, **options)


OFFICE = _stock_table("office", "Office Supplies")
PPE = _stock_table("ppe", "Personal Protective Equipment")
SOUVENIR = _stock_table("souvenir", "Souvenirs", dense=True)
SUPPLIER = TableConfig(
    collection="supplier",
    title="Suppliers",
    fields=(
        FieldSpec(key="supplierName", label="Supplier Name", required=True),
        FieldSpec(key="contactPerson", label="Contact Person"),
        FieldSpec(key="phone", label="Phone"),
        FieldSpec(key="email", label="Email"),
        FieldSpec(key="address", label="Address"),
        FieldSpec(key="since", label="Partner Since", kind=FieldKind.DATE),
    ),
    export_scope=default_export_scope(),
    default_page_size=25,
)

TABLES: Dict[str, TableConfig] = {
    table.collection: table for table in (OFFICE, PPE, SOUVENIR, SUPPLIER)
}


def get_table(collection: str) -> Optional[TableConfig]:
    return TABLES.get(collection)
