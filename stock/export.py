"""
Spreadsheet export of a stock table.

The rows are built from the in-memory dataset and written as a single
"Data" sheet through pandas. The Excel writer engine is picked from a
ranked list; when none of them can be imported the export fails as a whole
and no file is produced.
"""

import importlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from io import BytesIO
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from models.record import Record
from services.parameter_store import config
from stock.catalog import TableConfig
from utils.exceptions import ExportUnavailable
from utils.logging import setup_logger
from utils.responses import XLSX_CONTENT_TYPE

logger = setup_logger(__name__)

SHEET_NAME = "Data"


class Exporter(ABC):
    @abstractmethod
    def export(self, headers: Sequence[str], rows: Sequence[Sequence[Any]], sheet_name: str = SHEET_NAME) -> bytes:
        """Workbook bytes holding one sheet with ``headers`` and ``rows``."""


class PandasExcelExporter(Exporter):
    """Writes the sheet with ``DataFrame.to_excel`` through one writer engine."""

    def __init__(self, engine: str):
        self.engine = engine

    def export(self, headers, rows, sheet_name=SHEET_NAME):
        df = pd.DataFrame(list(rows), columns=list(headers))
        buffer = BytesIO()
        with pd.ExcelWriter(buffer, engine=self.engine) as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
        return buffer.getvalue()


def load_exporter(engines: Optional[Iterable[str]] = None) -> Exporter:
    """
    Exporter for the first engine in ``engines`` that imports.

    Raises:
        ExportUnavailable: None of the engines could be imported
    """
    engines = list(engines) if engines is not None else config.export_engines()
    for engine in engines:
        try:
            importlib.import_module(engine)
        except ImportError as e:
            logger.warning(
                "Spreadsheet engine unavailable", extra={"engine": engine, "error_message": str(e)}
            )
            continue
        return PandasExcelExporter(engine)
    raise ExportUnavailable(
        "Spreadsheet export is unavailable", {"engines": engines}
    )


def iso(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


TIMESTAMP_COLUMNS = (("Created At", "created_at"), ("Updated At", "updated_at"))


def build_export_rows(
    table: TableConfig, records: Sequence[Record]
) -> Tuple[List[str], List[List[Any]]]:
    """
    Header row and one row per record: id, fields, total, then each timestamp
    column that at least one record carries.
    """
    timestamps = [
        (label, attr)
        for label, attr in TIMESTAMP_COLUMNS
        if any(getattr(record, attr) for record in records)
    ]
    headers = ["ID"] + [spec.label for spec in table.fields]
    if table.has_total:
        headers.append(table.total_label)
    headers += [label for label, _ in timestamps]

    rows = []
    for record in records:
        row = [record.id]
        for spec in table.fields:
            value = record.value(spec.key)
            if spec.is_numeric:
                row.append(spec.coerce(value))
            else:
                row.append("" if value is None else value)
        if table.has_total:
            row.append(table.compute_total(record.data))
        row += [iso(getattr(record, attr)) for _, attr in timestamps]
        rows.append(row)
    return headers, rows


def export_filename(collection: str, now: Optional[datetime] = None) -> str:
    """``{collection}_{YYYY-MM-DD_HH-MM}.xlsx`` in local time."""
    now = now or datetime.now()
    return f"{collection}_{now:%Y-%m-%d_%H-%M}.xlsx"


@dataclass(frozen=True)
class ExportFile:
    filename: str
    content: bytes
    content_type: str = XLSX_CONTENT_TYPE


def export_records(
    table: TableConfig,
    records: Sequence[Record],
    exporter: Exporter,
    now: Optional[datetime] = None,
) -> ExportFile:
    headers, rows = build_export_rows(table, records)
    content = exporter.export(headers, rows, SHEET_NAME)
    logger.info(
        "Exported records", extra={"collection": table.collection, "row_count": len(rows)}
    )
    return ExportFile(filename=export_filename(table.collection, now), content=content)
