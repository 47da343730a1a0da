"""
Stock page view layer.

Toolkit-independent controllers of the inventory pages: the realtime table,
the record editor, the action bar, spreadsheet export, the page guard and
the user menu. Views are plain dataclasses a UI renders.
"""

from .actions import ActionBar, ActionBarView
from .catalog import TABLES, ExportScope, TableConfig, get_table
from .editor import EditorMode, FormView, RecordEditor
from .export import ExportFile, Exporter, PandasExcelExporter, load_exporter
from .guard import GuardDecision, PageGuard
from .page import StockPage
from .table import SortDirection, SortState, TableController, TableView
from .user_menu import UserMenuView, build_user_menu, load_user_menu

__all__ = [
    "ActionBar",
    "ActionBarView",
    "TABLES",
    "ExportScope",
    "TableConfig",
    "get_table",
    "EditorMode",
    "FormView",
    "RecordEditor",
    "ExportFile",
    "Exporter",
    "PandasExcelExporter",
    "load_exporter",
    "GuardDecision",
    "PageGuard",
    "StockPage",
    "SortDirection",
    "SortState",
    "TableController",
    "TableView",
    "UserMenuView",
    "build_user_menu",
    "load_user_menu",
]
