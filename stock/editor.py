"""
Schema-driven record form: create one record or edit an existing one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from models.document import SERVER_TIMESTAMP
from models.record import is_empty
from services.document_store import DocumentStore
from services.session import SessionContext, SessionResolver
from stock.catalog import TableConfig
from stock.table import display
from utils.exceptions import EStockError, RemoteWriteError, Unauthenticated, ValidationError
from utils.logging import setup_logger

logger = setup_logger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save data."
REQUIRED_MESSAGE = "Please complete the required fields."
INVALID_MESSAGE = "Please fix the highlighted fields."


class EditorMode(str, Enum):
    CLOSED = "closed"
    CREATE = "create"
    EDIT = "edit"


@dataclass(frozen=True)
class InputView:
    key: str
    label: str
    type: str
    required: bool
    value: str
    invalid: bool = False
    message: Optional[str] = None


@dataclass(frozen=True)
class FormView:
    open: bool
    title: str
    inputs: Tuple[InputView, ...]
    message: Optional[str] = None
    submit_label: str = "Save"


class RecordEditor:
    def __init__(self, config: TableConfig, store: DocumentStore, context: SessionContext):
        self.config = config
        self.store = store
        self.context = context
        self.mode = EditorMode.CLOSED
        self.record_id: Optional[str] = None
        self.values: Dict[str, str] = {}
        self.errors: Dict[str, str] = {}
        self.message: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.mode is not EditorMode.CLOSED

    def _reset(self, mode: EditorMode, record_id: Optional[str], data: Dict[str, Any]) -> None:
        self.mode = mode
        self.record_id = record_id
        self.values = {spec.key: display(data.get(spec.key)) for spec in self.config.fields}
        self.errors = {}
        self.message = None

    def open_create(self) -> None:
        self._reset(EditorMode.CREATE, None, {})

    def open_edit(self, record_id: str, current_data: Dict[str, Any]) -> None:
        self._reset(EditorMode.EDIT, record_id, current_data)

    def close(self) -> None:
        self._reset(EditorMode.CLOSED, None, {})

    def set_value(self, key: str, raw: Any) -> None:
        if self.config.field(key) is None:
            raise ValueError(f"Unknown field '{key}'")
        self.values[key] = "" if raw is None else str(raw)
        self.errors.pop(key, None)

    def validate(self) -> Dict[str, Any]:
        """
        Check the form and return the values as written to the store.

        Raises:
            ValidationError: A field failed its check; the failing fields are
                marked invalid
        """
        self.errors = {}
        missing = False
        for spec in self.config.fields:
            value = self.values.get(spec.key, "")
            problem = spec.check(value)
            if problem:
                self.errors[spec.key] = problem
                missing = missing or (spec.required and is_empty(value))
        if self.errors:
            self.message = REQUIRED_MESSAGE if missing else INVALID_MESSAGE
            raise ValidationError(self.message, fields=self.errors.keys())
        return {
            spec.key: spec.coerce(self.values.get(spec.key, "")) for spec in self.config.fields
        }

    def save(self) -> str:
        """
        Write the form: a new record in create mode, an update in edit mode.

        Returns:
            The id of the written record

        Raises:
            Unauthenticated: No session
            Forbidden: The session may not write
            ValidationError: The form is incomplete; nothing was written
            RemoteWriteError: The store rejected the write; the form stays open
        """
        if not self.is_open:
            raise RuntimeError("Editor is closed")
        session = self.context.session
        if session is None:
            raise Unauthenticated("Sign in to save data")
        SessionResolver.require_writer(session)

        data = self.validate()
        try:
            if self.mode is EditorMode.CREATE:
                data.update(
                    createdAt=SERVER_TIMESTAMP, updatedAt=SERVER_TIMESTAMP, createdBy=session.uid
                )
                record_id = self.store.create(self.config.collection, data)
            else:
                data["updatedAt"] = SERVER_TIMESTAMP
                self.store.update(self.config.collection, self.record_id, data)
                record_id = self.record_id
        except EStockError as e:
            logger.error(
                "Failed to save record",
                extra={
                    "collection": self.config.collection,
                    "record_id": self.record_id,
                    "error_message": str(e),
                },
            )
            self.message = SAVE_FAILED_MESSAGE
            raise RemoteWriteError(SAVE_FAILED_MESSAGE) from e

        self.close()
        return record_id

    def form(self) -> FormView:
        if not self.is_open:
            return FormView(open=False, title="", inputs=())
        inputs = tuple(
            InputView(
                key=spec.key,
                label=f"{spec.label} *" if spec.required else spec.label,
                type=spec.kind.value,
                required=spec.required,
                value=self.values.get(spec.key, ""),
                invalid=spec.key in self.errors,
                message=self.errors.get(spec.key),
            )
            for spec in self.config.fields
        )
        title = "Add New" if self.mode is EditorMode.CREATE else "Edit Data"
        return FormView(open=True, title=title, inputs=inputs, message=self.message)
