"""Inventory record and field schema models."""

import math
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.document import Document

SYSTEM_FIELDS = ("createdAt", "updatedAt", "createdBy")

Number = Union[int, float]


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


def coerce_number(raw: Any) -> Number:
    """Form input to a number; empty or unparseable input is 0."""
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, (int, float)):
        return raw if math.isfinite(raw) else 0
    text = str(raw if raw is not None else "").strip()
    if not text:
        return 0
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return 0
    if not math.isfinite(value):
        return 0
    return int(value) if value.is_integer() else value


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class FieldSpec(BaseModel):
    """One column of a collection: key in the document, label, kind, required flag."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    label: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False

    @property
    def is_numeric(self) -> bool:
        return self.kind is FieldKind.NUMBER

    def coerce(self, raw: Any) -> Any:
        """Value as it is written to the store."""
        if self.kind is FieldKind.NUMBER:
            return coerce_number(raw)
        return "" if raw is None else str(raw).strip()

    def check(self, value: Any) -> Optional[str]:
        """Problem with a form value, or None when it may be saved."""
        if self.kind is FieldKind.NUMBER:
            # Numbers always coerce; only a required blank is a problem
            if self.required and is_empty(value):
                return f"{self.label} is required"
            return None
        if self.required and is_empty(value):
            return f"{self.label} is required"
        if self.kind is FieldKind.DATE and not is_empty(value):
            try:
                date.fromisoformat(str(value).strip())
            except ValueError:
                return f"{self.label} must be a date (YYYY-MM-DD)"
        return None


class Record(BaseModel):
    """One inventory item: store id plus the document data."""

    model_config = ConfigDict(frozen=True)

    id: str
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Document) -> "Record":
        return cls(id=document.id, data=dict(document.data))

    def value(self, key: str) -> Any:
        return self.data.get(key)

    @property
    def created_at(self) -> Optional[str]:
        return self.data.get("createdAt")

    @property
    def updated_at(self) -> Optional[str]:
        return self.data.get("updatedAt")

    @property
    def created_by(self) -> Optional[str]:
        return self.data.get("createdBy")

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.data}
