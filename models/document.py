"""Store-level document values shared by every document store backend."""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class _ServerTimestamp:
    """Placeholder replaced by the store's clock when the write is applied."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class Document(BaseModel):
    """A document as returned by the store: its id and its full data."""

    model_config = ConfigDict(frozen=True)

    id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class Snapshot(BaseModel):
    """Full result set of a subscribed query at one point in time."""

    model_config = ConfigDict(frozen=True)

    collection: str
    documents: Tuple[Document, ...] = ()

    def __len__(self) -> int:
        return len(self.documents)


class SnapshotEvent(BaseModel):
    """One notification from a subscription: a snapshot or an error."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    snapshot: Optional[Snapshot] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class WriteKind(str, Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


class WriteOp(BaseModel):
    """One operation of an atomic batch write."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: WriteKind
    collection: str
    doc_id: str
    data: Dict[str, Any] = Field(default_factory=dict)
    merge: bool = True

    @classmethod
    def set(cls, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = True) -> "WriteOp":
        return cls(kind=WriteKind.SET, collection=collection, doc_id=doc_id, data=data, merge=merge)

    @classmethod
    def update(cls, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteOp":
        return cls(kind=WriteKind.UPDATE, collection=collection, doc_id=doc_id, data=data)

    @classmethod
    def delete(cls, collection: str, doc_id: str) -> "WriteOp":
        return cls(kind=WriteKind.DELETE, collection=collection, doc_id=doc_id)


def resolve_server_timestamps(data: Dict[str, Any], now: str) -> Dict[str, Any]:
    """Copy of ``data`` with every SERVER_TIMESTAMP replaced by ``now``."""
    return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in data.items()}


def sort_documents(
    documents: List[Document], order_by: Optional[str], descending: bool
) -> List[Document]:
    """Order documents by one data field; documents missing it go last."""
    if not order_by:
        return list(documents)
    present = [d for d in documents if d.data.get(order_by) is not None]
    missing = [d for d in documents if d.data.get(order_by) is None]
    present.sort(key=lambda d: d.data[order_by], reverse=descending)
    return present + missing
