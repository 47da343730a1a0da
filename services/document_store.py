"""
Document store contract.

Collections of JSON-like documents with per-document CRUD, ordered queries,
atomic batches and a continuous subscription that delivers the full result
set on every change. The DynamoDB table and the in-memory store both
implement it.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from models.document import Document, Snapshot, SnapshotEvent, WriteOp
from utils.exceptions import SubscriptionError
from utils.logging import setup_logger

logger = setup_logger(__name__)

_CLOSED = object()


class Subscription:
    """
    Cancellable async sequence of snapshot events for one query.

    Iterate with ``async for``; ``close()`` ends the iteration and releases
    the producer. Events queued before ``close()`` are dropped.
    """

    def __init__(
        self, collection: str, on_close: Optional[Callable[["Subscription"], None]] = None
    ):
        self.collection = collection
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._on_close = on_close

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, event: SnapshotEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def push_snapshot(self, documents: List[Document]) -> None:
        self.push(
            SnapshotEvent(snapshot=Snapshot(collection=self.collection, documents=tuple(documents)))
        )

    def push_error(self, error: Exception) -> None:
        self.push(SnapshotEvent(error=error))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._on_close is not None:
            self._on_close(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> SnapshotEvent:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        return item


class PollingSubscription(Subscription):
    """
    Subscription for stores without change notifications.

    Runs ``fetch`` in a worker thread every ``interval`` seconds and emits a
    snapshot whenever the result differs from the last one emitted. The first
    successful poll always emits. Poll failures are emitted as error events
    and polling continues.
    """

    def __init__(
        self,
        collection: str,
        fetch: Callable[[], List[Document]],
        interval: float = 2.0,
    ):
        super().__init__(collection)
        self._fetch = fetch
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._last: Optional[List[Document]] = None

    async def __anext__(self) -> SnapshotEvent:
        if self._task is None and not self._closed:
            self._task = asyncio.get_running_loop().create_task(self._poll())
        return await super().__anext__()

    async def _poll(self) -> None:
        while not self._closed:
            try:
                documents = await asyncio.to_thread(self._fetch)
            except Exception as e:
                logger.warning(
                    "Subscription poll failed",
                    extra={"collection": self.collection, "error_message": str(e)},
                )
                self.push_error(SubscriptionError(f"Failed to query {self.collection}: {e}"))
            else:
                if documents != self._last:
                    self._last = documents
                    self.push_snapshot(documents)
            await asyncio.sleep(self._interval)

    def close(self) -> None:
        super().close()
        if self._task is not None:
            self._task.cancel()


class DocumentStore(ABC):
    """Collection-oriented document store."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Document by id, or None when absent."""

    @abstractmethod
    def create(self, collection: str, data: Dict[str, Any]) -> str:
        """Insert a document under a new store-assigned id and return the id."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Overwrite the given fields of an existing document; NotFound if absent."""

    @abstractmethod
    def set(
        self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        """Write a document under a caller-chosen id, replacing or merging."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document; absent documents are ignored."""

    @abstractmethod
    def query(
        self, collection: str, order_by: Optional[str] = None, descending: bool = False
    ) -> List[Document]:
        """All documents of a collection, ordered by one field."""

    @abstractmethod
    def subscribe(
        self, collection: str, order_by: Optional[str] = "createdAt", descending: bool = True
    ) -> Subscription:
        """Continuous query delivering the full result set on every change."""

    @abstractmethod
    def batch_write(self, ops: List[WriteOp]) -> None:
        """Apply every operation or none of them."""

    def now(self) -> str:
        """Server timestamp used in place of SERVER_TIMESTAMP."""
        return datetime.now(timezone.utc).isoformat()
