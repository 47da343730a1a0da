"""
In-process document store.

Keeps every collection in dictionaries and pushes a fresh snapshot to each
open subscription after every write, the way a realtime backend does. Used
for local development and by the test suite.
"""

import copy
import uuid
from typing import Any, Dict, List, Optional, Tuple

from models.document import (Document, WriteKind, WriteOp,
                             resolve_server_timestamps, sort_documents)
from services.document_store import DocumentStore, Subscription
from utils.exceptions import NotFound


class MemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._subscriptions: List[Tuple[Subscription, Optional[str], bool]] = []

    def _docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        data = self._docs(collection).get(doc_id)
        if data is None:
            return None
        return Document(id=doc_id, data=copy.deepcopy(data))

    def create(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = str(uuid.uuid4())
        self._docs(collection)[doc_id] = resolve_server_timestamps(data, self.now())
        self._notify({collection})
        return doc_id

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        docs = self._docs(collection)
        if doc_id not in docs:
            raise NotFound(f"Document '{collection}/{doc_id}' not found")
        docs[doc_id].update(resolve_server_timestamps(data, self.now()))
        self._notify({collection})

    def set(
        self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        self._apply(WriteOp.set(collection, doc_id, data, merge=merge), self.now())
        self._notify({collection})

    def delete(self, collection: str, doc_id: str) -> None:
        if self._docs(collection).pop(doc_id, None) is not None:
            self._notify({collection})

    def query(
        self, collection: str, order_by: Optional[str] = None, descending: bool = False
    ) -> List[Document]:
        documents = [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._docs(collection).items()
        ]
        return sort_documents(documents, order_by, descending)

    def subscribe(
        self, collection: str, order_by: Optional[str] = "createdAt", descending: bool = True
    ) -> Subscription:
        subscription = Subscription(collection, on_close=self._unsubscribe)
        self._subscriptions.append((subscription, order_by, descending))
        subscription.push_snapshot(self.query(collection, order_by, descending))
        return subscription

    def batch_write(self, ops: List[WriteOp]) -> None:
        for op in ops:
            if op.kind is WriteKind.UPDATE and op.doc_id not in self._docs(op.collection):
                raise NotFound(f"Document '{op.collection}/{op.doc_id}' not found")

        now = self.now()
        staged = copy.deepcopy(self._collections)
        live, self._collections = self._collections, staged
        try:
            for op in ops:
                self._apply(op, now)
        except Exception:
            self._collections = live
            raise
        self._notify({op.collection for op in ops})

    def _apply(self, op: WriteOp, now: str) -> None:
        docs = self._docs(op.collection)
        if op.kind is WriteKind.DELETE:
            docs.pop(op.doc_id, None)
            return
        data = resolve_server_timestamps(op.data, now)
        if op.kind is WriteKind.UPDATE or (op.merge and op.doc_id in docs):
            docs.setdefault(op.doc_id, {}).update(data)
        else:
            docs[op.doc_id] = data

    def _unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions = [s for s in self._subscriptions if s[0] is not subscription]

    def _notify(self, collections) -> None:
        for subscription, order_by, descending in list(self._subscriptions):
            if subscription.collection in collections:
                subscription.push_snapshot(
                    self.query(subscription.collection, order_by, descending)
                )
