"""
DynamoDB document store for the E-Stock backend.

Every collection lives in one table: the partition key names the collection
and the sort key the document. The boto3 resource is created on first use
and shared by every store instance of the Lambda container.
"""

import os
import uuid
from typing import Any, Dict, List, Optional, Tuple

import boto3
import botocore

from models.document import (Document, WriteKind, WriteOp,
                             resolve_server_timestamps, sort_documents)
from models.dynamodb import (DocumentItem, check_attribute_names,
                             to_dynamodb_value)
from services.document_store import (DocumentStore, PollingSubscription,
                                     Subscription)
from utils.exceptions import NotFound, RemoteWriteError
from utils.logging import setup_logger

logger = setup_logger(__name__)

# Shared across invocations of a warm Lambda container
_dynamodb_resource = None


def get_dynamodb_resource():
    """Get or create the DynamoDB resource."""
    global _dynamodb_resource
    if _dynamodb_resource is None:
        _dynamodb_resource = boto3.resource("dynamodb")
    return _dynamodb_resource


# Service errors and connection-level failures alike
_AWS_ERRORS = (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError)


def _error_fields(err: Exception) -> Tuple[str, str]:
    if isinstance(err, botocore.exceptions.ClientError):
        error = err.response.get("Error", {})
        return error.get("Code", "Unknown"), error.get("Message", "")
    return type(err).__name__, str(err)


class DynamoDocumentStore(DocumentStore):
    """
    Encapsulates document operations on the E-Stock DynamoDB table.
    """

    def __init__(self, table_name: Optional[str] = None, poll_interval: Optional[float] = None):
        """
        :param table_name: Name of the DynamoDB table; defaults to TABLE_NAME.
        :param poll_interval: Seconds between subscription polls; defaults to
            SUBSCRIPTION_POLL_SECONDS.
        """
        self.table_name = table_name or os.environ.get("TABLE_NAME", "EStockTable")
        if poll_interval is None:
            poll_interval = float(os.environ.get("SUBSCRIPTION_POLL_SECONDS", "2.0"))
        self.poll_interval = poll_interval
        self._table = None

    @property
    def table(self):
        if self._table is None:
            self._table = get_dynamodb_resource().Table(self.table_name)
        return self._table

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """
        Gets one document.

        :return: The document if found, None otherwise.
        """
        try:
            response = self.table.get_item(Key=DocumentItem.key(collection, doc_id))
        except _AWS_ERRORS as err:
            code, message = _error_fields(err)
            logger.error(
                "Couldn't get %s/%s from table %s. Error: %s: %s",
                collection,
                doc_id,
                self.table_name,
                code,
                message,
            )
            raise

        item = response.get("Item")
        if not item:
            return None
        return DocumentItem.to_document(item)

    def create(self, collection: str, data: Dict[str, Any]) -> str:
        """
        Adds a document under a new UUID.

        :return: The id assigned to the document.
        """
        doc_id = str(uuid.uuid4())
        item = DocumentItem.build(collection, doc_id, resolve_server_timestamps(data, self.now()))
        try:
            self.table.put_item(
                Item=item.to_attributes(),
                ConditionExpression="attribute_not_exists(PK)",
            )
        except _AWS_ERRORS as err:
            self._raise_write_error("create", collection, doc_id, err)
        return doc_id

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """
        Overwrites the given fields of an existing document.

        :raises NotFound: The document does not exist.
        """
        if not data:
            return
        check_attribute_names(data)
        expression, names, values = self._set_expression(
            resolve_server_timestamps(data, self.now())
        )
        try:
            self.table.update_item(
                Key=DocumentItem.key(collection, doc_id),
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except _AWS_ERRORS as err:
            if _error_fields(err)[0] == "ConditionalCheckFailedException":
                raise NotFound(f"Document '{collection}/{doc_id}' not found") from err
            self._raise_write_error("update", collection, doc_id, err)

    def set(
        self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False
    ) -> None:
        """
        Writes a document under a known id.

        With ``merge`` only the given fields change and a missing document is
        created; without it the document is replaced.
        """
        data = resolve_server_timestamps(data, self.now())
        try:
            if merge:
                check_attribute_names(data)
                expression, names, values = self._set_expression(
                    data, collection=collection, doc_id=doc_id
                )
                self.table.update_item(
                    Key=DocumentItem.key(collection, doc_id),
                    UpdateExpression=expression,
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values,
                )
            else:
                item = DocumentItem.build(collection, doc_id, data)
                self.table.put_item(Item=item.to_attributes())
        except _AWS_ERRORS as err:
            self._raise_write_error("set", collection, doc_id, err)

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self.table.delete_item(Key=DocumentItem.key(collection, doc_id))
        except _AWS_ERRORS as err:
            self._raise_write_error("delete", collection, doc_id, err)

    def query(
        self, collection: str, order_by: Optional[str] = None, descending: bool = False
    ) -> List[Document]:
        """
        Lists every document of a collection.

        :param order_by: Document field to order by; documents without it go last.
        """
        items = []
        kwargs = {
            "KeyConditionExpression": "PK = :pk AND begins_with(SK, :sk_prefix)",
            "ExpressionAttributeValues": {
                ":pk": DocumentItem.partition_key(collection),
                ":sk_prefix": "DOC#",
            },
        }
        try:
            while True:
                response = self.table.query(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except _AWS_ERRORS as err:
            code, message = _error_fields(err)
            logger.error(
                "Couldn't query collection %s from table %s. Error: %s: %s",
                collection,
                self.table_name,
                code,
                message,
            )
            raise

        documents = [DocumentItem.to_document(item) for item in items]
        return sort_documents(documents, order_by, descending)

    def subscribe(
        self, collection: str, order_by: Optional[str] = "createdAt", descending: bool = True
    ) -> Subscription:
        return PollingSubscription(
            collection,
            lambda: self.query(collection, order_by, descending),
            interval=self.poll_interval,
        )

    def batch_write(self, ops: List[WriteOp]) -> None:
        """
        Commits every operation in one TransactWriteItems call.
        """
        if not ops:
            return
        now = self.now()
        transact_items = [self._transact_item(op, now) for op in ops]
        try:
            self.table.meta.client.transact_write_items(TransactItems=transact_items)
        except _AWS_ERRORS as err:
            code, message = _error_fields(err)
            logger.error(
                "Couldn't commit batch of %d writes to table %s. Error: %s: %s",
                len(ops),
                self.table_name,
                code,
                message,
            )
            if code == "TransactionCanceledException" and "ConditionalCheckFailed" in message:
                raise NotFound("Batch update targets a missing document") from err
            raise RemoteWriteError(
                "Failed to commit batch write", {"error_code": code}
            ) from err

    def _transact_item(self, op: WriteOp, now: str) -> Dict[str, Any]:
        key = DocumentItem.key(op.collection, op.doc_id)
        if op.kind is WriteKind.DELETE:
            return {"Delete": {"TableName": self.table_name, "Key": key}}

        data = resolve_server_timestamps(op.data, now)
        if op.kind is WriteKind.SET and not op.merge:
            item = DocumentItem.build(op.collection, op.doc_id, data)
            return {"Put": {"TableName": self.table_name, "Item": item.to_attributes()}}

        check_attribute_names(data)
        if op.kind is WriteKind.UPDATE:
            expression, names, values = self._set_expression(data)
            condition = {"ConditionExpression": "attribute_exists(PK)"}
        else:
            expression, names, values = self._set_expression(
                data, collection=op.collection, doc_id=op.doc_id
            )
            condition = {}
        return {
            "Update": {
                "TableName": self.table_name,
                "Key": key,
                "UpdateExpression": expression,
                "ExpressionAttributeNames": names,
                "ExpressionAttributeValues": values,
                **condition,
            }
        }

    @staticmethod
    def _set_expression(
        data: Dict[str, Any], collection: Optional[str] = None, doc_id: Optional[str] = None
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """
        Build ``SET #f0 = :v0, ...`` for the given fields.

        ``collection`` and ``doc_id`` are written too when the update may
        create the item.
        """
        fields = dict(data)
        if collection is not None:
            fields["collection"] = collection
            fields["doc_id"] = doc_id
        if "createdAt" in data:
            fields["created_at"] = data["createdAt"]

        assignments = []
        names = {}
        values = {}
        for i, (name, value) in enumerate(fields.items()):
            names[f"#f{i}"] = name
            values[f":v{i}"] = to_dynamodb_value(value)
            assignments.append(f"#f{i} = :v{i}")
        return "SET " + ", ".join(assignments), names, values

    def _raise_write_error(
        self, operation: str, collection: str, doc_id: str, err: Exception
    ) -> None:
        code, message = _error_fields(err)
        logger.error(
            "Couldn't %s %s/%s in table %s. Error: %s: %s",
            operation,
            collection,
            doc_id,
            self.table_name,
            code,
            message,
        )
        raise RemoteWriteError(
            f"Failed to {operation} document", {"collection": collection, "error_code": code}
        ) from err
