"""DynamoDB item models for the single-table document layout."""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel

from models.document import Document

# Item attributes owned by the layout; document data may not use these names.
RESERVED_ATTRIBUTES = frozenset({"PK", "SK", "collection", "doc_id", "created_at"})


class DynamoDBItem(BaseModel):
    """Base class for all DynamoDB items."""

    PK: str
    SK: str


class DocumentItem(DynamoDBItem):
    """
    One document of one collection.

    Document fields are stored as top-level attributes next to the keys so
    that merges and partial updates are plain ``SET`` expressions.
    """

    PK: str  # COLLECTION#{collection}
    SK: str  # DOC#{doc_id}
    collection: str
    doc_id: str
    created_at: Optional[str] = None  # Copy of createdAt, used for ordering
    data: Dict[str, Any] = {}

    @staticmethod
    def partition_key(collection: str) -> str:
        return f"COLLECTION#{collection}"

    @staticmethod
    def sort_key(doc_id: str) -> str:
        return f"DOC#{doc_id}"

    @staticmethod
    def key(collection: str, doc_id: str) -> Dict[str, str]:
        return {
            "PK": DocumentItem.partition_key(collection),
            "SK": DocumentItem.sort_key(doc_id),
        }

    @classmethod
    def build(cls, collection: str, doc_id: str, data: Dict[str, Any]) -> "DocumentItem":
        check_attribute_names(data)
        return cls(
            PK=cls.partition_key(collection),
            SK=cls.sort_key(doc_id),
            collection=collection,
            doc_id=doc_id,
            created_at=data.get("createdAt"),
            data=data,
        )

    def to_attributes(self) -> Dict[str, Any]:
        """Flat item attributes with floats converted to Decimal for boto3."""
        item = {
            "PK": self.PK,
            "SK": self.SK,
            "collection": self.collection,
            "doc_id": self.doc_id,
        }
        if self.created_at:
            item["created_at"] = self.created_at
        item.update(self.data)
        return to_dynamodb_value(item)

    @staticmethod
    def to_document(item: Dict[str, Any]) -> Document:
        """Read a raw DynamoDB item back into a Document."""
        doc_id = item.get("doc_id") or item.get("SK", "").replace("DOC#", "")
        data = {k: v for k, v in item.items() if k not in RESERVED_ATTRIBUTES}
        return Document(id=doc_id, data=from_dynamodb_value(data))


def check_attribute_names(data: Dict[str, Any]) -> None:
    clashes = RESERVED_ATTRIBUTES.intersection(data)
    if clashes:
        raise ValueError(f"Reserved attribute names in document: {sorted(clashes)}")


def to_dynamodb_value(value: Any) -> Any:
    """boto3 rejects floats; numbers are written as Decimal."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamodb_value(v) for v in value]
    return value


def from_dynamodb_value(value: Any) -> Any:
    """Decimals read back from DynamoDB become int or float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamodb_value(v) for v in value]
    return value
