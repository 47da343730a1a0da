"""
Models package for data structures and stored documents.

This package contains Pydantic models for profiles, inventory records,
sessions, request payloads and the DynamoDB item layout.
"""

from .admin import CreateUserRequest, EmailRequest, UidRequest, UpdateUserRequest
from .document import (SERVER_TIMESTAMP, Document, Snapshot, SnapshotEvent,
                       WriteOp)
from .dynamodb import DocumentItem, DynamoDBItem
from .profile import ProfileUpdate, Role, UserProfile
from .record import FieldKind, FieldSpec, Record
from .session import Identity, Session

__all__ = [
    "CreateUserRequest",
    "EmailRequest",
    "UidRequest",
    "UpdateUserRequest",
    "SERVER_TIMESTAMP",
    "Document",
    "Snapshot",
    "SnapshotEvent",
    "WriteOp",
    "DocumentItem",
    "DynamoDBItem",
    "ProfileUpdate",
    "Role",
    "UserProfile",
    "FieldKind",
    "FieldSpec",
    "Record",
    "Identity",
    "Session",
]
