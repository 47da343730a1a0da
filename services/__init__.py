"""
Services package for storage, identity and external integrations.

This package contains the document stores, the Supabase identity provider
adapter, SES email, configuration, and the session and user-administration
services built on them.
"""

from .document_store import DocumentStore, PollingSubscription, Subscription
from .dynamodb import DynamoDocumentStore
from .email import EmailSender, email_sender
from .memory_store import MemoryDocumentStore
from .profiles import ProfileRepository
from .session import SessionContext, SessionResolver
from .supabase_auth import SupabaseAuth, supabase_auth
from .user_admin import UserAdminService

__all__ = [
    "DocumentStore",
    "PollingSubscription",
    "Subscription",
    "DynamoDocumentStore",
    "EmailSender",
    "email_sender",
    "MemoryDocumentStore",
    "ProfileRepository",
    "SessionContext",
    "SessionResolver",
    "SupabaseAuth",
    "supabase_auth",
    "UserAdminService",
]
