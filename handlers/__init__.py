"""
Handlers package for Lambda function handlers.

This package contains the API endpoint handlers for sessions, inventory
records and administrative user management.
"""

from . import admin, records, session

__all__ = ["admin", "records", "session"]
