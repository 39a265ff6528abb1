"""Session management package providing DynamoDB-backed persistence and APIs."""

from .base import SessionStore
from .dependencies import get_session_store
from .middleware import DynamoDBSessionMiddleware
from .schemas import CookieOptions, StoreOptions
from .store import DynamoDBSessionStore

__all__ = [
    "CookieOptions",
    "DynamoDBSessionMiddleware",
    "DynamoDBSessionStore",
    "SessionStore",
    "StoreOptions",
    "get_session_store",
]
