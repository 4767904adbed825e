"""Login token storage implementations."""

from .base import TokenRecord, TokenStore
from .cassandra import CassandraTokenStore
from .factory import create_token_store
from .sqlite import SQLiteTokenStore

__all__ = [
    "TokenRecord",
    "TokenStore",
    "CassandraTokenStore",
    "SQLiteTokenStore",
    "create_token_store",
]
