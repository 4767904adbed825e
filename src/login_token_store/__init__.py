"""Login Token Store: hashed one-token-per-user persistence for passwordless login.

Public API:
    - TokenStore: Abstract async token store (authenticate, store_or_update,
      invalidate_user, clear, length, ready)
    - CassandraTokenStore: Cassandra implementation
    - SQLiteTokenStore: SQLite implementation
    - create_token_store: Build a store from StoreConfig
    - SyncTokenStore: Synchronous wrapper for Flask/sync environments
    - TokenRecord: Stored record structure
    - InvalidArgument, InternalError: Errors raised by stores
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("login-token-store")
except PackageNotFoundError:
    # Package not installed, use development version
    __version__ = "0.0.0.dev"

# Storage interfaces and implementations
from .storage import CassandraTokenStore, SQLiteTokenStore, TokenStore, create_token_store
from .storage.base import TokenRecord
from .sync_wrapper import SyncTokenStore

# Errors
from .errors import InternalError, InvalidArgument, TokenStoreError

# Hashing
from .hashing import BCRYPT_ROUNDS

# Configuration
from .config import StoreConfig, get_config

__all__ = [
    # Version
    "__version__",
    # Storage
    "TokenStore",
    "CassandraTokenStore",
    "SQLiteTokenStore",
    "TokenRecord",
    "create_token_store",
    "SyncTokenStore",
    # Errors
    "TokenStoreError",
    "InvalidArgument",
    "InternalError",
    # Hashing
    "BCRYPT_ROUNDS",
    # Configuration
    "StoreConfig",
    "get_config",
]
