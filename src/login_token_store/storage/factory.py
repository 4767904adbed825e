"""Build a token store from configuration."""

from typing import Any, Optional

from ..config import StoreConfig, get_config
from ..errors import InvalidArgument
from .base import TokenStore
from .cassandra import CassandraTokenStore
from .sqlite import SQLiteTokenStore


def create_token_store(config: Optional[StoreConfig] = None, **options: Any) -> TokenStore:
    """Create the token store selected by ``config.backend``.

    Must be called while an event loop is running, since the store starts
    its setup task immediately.

    Args:
        config: Store configuration (defaults to the global config from env)
        **options: Extra keyword arguments for the Cassandra ``Cluster``

    Returns:
        A token store whose setup is in progress; await ``ready()`` on it
    """
    config = config or get_config()

    if config.backend == "cassandra":
        return CassandraTokenStore(
            contact_points=config.contact_points,
            keyspace=config.keyspace,
            local_data_center=config.local_data_center,
            port=config.port,
            username=config.username,
            password=config.password,
            **options,
        )

    if config.backend == "sqlite":
        return SQLiteTokenStore(db_path=config.database_path)

    raise InvalidArgument(f"Unknown token store backend: {config.backend!r}")
