"""Configuration management for the login token store."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

BACKENDS = ("cassandra", "sqlite")


@dataclass
class StoreConfig:
    """Connection settings for a token store, read from the environment.

    The values are handed to the backend driver as they are; the store
    itself does not interpret them.
    """

    backend: str = "cassandra"

    # Cassandra
    contact_points: List[str] = field(default_factory=lambda: ["localhost"])
    keyspace: Optional[str] = None
    local_data_center: str = "datacenter1"
    port: int = 9042
    username: Optional[str] = None
    password: Optional[str] = None

    # SQLite
    database_path: str = "./data/login_tokens.db"

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Load configuration from environment variables with validation."""
        backend = os.getenv("TOKEN_STORE_BACKEND", "cassandra").strip().lower()
        if backend not in BACKENDS:
            raise ValueError(
                f"Unknown TOKEN_STORE_BACKEND {backend!r}, "
                f"expected one of: {', '.join(BACKENDS)}"
            )

        config_values = {"backend": backend}

        if backend == "cassandra":
            keyspace = os.getenv("CASSANDRA_KEYSPACE")
            if not keyspace:
                raise ValueError(
                    "Missing required environment variables: CASSANDRA_KEYSPACE\n"
                    "Please check your .env file or environment configuration."
                )
            config_values["keyspace"] = keyspace

        # Optional variables with defaults
        contact_points = os.getenv("CASSANDRA_CONTACT_POINTS", "localhost")
        config_values["contact_points"] = [
            host.strip() for host in contact_points.split(",") if host.strip()
        ]
        config_values["local_data_center"] = os.getenv("CASSANDRA_LOCAL_DC", "datacenter1")
        config_values["username"] = os.getenv("CASSANDRA_USERNAME") or None
        config_values["password"] = os.getenv("CASSANDRA_PASSWORD") or None
        config_values["database_path"] = os.getenv("DATABASE_PATH", "./data/login_tokens.db")

        port = os.getenv("CASSANDRA_PORT", "9042")
        try:
            config_values["port"] = int(port)
        except ValueError as e:
            raise ValueError(f"Invalid CASSANDRA_PORT {port!r}: must be an integer") from e

        return cls(**config_values)


# Global config instance (lazy loaded)
_config: Optional[StoreConfig] = None


def get_config() -> StoreConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = StoreConfig.from_env()
    return _config
