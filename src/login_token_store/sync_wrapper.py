"""Synchronous wrapper for TokenStore for Flask/sync environments."""

import asyncio
from typing import Callable, Optional, Tuple

from .config import StoreConfig
from .storage.base import TokenStore, require_text, require_ttl
from .storage.factory import create_token_store


class SyncTokenStore:
    """Synchronous wrapper around TokenStore for Flask and other sync frameworks.

    This class provides blocking methods that internally manage a private
    asyncio event loop, so the token store can be used from request handlers
    that are not async.

    Example:
        ```python
        from login_token_store import StoreConfig, SyncTokenStore

        store = SyncTokenStore(StoreConfig(backend="sqlite", database_path="./tokens.db"))
        store.ready()

        store.store_or_update("tok1", "u1", ttl=60_000, origin="https://x/y")
        valid, origin = store.authenticate("tok1", "u1")

        store.close()
        ```
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        store_factory: Optional[Callable[[], TokenStore]] = None,
    ):
        """Initialize synchronous token store.

        Args:
            config: Store configuration (defaults to env, see ``get_config``)
            store_factory: Callable building the async store; called inside the
                private event loop. Defaults to ``create_token_store(config)``.
        """
        self._config = config
        self._store_factory = store_factory or (lambda: create_token_store(self._config))

        # Initialize async components lazily
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._store: Optional[TokenStore] = None

    def _ensure_initialized(self) -> TokenStore:
        """Ensure the event loop and async store exist."""
        if self._store is None:
            if self._loop is None or self._loop.is_closed():
                self._loop = asyncio.new_event_loop()
            self._store = self._loop.run_until_complete(self._build_store())
        return self._store

    async def _build_store(self) -> TokenStore:
        # Stores schedule their setup on the running loop, so build inside it
        return self._store_factory()

    def ready(self) -> None:
        """Block until the store is connected and its table exists."""
        store = self._ensure_initialized()
        self._loop.run_until_complete(store.ready())

    def authenticate(self, token: str, uid: str) -> Tuple[bool, Optional[str]]:
        """Check a token / uid combination (synchronous).

        Returns:
            ``(valid, origin)`` as for ``TokenStore.authenticate``
        """
        require_text(token=token, uid=uid)
        store = self._ensure_initialized()
        return self._loop.run_until_complete(store.authenticate(token, uid))

    def store_or_update(self, token: str, uid: str, ttl: int, origin: Optional[str] = None) -> None:
        """Store or replace the token of a user (synchronous)."""
        require_text(token=token, uid=uid)
        require_ttl(ttl)
        store = self._ensure_initialized()
        self._loop.run_until_complete(store.store_or_update(token, uid, ttl, origin))

    def invalidate_user(self, uid: str) -> None:
        """Remove a user and the linked token (synchronous)."""
        require_text(uid=uid)
        store = self._ensure_initialized()
        self._loop.run_until_complete(store.invalidate_user(uid))

    def clear(self) -> None:
        """Remove all tokens (synchronous)."""
        store = self._ensure_initialized()
        self._loop.run_until_complete(store.clear())

    def length(self) -> int:
        """Number of stored tokens, valid or not (synchronous)."""
        store = self._ensure_initialized()
        return self._loop.run_until_complete(store.length())

    def close(self) -> None:
        """Close the store and the private event loop."""
        if self._store is not None:
            self._loop.run_until_complete(self._store.close())
            self._store = None
        if self._loop is not None and not self._loop.is_closed():
            self._loop.run_until_complete(self._loop.shutdown_default_executor())
            self._loop.close()
        self._loop = None
