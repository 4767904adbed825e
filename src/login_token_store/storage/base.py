"""Abstract base class for login token storage."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Optional, Tuple

from ..errors import InternalError, InvalidArgument
from ..hashing import hash_token, verify_token

logger = logging.getLogger(__name__)

TABLE_NAME = "login_token"


def _now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def require_text(**arguments: Optional[str]) -> None:
    """Raise InvalidArgument unless every argument is a non-empty string."""
    for name, value in arguments.items():
        if not isinstance(value, str) or not value:
            raise InvalidArgument(f"{name} must be a non-empty string")


def require_ttl(ttl: int) -> None:
    """Raise InvalidArgument unless ttl is a positive number of milliseconds."""
    if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
        raise InvalidArgument("ttl must be a positive integer (milliseconds)")


@dataclass
class TokenRecord:
    """Stored login token for a single user."""

    uid: str
    token_hash: str
    expires_at: int  # epoch milliseconds
    origin: str = ""

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at <= now_ms


class TokenStore(ABC):
    """Stores one hashed login token per user and verifies presented tokens.

    Creating a store schedules connection and schema setup as a task on the
    running event loop and returns immediately, so a store must be created
    from inside a coroutine. Await :meth:`ready` before relying on the other
    operations; they do not wait for setup themselves.

    ``authenticate``, ``store_or_update`` and ``invalidate_user`` check their
    arguments when called and raise :class:`InvalidArgument` right away;
    failures of the store or of hashing are raised as :class:`InternalError`
    from the awaited result.

    Subclasses implement the storage primitives (``_initialize``,
    ``_fetch``, ``_upsert``, ``_delete``, ``_truncate``, ``_count`` and
    ``_close``) against a concrete database.
    """

    def __init__(self) -> None:
        self._ready_task = asyncio.get_running_loop().create_task(self._initialize())
        self._ready_task.add_done_callback(self._log_initialization)
        self._closed = False

    def _log_initialization(self, task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            logger.debug("%s initialization cancelled", type(self).__name__)
            return
        error = task.exception()
        if error is None:
            logger.info("%s ready", type(self).__name__)
        else:
            logger.error(
                "%s initialization failed", type(self).__name__, exc_info=error
            )

    # Storage primitives

    @abstractmethod
    async def _initialize(self) -> None:
        """Connect to the backend and create the token table if needed."""

    @abstractmethod
    async def _fetch(self, uid: str) -> Optional[TokenRecord]:
        """Look up the record for a uid.

        Returns:
            The stored record, or None if there is none
        """

    @abstractmethod
    async def _upsert(self, record: TokenRecord) -> None:
        """Insert or overwrite the record for ``record.uid`` in one statement."""

    @abstractmethod
    async def _delete(self, uid: str) -> None:
        """Remove the record for a uid if present."""

    @abstractmethod
    async def _truncate(self) -> None:
        """Remove all records."""

    @abstractmethod
    async def _count(self) -> int:
        """Number of stored records, expired ones included."""

    @abstractmethod
    async def _close(self) -> None:
        """Release the backend connection."""

    # Public API

    async def ready(self) -> None:
        """Wait until connection and schema setup have completed.

        Raises:
            InternalError: If setup failed
        """
        try:
            await asyncio.shield(self._ready_task)
        except asyncio.CancelledError:
            if self._ready_task.cancelled():
                raise InternalError("Token store initialization was cancelled")
            raise
        except Exception as e:
            raise InternalError("Token store initialization failed", e) from e

    def authenticate(self, token: str, uid: str) -> Awaitable[Tuple[bool, Optional[str]]]:
        """Check a token / uid combination.

        Args:
            token: Token to be authenticated
            uid: Unique identifier of the user

        Returns:
            Awaitable of ``(valid, origin)``. ``valid`` is True only when a
            record exists for ``uid``, has not expired and its hash matches
            ``token``; ``origin`` is then the URL stored with the token, or
            None if none was stored. Otherwise ``(False, None)``.

        Raises:
            InvalidArgument: If ``token`` or ``uid`` is empty (at call time)
            InternalError: If the store or hash comparison fails (on await)
        """
        require_text(token=token, uid=uid)
        return self._authenticate(token, uid)

    async def _authenticate(self, token: str, uid: str) -> Tuple[bool, Optional[str]]:
        try:
            record = await self._fetch(uid)
            if record is None or record.is_expired(_now_ms()):
                return False, None
            valid = await verify_token(token, record.token_hash)
        except InternalError:
            raise
        except Exception as e:
            raise self._failure("authenticate", uid, e) from e

        if not valid:
            return False, None
        return True, record.origin or None

    def store_or_update(
        self, token: str, uid: str, ttl: int, origin: Optional[str] = None
    ) -> Awaitable[None]:
        """Store a token for a user, replacing any token the user already has.

        A user only ever has one token; storing a new one overwrites the hash,
        expiry and origin of the previous one.

        Args:
            token: Token that allows authentication of ``uid``
            uid: Unique identifier of the user
            ttl: Validity of the token in milliseconds from now
            origin: Originally requested URL, or None

        Raises:
            InvalidArgument: If ``token``/``uid`` is empty or ``ttl`` is not
                a positive integer (at call time)
            InternalError: If hashing or the write fails (on await)
        """
        require_text(token=token, uid=uid)
        require_ttl(ttl)
        return self._store_or_update(token, uid, ttl, origin or "")

    async def _store_or_update(self, token: str, uid: str, ttl: int, origin: str) -> None:
        expires_at = _now_ms() + ttl
        try:
            token_hash = await hash_token(token)
            await self._upsert(
                TokenRecord(uid=uid, token_hash=token_hash, expires_at=expires_at, origin=origin)
            )
        except InternalError:
            raise
        except Exception as e:
            raise self._failure("store_or_update", uid, e) from e

    def invalidate_user(self, uid: str) -> Awaitable[None]:
        """Remove a user and the linked token.

        Removing a uid that has no token is not an error.

        Raises:
            InvalidArgument: If ``uid`` is empty (at call time)
            InternalError: If the delete fails (on await)
        """
        require_text(uid=uid)
        return self._invalidate_user(uid)

    async def _invalidate_user(self, uid: str) -> None:
        try:
            await self._delete(uid)
        except InternalError:
            raise
        except Exception as e:
            raise self._failure("invalidate_user", uid, e) from e

    async def clear(self) -> None:
        """Remove all tokens. Meant for tests and maintenance."""
        try:
            await self._truncate()
        except InternalError:
            raise
        except Exception as e:
            raise self._failure("clear", None, e) from e

    async def length(self) -> int:
        """Number of tokens stored, valid or not."""
        try:
            return await self._count()
        except InternalError:
            raise
        except Exception as e:
            raise self._failure("length", None, e) from e

    async def close(self) -> None:
        """Wait for pending setup to finish, then close the backend connection."""
        if self._closed:
            return
        await asyncio.wait({self._ready_task})
        await self._close()
        self._closed = True

    async def __aenter__(self) -> "TokenStore":
        await self.ready()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _failure(self, operation: str, uid: Optional[str], error: Exception) -> InternalError:
        logger.debug("%s failed for uid=%s: %r", operation, uid, error)
        return InternalError(f"{operation} failed", error)
