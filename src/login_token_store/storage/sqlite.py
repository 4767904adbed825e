"""SQLite-based login token storage."""

import logging
from pathlib import Path
from typing import Optional

import aiosqlite

from ..errors import InternalError
from .base import TABLE_NAME, TokenRecord, TokenStore

logger = logging.getLogger(__name__)


class SQLiteTokenStore(TokenStore):
    """SQLite implementation of login token storage."""

    def __init__(self, db_path: str):
        """Initialize SQLite token store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None
        super().__init__()

    def _get_connection(self) -> aiosqlite.Connection:
        """Get the open database connection."""
        if self._connection is None:
            raise InternalError("Database connection not established, await ready() first")
        return self._connection

    async def _initialize(self) -> None:
        """Open the database and create the table if it doesn't exist."""
        # Ensure directory exists
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        logger.debug("Opening SQLite token database at %s", self.db_path)
        connection = await aiosqlite.connect(self.db_path)
        try:
            await connection.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    uid TEXT PRIMARY KEY,
                    token_hash TEXT NOT NULL,
                    expires_at INTEGER NOT NULL,
                    origin TEXT NOT NULL DEFAULT ''
                )
                """
            )
            await connection.commit()
        except Exception:
            await connection.close()
            raise
        self._connection = connection

    async def _fetch(self, uid: str) -> Optional[TokenRecord]:
        conn = self._get_connection()

        cursor = await conn.execute(
            f"SELECT uid, token_hash, expires_at, origin FROM {TABLE_NAME} WHERE uid = ?",
            (uid,),
        )
        row = await cursor.fetchone()
        await cursor.close()

        if not row:
            return None

        return TokenRecord(uid=row[0], token_hash=row[1], expires_at=row[2], origin=row[3])

    async def _upsert(self, record: TokenRecord) -> None:
        conn = self._get_connection()

        await conn.execute(
            f"""
            INSERT INTO {TABLE_NAME} (uid, token_hash, expires_at, origin)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(uid) DO UPDATE SET
                token_hash = excluded.token_hash,
                expires_at = excluded.expires_at,
                origin = excluded.origin
            """,
            (record.uid, record.token_hash, record.expires_at, record.origin),
        )
        await conn.commit()

    async def _delete(self, uid: str) -> None:
        conn = self._get_connection()

        await conn.execute(f"DELETE FROM {TABLE_NAME} WHERE uid = ?", (uid,))
        await conn.commit()

    async def _truncate(self) -> None:
        conn = self._get_connection()

        await conn.execute(f"DELETE FROM {TABLE_NAME}")
        await conn.commit()

    async def _count(self) -> int:
        conn = self._get_connection()

        cursor = await conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}")
        row = await cursor.fetchone()
        await cursor.close()
        return int(row[0])

    async def _close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
