"""Cassandra-based login token storage."""

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile, Session
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy

from ..errors import InternalError
from .base import TABLE_NAME, TokenRecord, TokenStore

logger = logging.getLogger(__name__)

CREATE_TABLE_CQL = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        uid varchar PRIMARY KEY,
        token_hash varchar,
        expires_at bigint,
        origin varchar
    )
"""

SELECT_CQL = f"SELECT uid, token_hash, expires_at, origin FROM {TABLE_NAME} WHERE uid=?"
UPSERT_CQL = f"UPDATE {TABLE_NAME} SET token_hash=?, expires_at=?, origin=? WHERE uid=?"
DELETE_CQL = f"DELETE FROM {TABLE_NAME} WHERE uid=?"
TRUNCATE_CQL = f"TRUNCATE {TABLE_NAME}"
COUNT_CQL = f"SELECT COUNT(*) AS value FROM {TABLE_NAME}"

_PROFILE_OPTIONS = frozenset(
    ("execution_profiles", "load_balancing_policy", "default_retry_policy")
)

_STATEMENTS = {
    "select": SELECT_CQL,
    "upsert": UPSERT_CQL,
    "delete": DELETE_CQL,
    "truncate": TRUNCATE_CQL,
    "count": COUNT_CQL,
}


def _set_result(future: "asyncio.Future[Any]", result: Any) -> None:
    if not future.done():
        future.set_result(result)


def _set_exception(future: "asyncio.Future[Any]", error: BaseException) -> None:
    if not future.done():
        future.set_exception(error)


async def execute(session: Session, statement: Any, parameters: Optional[Sequence[Any]] = None) -> Any:
    """Run a statement with ``execute_async`` and await its rows on the event loop.

    The driver completes its ``ResponseFuture`` on its own I/O thread, so the
    result is handed back to the loop with ``call_soon_threadsafe``.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    response_future = session.execute_async(statement, parameters)
    response_future.add_callbacks(
        callback=lambda rows: loop.call_soon_threadsafe(_set_result, future, rows),
        errback=lambda error: loop.call_soon_threadsafe(_set_exception, future, error),
    )
    return await future


class CassandraTokenStore(TokenStore):
    """Cassandra implementation of login token storage.

    Connection settings are passed straight through to the driver. Blocking
    driver calls (connect, prepare, shutdown) run in a worker thread.
    """

    def __init__(
        self,
        contact_points: Sequence[str] = ("localhost",),
        keyspace: Optional[str] = None,
        local_data_center: Optional[str] = None,
        port: int = 9042,
        username: Optional[str] = None,
        password: Optional[str] = None,
        cluster: Optional[Cluster] = None,
        **cluster_options: Any,
    ):
        """Initialize Cassandra token store.

        Args:
            contact_points: Hosts used to discover the cluster
            keyspace: Keyspace holding the token table
            local_data_center: Data center preferred by the load balancing policy
            port: Native protocol port
            username: Optional user for password authentication
            password: Optional password for password authentication
            cluster: Pre-built cluster to use instead of building one from the
                settings above
            **cluster_options: Extra keyword arguments for ``Cluster``
        """
        self.keyspace = keyspace
        if cluster is None:
            cluster = self._build_cluster(
                contact_points, local_data_center, port, username, password, cluster_options
            )
        self._cluster = cluster
        self._session: Optional[Session] = None
        self._statements: Dict[str, Any] = {}
        super().__init__()

    @staticmethod
    def _build_cluster(
        contact_points: Sequence[str],
        local_data_center: Optional[str],
        port: int,
        username: Optional[str],
        password: Optional[str],
        cluster_options: Dict[str, Any],
    ) -> Cluster:
        options = dict(cluster_options)
        if username is not None:
            options.setdefault(
                "auth_provider", PlainTextAuthProvider(username=username, password=password)
            )
        # the driver rejects legacy policy options alongside execution profiles
        if not _PROFILE_OPTIONS.intersection(options):
            profile = ExecutionProfile(
                load_balancing_policy=TokenAwarePolicy(
                    DCAwareRoundRobinPolicy(local_dc=local_data_center or "")
                )
            )
            options["execution_profiles"] = {EXEC_PROFILE_DEFAULT: profile}
        return Cluster(contact_points=list(contact_points), port=port, **options)

    def _get_session(self) -> Session:
        """Get the connected session."""
        if self._session is None:
            raise InternalError("Cassandra session not established, await ready() first")
        return self._session

    async def _initialize(self) -> None:
        """Connect, create the table if it doesn't exist and prepare statements."""
        logger.debug("Connecting to Cassandra keyspace %s", self.keyspace)
        session = await asyncio.to_thread(self._cluster.connect, self.keyspace)

        logger.debug("Ensuring table %s exists", TABLE_NAME)
        await execute(session, CREATE_TABLE_CQL)

        self._statements = await asyncio.to_thread(self._prepare_statements, session)
        self._session = session

    @staticmethod
    def _prepare_statements(session: Session) -> Dict[str, Any]:
        return {name: session.prepare(cql) for name, cql in _STATEMENTS.items()}

    async def _fetch(self, uid: str) -> Optional[TokenRecord]:
        session = self._get_session()

        rows = await execute(session, self._statements["select"], (uid,))
        row = rows[0] if rows else None
        if row is None:
            return None

        return TokenRecord(
            uid=row.uid,
            token_hash=row.token_hash,
            expires_at=row.expires_at,
            origin=row.origin or "",
        )

    async def _upsert(self, record: TokenRecord) -> None:
        session = self._get_session()

        await execute(
            session,
            self._statements["upsert"],
            (record.token_hash, record.expires_at, record.origin, record.uid),
        )

    async def _delete(self, uid: str) -> None:
        session = self._get_session()

        await execute(session, self._statements["delete"], (uid,))

    async def _truncate(self) -> None:
        session = self._get_session()

        await execute(session, self._statements["truncate"])

    async def _count(self) -> int:
        session = self._get_session()

        rows = await execute(session, self._statements["count"])
        # COUNT(*) is a bigint
        return int(rows[0].value)

    async def _close(self) -> None:
        """Shut down the cluster connection."""
        self._session = None
        self._statements = {}
        await asyncio.to_thread(self._cluster.shutdown)
