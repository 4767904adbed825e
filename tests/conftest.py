import threading
from collections import namedtuple
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from login_token_store.storage.cassandra import (
    COUNT_CQL,
    DELETE_CQL,
    SELECT_CQL,
    TRUNCATE_CQL,
    UPSERT_CQL,
    CassandraTokenStore,
)
from login_token_store.storage.sqlite import SQLiteTokenStore

Row = namedtuple("Row", "uid token_hash expires_at origin")
CountRow = namedtuple("CountRow", "value")


class FakePreparedStatement:
    def __init__(self, query_string: str) -> None:
        self.query_string = query_string


class FakeResponseFuture:
    def __init__(self, result: Any = None, error: Optional[BaseException] = None) -> None:
        self._result = result
        self._error = error

    def add_callbacks(self, callback, errback) -> None:
        if self._error is not None:
            errback(self._error)
        else:
            callback(self._result)


class ThreadedResponseFuture(FakeResponseFuture):
    """Completes from a timer thread, the way the driver completes from its I/O thread."""

    def __init__(self, result: Any = None, error: Optional[BaseException] = None) -> None:
        super().__init__(result, error)
        self.callback_threads: List[int] = []

    def add_callbacks(self, callback, errback) -> None:
        def complete() -> None:
            self.callback_threads.append(threading.get_ident())
            super(ThreadedResponseFuture, self).add_callbacks(callback, errback)

        threading.Timer(0.01, complete).start()


class FakeSession:
    """Keeps the login_token table in a dict and answers the store's statements."""

    def __init__(self) -> None:
        self.rows: Dict[str, Row] = {}
        self.prepared: List[str] = []
        self.executed: List[Tuple[str, Any]] = []
        self.fail_with: Optional[BaseException] = None
        self.threaded = False
        self.futures: List[FakeResponseFuture] = []

    def prepare(self, query: str) -> FakePreparedStatement:
        self.prepared.append(query)
        return FakePreparedStatement(query)

    def execute_async(self, statement: Any, parameters: Any = None) -> FakeResponseFuture:
        query = getattr(statement, "query_string", statement)
        self.executed.append((query, parameters))
        future_class = ThreadedResponseFuture if self.threaded else FakeResponseFuture
        if self.fail_with is not None:
            future = future_class(error=self.fail_with)
        else:
            future = future_class(result=self._run(query, parameters))
        self.futures.append(future)
        return future

    def _run(self, query: str, parameters: Any) -> Any:
        if query.strip().startswith("CREATE TABLE"):
            return None
        if query == SELECT_CQL:
            row = self.rows.get(parameters[0])
            return [row] if row else []
        if query == UPSERT_CQL:
            token_hash, expires_at, origin, uid = parameters
            self.rows[uid] = Row(uid, token_hash, expires_at, origin)
            return None
        if query == DELETE_CQL:
            self.rows.pop(parameters[0], None)
            return None
        if query == TRUNCATE_CQL:
            self.rows.clear()
            return None
        if query == COUNT_CQL:
            return [CountRow(len(self.rows))]
        raise AssertionError(f"unexpected statement: {query}")


class FakeCluster:
    def __init__(self, session: Optional[FakeSession] = None, connect_error: Optional[Exception] = None) -> None:
        self.shutdown_error: Optional[Exception] = None
        self.session = session or FakeSession()
        self.connect_error = connect_error
        self.keyspace: Optional[str] = None
        self.is_shutdown = False

    def connect(self, keyspace: Optional[str] = None) -> FakeSession:
        if self.connect_error is not None:
            raise self.connect_error
        self.keyspace = keyspace
        return self.session

    def shutdown(self) -> None:
        if self.shutdown_error is not None:
            error, self.shutdown_error = self.shutdown_error, None
            raise error
        self.is_shutdown = True


@pytest.fixture
def fake_cluster() -> FakeCluster:
    return FakeCluster()


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    store = SQLiteTokenStore(str(tmp_path / "tokens.db"))
    await store.ready()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def cassandra_store(fake_cluster):
    store = CassandraTokenStore(keyspace="test", cluster=fake_cluster)
    await store.ready()
    yield store
    await store.close()


@pytest_asyncio.fixture(params=["sqlite", "cassandra"])
async def store(request, tmp_path, fake_cluster):
    if request.param == "sqlite":
        token_store = SQLiteTokenStore(str(tmp_path / "tokens.db"))
    else:
        token_store = CassandraTokenStore(keyspace="test", cluster=fake_cluster)
    await token_store.ready()
    await token_store.clear()
    yield token_store
    await token_store.close()
