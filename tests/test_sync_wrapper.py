import pytest

from login_token_store import InternalError, InvalidArgument, StoreConfig, SyncTokenStore
from login_token_store.storage.cassandra import CassandraTokenStore

from .conftest import FakeCluster


@pytest.fixture
def sync_store(tmp_path):
    store = SyncTokenStore(StoreConfig(backend="sqlite", database_path=str(tmp_path / "tokens.db")))
    store.ready()
    yield store
    store.close()


def test_round_trip(sync_store):
    sync_store.store_or_update("token", "alice", 60_000, "https://example.com/")

    assert sync_store.authenticate("token", "alice") == (True, "https://example.com/")
    assert sync_store.authenticate("wrong", "alice") == (False, None)
    assert sync_store.length() == 1


def test_invalidate_and_clear(sync_store):
    sync_store.store_or_update("token", "alice", 60_000)
    sync_store.store_or_update("token", "bob", 60_000)

    sync_store.invalidate_user("alice")
    assert sync_store.authenticate("token", "alice") == (False, None)
    assert sync_store.length() == 1

    sync_store.clear()
    assert sync_store.length() == 0


def test_invalid_arguments_do_not_build_the_store():
    built = []
    store = SyncTokenStore(store_factory=lambda: built.append(True))

    with pytest.raises(InvalidArgument):
        store.authenticate("", "alice")
    with pytest.raises(InvalidArgument):
        store.store_or_update("token", "alice", -5)
    with pytest.raises(InvalidArgument):
        store.invalidate_user("")

    assert built == []


def test_uses_custom_store_factory():
    cluster = FakeCluster()
    store = SyncTokenStore(
        store_factory=lambda: CassandraTokenStore(keyspace="auth", cluster=cluster)
    )
    store.ready()

    store.store_or_update("token", "alice", 60_000)
    assert store.authenticate("token", "alice") == (True, None)
    assert "alice" in cluster.session.rows

    store.close()
    assert cluster.is_shutdown


def test_ready_reports_initialization_failure():
    store = SyncTokenStore(
        store_factory=lambda: CassandraTokenStore(
            keyspace="auth", cluster=FakeCluster(connect_error=RuntimeError("down"))
        )
    )

    with pytest.raises(InternalError):
        store.ready()

    store.close()


def test_close_without_use_is_noop():
    SyncTokenStore(StoreConfig(backend="sqlite")).close()
