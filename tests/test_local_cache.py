from pathlib import Path

import duckdb
import pytest

from minddeck.cache import LocalCache
from minddeck.cache.connection import ConnectionHandler
from minddeck.exceptions import (
    CacheConnectionError,
    CacheOperationError,
    StorageQuotaError,
)


class TestConnectionHandler:
    def test_memory_path(self):
        handler = ConnectionHandler(":MEMORY:")
        assert handler.is_memory
        with handler as conn:
            assert conn.execute("SELECT 42").fetchone() == (42,)
        assert handler._connection is None

    def test_file_path_creates_parent_directory(self, tmp_path: Path):
        path = tmp_path / "nested" / "dir" / "cache.duckdb"
        handler = ConnectionHandler(path)
        handler.get_connection()
        assert path.parent.is_dir()
        assert handler.get_connection() is handler.get_connection()
        handler.close_connection()

    def test_connect_failure_is_wrapped(self, mocker, tmp_path: Path):
        mocker.patch(
            "minddeck.cache.connection.duckdb.connect",
            side_effect=duckdb.IOException("disk gone"),
        )
        handler = ConnectionHandler(tmp_path / "cache.duckdb")
        with pytest.raises(CacheConnectionError) as excinfo:
            handler.get_connection()
        assert isinstance(excinfo.value.original_exception, duckdb.IOException)


class TestLocalCache:
    def test_missing_key_returns_none(self, cache: LocalCache):
        assert cache.get_item("nope") is None

    def test_set_then_get(self, cache: LocalCache):
        cache.set_item("k", '[{"id": 1}]')
        assert cache.get_item("k") == '[{"id": 1}]'

    def test_set_overwrites(self, cache: LocalCache):
        cache.set_item("k", "first")
        cache.set_item("k", "second")
        assert cache.get_item("k") == "second"

    def test_file_cache_survives_reopen(self, cache_path_file: Path):
        with LocalCache(cache_path_file) as first:
            first.set_item("k", "persisted")
        with LocalCache(cache_path_file) as second:
            assert second.get_item("k") == "persisted"

    def test_reuse_after_close(self, cache: LocalCache):
        cache.set_item("k", "v")
        cache.close()
        # Memory caches start empty again, file caches keep their data.
        cache.set_item("other", "x")
        assert cache.get_item("other") == "x"

    def test_quota_exceeded_keeps_previous_value(self):
        with LocalCache(":memory:", quota_bytes=10) as small:
            small.set_item("k", "12345")
            with pytest.raises(StorageQuotaError) as excinfo:
                small.set_item("k", "x" * 11)
            assert "Not enough storage space" in str(excinfo.value)
            assert small.get_item("k") == "12345"

    def test_quota_counts_other_keys_but_not_the_replaced_value(self):
        with LocalCache(":memory:", quota_bytes=10) as small:
            small.set_item("a", "123456")
            small.set_item("a", "1234567890")
            with pytest.raises(StorageQuotaError):
                small.set_item("b", "x")

    def test_quota_measures_utf8_bytes(self):
        with LocalCache(":memory:", quota_bytes=4) as small:
            with pytest.raises(StorageQuotaError):
                small.set_item("k", "ñññ")

    def test_query_failure_is_wrapped(self, memory_cache: LocalCache, mocker):
        memory_cache.get_item("warm-up")
        broken = mocker.MagicMock()
        broken.execute.side_effect = duckdb.Error("boom")
        mocker.patch.object(memory_cache._handler, "get_connection", return_value=broken)
        with pytest.raises(CacheOperationError):
            memory_cache.get_item("k")
