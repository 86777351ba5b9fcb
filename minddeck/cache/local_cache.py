"""
DuckDB-backed key/value cache holding the serialized deck collection.
"""

import duckdb
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ..constants import DEFAULT_STORAGE_QUOTA_BYTES
from ..exceptions import CacheOperationError, StorageQuotaError
from .connection import ConnectionHandler

logger = logging.getLogger(__name__)

KV_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS kv_store (
        key VARCHAR PRIMARY KEY,
        value VARCHAR NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    );
"""


class LocalCache:
    """
    A small persistent key/value store with a byte quota.

    Values are text (the collection is stored as JSON). Writes are synchronous
    and committed before set_item returns. Intended for use as a context
    manager.
    """

    _UPSERT_SQL = """
        INSERT INTO kv_store (key, value, updated_at) VALUES ($1, $2, $3)
        ON CONFLICT (key) DO UPDATE SET
            value = EXCLUDED.value,
            updated_at = EXCLUDED.updated_at;
    """

    def __init__(
        self,
        cache_path: Union[str, Path],
        quota_bytes: int = DEFAULT_STORAGE_QUOTA_BYTES,
    ):
        self._handler = ConnectionHandler(db_path=cache_path)
        self.quota_bytes = quota_bytes
        self._schema_ready = False

    @property
    def cache_path(self) -> Path:
        return self._handler.db_path_resolved

    def _connection(self) -> duckdb.DuckDBPyConnection:
        conn = self._handler.get_connection()
        if not self._schema_ready:
            try:
                conn.execute(KV_SCHEMA_SQL)
            except duckdb.Error as e:
                raise CacheOperationError(
                    f"Failed to initialize cache schema: {e}",
                    original_exception=e,
                ) from e
            self._schema_ready = True
        return conn

    def close(self) -> None:
        self._handler.close_connection()
        self._schema_ready = False

    def __enter__(self) -> "LocalCache":
        self._connection()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def get_item(self, key: str) -> Optional[str]:
        """
        Return the text stored under key, or None when the key is absent.

        Raises:
            CacheOperationError: If the underlying query fails.
        """
        conn = self._connection()
        try:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = $1;", (key,)
            ).fetchone()
        except duckdb.Error as e:
            logger.error(f"Error reading cache key {key!r}: {e}")
            raise CacheOperationError(
                f"Failed to read cache key {key!r}: {e}", original_exception=e
            ) from e
        return row[0] if row else None

    def _bytes_used_by_others(self, conn, key: str) -> int:
        row = conn.execute(
            "SELECT COALESCE(SUM(strlen(value)), 0) FROM kv_store WHERE key <> $1;",
            (key,),
        ).fetchone()
        return int(row[0]) if row else 0

    def set_item(self, key: str, value: str) -> None:
        """
        Store value under key, replacing any previous value.

        Raises:
            StorageQuotaError: If the cache would grow beyond quota_bytes. The
                previous value is left untouched.
            CacheOperationError: If the write itself fails.
        """
        conn = self._connection()
        size = len(value.encode("utf-8"))
        try:
            used = self._bytes_used_by_others(conn, key)
        except duckdb.Error as e:
            raise CacheOperationError(
                f"Failed to measure cache usage: {e}", original_exception=e
            ) from e

        if used + size > self.quota_bytes:
            logger.error(
                f"Cache quota exceeded writing {key!r}: {used + size} > {self.quota_bytes} bytes"  # noqa: E501
            )
            raise StorageQuotaError(
                "Not enough storage space. Please free up some space and try again."  # noqa: E501
            )

        try:
            conn.execute(
                self._UPSERT_SQL, (key, value, datetime.now(timezone.utc))
            )
        except duckdb.Error as e:
            logger.error(f"Error writing cache key {key!r}: {e}")
            raise CacheOperationError(
                f"Failed to write cache key {key!r}: {e}", original_exception=e
            ) from e
        logger.debug(f"Cached {size} bytes under {key!r}")
