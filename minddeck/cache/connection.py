import duckdb
import logging
from pathlib import Path
from typing import Optional, Union

from ..exceptions import CacheConnectionError

logger = logging.getLogger(__name__)


class ConnectionHandler:
    """Manages the lifecycle of the DuckDB connection behind the local cache."""

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize the ConnectionHandler with a cache path.

        Parameters:
            db_path (Union[str, Path]): Path to the DuckDB cache file or the string ":memory:" (case-insensitive) for an in-process cache. File paths are resolved to an absolute Path.
        """
        if str(db_path).lower() == ":memory:":
            self.db_path_resolved = Path(":memory:")
            logger.info("Using in-memory DuckDB cache.")
        else:
            self.db_path_resolved = Path(db_path).expanduser().resolve()
            logger.info(
                f"ConnectionHandler initialized for cache at: {self.db_path_resolved}"  # noqa: E501
            )

        self._connection: Optional[duckdb.DuckDBPyConnection] = None

    @property
    def is_memory(self) -> bool:
        return str(self.db_path_resolved) == ":memory:"

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Provide an active DuckDB connection, opening one if none exists.

        Ensures the parent directory exists for file-based caches.

        Raises:
            CacheConnectionError: If DuckDB fails to establish the connection.
        """
        if self._connection is None:
            try:
                if not self.is_memory:
                    self.db_path_resolved.parent.mkdir(
                        parents=True, exist_ok=True
                    )
                self._connection = duckdb.connect(
                    database=str(self.db_path_resolved)
                )
                logger.info("Successfully connected to the local cache.")
            except (duckdb.Error, OSError) as e:
                raise CacheConnectionError(
                    f"Failed to open local cache: {e}", original_exception=e
                ) from e
        return self._connection

    def close_connection(self) -> None:
        """Closes the connection if it exists, allowing for reconnection."""
        if self._connection:
            try:
                self._connection.close()
                logger.info(
                    f"Cache connection to {self.db_path_resolved} closed."
                )
            except duckdb.Error as e:
                logger.error(f"Error closing the cache connection: {e}")
            finally:
                self._connection = None

    def __enter__(self) -> duckdb.DuckDBPyConnection:
        return self.get_connection()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_connection()
