"""Process-wide cache of database handles.

One SQLAlchemy engine is kept per (driver, connection parameters) pair.
Each engine is itself a bounded connection pool: at most
``max_idle_conns`` idle connections, each recycled after
``conn_max_lifetime`` seconds.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from tapsql.core.config import config
from tapsql.drivers import DriverRegistry, default_registry
from tapsql.exceptions import ConnectionError

_log = logging.getLogger(__name__)


def clean_params(params: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Remove entries whose value is the empty string."""
    if not params:
        return {}
    return {key: value for key, value in params.items() if not (isinstance(value, str) and value == "")}


def connection_key(driver: str, params: Optional[Mapping[str, Any]]) -> str:
    """Build the cache key for a driver and its connection parameters.

    Keys are sorted, so two mappings with the same entries always give the
    same key regardless of insertion order.

    Examples:
        >>> connection_key("postgres", {"user": "u", "host": "h", "password": ""})
        'postgres{"host":"h","user":"u"}'
    """
    serialized = json.dumps(
        clean_params(params), sort_keys=True, separators=(",", ":"), default=str
    )
    return driver + serialized


class ConnectionPool:
    """Cache of live database engines keyed by driver and parameters.

    Create one per process, hand it to whatever needs a database, and call
    :meth:`shutdown` at teardown. Callers never close engines themselves.

    Examples:
        >>> pool = ConnectionPool()
        >>> engine = pool.acquire("postgres", {"host": "localhost", "dbname": "app"})
        >>> pool.shutdown()
    """

    def __init__(
        self,
        registry: Optional[DriverRegistry] = None,
        max_idle_conns: Optional[int] = None,
        conn_max_lifetime: Optional[int] = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry()
        self.max_idle_conns = config.max_idle_conns if max_idle_conns is None else max_idle_conns
        self.conn_max_lifetime = (
            config.conn_max_lifetime if conn_max_lifetime is None else conn_max_lifetime
        )
        self._engines: dict[str, Engine] = {}
        self._lock = threading.Lock()

    def acquire(self, driver: str, params: Optional[Mapping[str, Any]] = None) -> Engine:
        """Return the engine for ``driver`` and ``params``, creating it on first use.

        The lock covers the whole lookup-or-create sequence so concurrent
        callers with the same key never open two engines.

        Args:
            driver: Logical driver name (e.g. ``"postgresql"``)
            params: Connection parameters; empty-string values are ignored

        Returns:
            A connected SQLAlchemy engine

        Raises:
            ValidationError: If the driver is unknown
            ConnectionError: If the database cannot be reached
        """
        cleaned = clean_params(params)
        key = connection_key(driver, cleaned)

        with self._lock:
            engine = self._engines.get(key)
            if engine is None:
                engine = self._connect(driver, cleaned)
                self._engines[key] = engine
            return engine

    def _connect(self, driver: str, params: dict[str, Any]) -> Engine:
        concrete = self.registry.resolve(driver)
        spec = self.registry.get(concrete)
        connection_string = spec.render(params)

        engine: Optional[Engine] = None
        try:
            engine = spec.create_engine(
                connection_string,
                pool_size=self.max_idle_conns,
                pool_recycle=self.conn_max_lifetime,
                pool_pre_ping=True,
            )
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            if engine is not None:
                engine.dispose()
            raise ConnectionError(f"Failed to connect to {concrete}: {e}") from e

        _log.info(
            "Opened %s connection pool (max idle %d, max lifetime %ds)",
            concrete,
            self.max_idle_conns,
            self.conn_max_lifetime,
        )
        return engine

    def ping(self, engine: Engine) -> None:
        """Verify a handle can still reach its database.

        Raises:
            ConnectionError: If the round trip fails
        """
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            raise ConnectionError(f"Error pinging database: {e}") from e

    def shutdown(self) -> None:
        """Dispose every cached engine and empty the cache."""
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            engine.dispose()
        if engines:
            _log.info("Closed %d connection pool(s)", len(engines))

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._engines

    def __enter__(self) -> ConnectionPool:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.shutdown()
