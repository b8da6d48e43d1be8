"""
This module implements the ConnectionPool class
"""
from __future__ import annotations

import contextlib
import threading
import time
import typing
import warnings
from typing import Any, Iterator

from .tds_base import logger


class PooledConnection(typing.NamedTuple):
    connection: Any
    #: time when connection was returned to the pool
    released: float


class ConnectionPool:
    """
    A basic pool of connections created by a DB-API 2.0 module.

    .. code-block:: python

        pool = ConnectionPool(tdsbind, {"server": "my-host", "user": "sa"})
        with pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT @@VERSION")

    Idle connections are only discarded during :meth:`acquire`,
    there is no background collection.

    :param dbapi2: module used to create connections, must provide
      ``connect`` and ``Error``
    :param params: keyword arguments passed to ``dbapi2.connect``
    :param idlettl: maximum time in seconds a connection may stay idle in the pool,
      connections are kept forever by default
    :param maxsize: maximum number of connections kept in the pool
    :param block: when `maxsize` is given, wait in :meth:`acquire` until a connection
      is released instead of opening a new one
    """

    def __init__(
        self,
        dbapi2: Any,
        params: dict[str, Any],
        idlettl: float | None = None,
        maxsize: int | None = None,
        block: bool = False,
    ):
        self._dbapi2 = dbapi2
        self._params = params
        self._idlettl = idlettl
        self._maxsize = maxsize
        self._block = block
        # number of connections which are open, both idle and acquired
        self._nconnections = 0
        self._condition = threading.Condition()
        # idle connections, least recently used first
        self._pool: list[PooledConnection] = []

    def __del__(self):
        self.finalize()

    def _expired(self, pooled: PooledConnection) -> bool:
        if self._idlettl is None:
            return False
        return pooled.released + self._idlettl < time.monotonic()

    def acquire(self) -> Any:
        """
        Take an idle connection from the pool or open a new one.

        May block if the pool was created with `maxsize` and ``block=True``.
        """
        with self._condition:
            if self._maxsize is not None and self._block:
                while not self._pool and self._nconnections >= self._maxsize:
                    self._condition.wait()

            while self._pool:
                pooled = self._pool.pop(0)
                if self._expired(pooled):
                    logger.debug("Closing idle connection")
                    self._close(pooled.connection)
                else:
                    return pooled.connection

            logger.debug("Opening new pooled connection")
            connection = self._dbapi2.connect(**dict(self._params))
            self._nconnections += 1
            return connection

    def release(self, connection: Any) -> None:
        """
        Return a connection to the pool.

        Pending transaction is rolled back first, connection which fails
        to roll back is closed. Must be called once for every
        successful :meth:`acquire`.
        """
        try:
            connection.rollback()
        except self._dbapi2.Error as ex:
            logger.warning("Rollback failed, discarding connection: %s", ex)
            with self._condition:
                self._close(connection)
                self._condition.notify()
            return

        with self._condition:
            if self._maxsize is None or len(self._pool) < self._maxsize:
                self._pool.append(PooledConnection(connection, time.monotonic()))
            else:
                self._close(connection)
            self._condition.notify()

    @contextlib.contextmanager
    def connection(self) -> Iterator[Any]:
        """
        Acquire a connection for the duration of a ``with`` block
        """
        connection = self.acquire()
        try:
            yield connection
        finally:
            self.release(connection)

    def finalize(self) -> None:
        """
        Close all idle connections, e.g. on process exit
        """
        with self._condition:
            if self._nconnections != len(self._pool):
                warnings.warn(
                    "finalize() called with unreleased connections",
                    RuntimeWarning,
                    stacklevel=2,
                )
            while self._pool:
                self._close(self._pool.pop().connection)
            self._nconnections = 0

    def _close(self, connection: Any) -> None:
        assert self._nconnections > 0, "release() called twice for a connection"
        self._nconnections -= 1
        try:
            connection.close()
        except self._dbapi2.Error as ex:
            logger.debug("Error while closing pooled connection: %s", ex)
