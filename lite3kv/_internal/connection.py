"""Connection pool management for a single lite3kv server endpoint."""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

from lite3kv._internal.engine import RequestEngine
from lite3kv.errors import NetworkError
from lite3kv.types import ClientConfig, Endpoint, Result

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Manages request engines (one connection each) for one endpoint.

    Engines are checked out for the duration of a single request and checked
    back in afterwards, so each connection carries one request at a time.
    At most ``max_connections`` engines exist; further callers block until an
    engine is returned.
    """

    def __init__(
        self,
        host: str,
        port: int,
        config: Optional[ClientConfig] = None,
        max_connections: Optional[int] = None,
    ):
        self._endpoint = Endpoint(host, port)
        self._config = config or ClientConfig()
        self._max_connections = max_connections or self._config.max_connections_per_node
        self._idle: List[RequestEngine] = []
        self._size = 0
        self._closed = False
        self._draining = False
        self._cond = threading.Condition()

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @contextmanager
    def checkout(self) -> Iterator[RequestEngine]:
        """Borrow an engine for one request.

        Raises:
            NetworkError: If the pool is closed
        """
        engine = self._acquire()
        try:
            yield engine
        finally:
            self._release(engine)

    def _acquire(self) -> RequestEngine:
        with self._cond:
            while True:
                if self._closed:
                    raise NetworkError(
                        "Connection pool is closed", self._endpoint.authority
                    )
                if self._idle:
                    return self._idle.pop()
                if self._size < self._max_connections:
                    self._size += 1
                    break
                self._cond.wait()

        return RequestEngine(self._endpoint.host, self._endpoint.port, self._config)

    def _release(self, engine: RequestEngine) -> None:
        with self._cond:
            if not (self._closed or self._draining):
                self._idle.append(engine)
                self._cond.notify()
                return
            self._size -= 1
            self._cond.notify()

        # Pool closed or draining while the request was in flight.
        engine.close()

    def perform(
        self,
        method: str,
        target: str,
        body: Optional[bytes] = None,
    ) -> Result[bytes]:
        """Run one request on a pooled engine."""
        try:
            with self.checkout() as engine:
                return engine.perform(method, target, body)
        except NetworkError as e:
            return Result.err(e)

    def _discard_idle(self) -> List[RequestEngine]:
        idle, self._idle = self._idle, []
        self._size -= len(idle)
        self._cond.notify_all()
        return idle

    def drain(self) -> None:
        """Close idle connections and stop keeping connections alive.

        The pool stays usable: later requests each open a connection that is
        closed once the request completes.
        """
        with self._cond:
            self._draining = True
            idle = self._discard_idle()

        for engine in idle:
            engine.close()
        logger.debug("Draining connection pool for %s", self._endpoint)

    def close(self) -> None:
        """Close idle connections and refuse further checkouts.

        Engines currently checked out are closed when they are returned.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            idle = self._discard_idle()

        for engine in idle:
            engine.close()
        logger.debug("Closed connection pool for %s", self._endpoint)

    def is_closed(self) -> bool:
        """Check if the connection pool is closed."""
        return self._closed

    def is_draining(self) -> bool:
        return self._draining

    def is_connected(self) -> bool:
        """Check whether any idle engine holds an open connection."""
        with self._cond:
            return any(engine.is_connected() for engine in self._idle)

    def size(self) -> int:
        """Number of engines created and not yet discarded."""
        return self._size

    def idle_count(self) -> int:
        """Number of engines waiting to be checked out."""
        return len(self._idle)
