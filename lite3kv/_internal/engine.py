"""HTTP/1.1 request engine bound to a single server endpoint."""

import logging
import socket
from typing import Optional, Tuple
from urllib.parse import quote, urlsplit

import httpx

from lite3kv.errors import (
    NetworkError,
    ServerError,
    from_status,
    from_transport_error,
)
from lite3kv.types import ClientConfig, Endpoint, Result

logger = logging.getLogger(__name__)

METHODS = frozenset({"GET", "PUT", "DELETE", "POST"})

CONTENT_TYPE = "application/octet-stream"

# Printable ASCII other than space passes through the request line untouched.
_TARGET_SAFE = "".join(chr(c) for c in range(0x21, 0x7F))


def wire_target(target: str) -> bytes:
    """Encode a request-URI for the request line exactly as given.

    Dot segments such as ``/kv/..`` are not collapsed; only bytes outside
    printable ASCII are percent-encoded.
    """
    return quote(target, safe=_TARGET_SAFE).encode("ascii")


def parse_location(location: str) -> Optional[Tuple[str, int, str]]:
    """Split a redirect target of the form ``http://<host>:<port><path>``.

    Args:
        location: Value of the Location header

    Returns:
        (host, port, request-URI) or None when the location is unusable.
        The request-URI defaults to ``/`` and keeps the query string.
    """
    if not location.startswith("http://"):
        return None

    parts = urlsplit(location)
    try:
        port = parts.port
    except ValueError:
        return None
    if not parts.hostname or port is None:
        return None

    target = parts.path or "/"
    if parts.query:
        target = f"{target}?{parts.query}"
    return parts.hostname, port, target


class RequestEngine:
    """Executes one request at a time over a persistent keep-alive connection.

    The connection is opened lazily before the first request and reopened on
    the request after a failure. Any exception during an exchange tears the
    connection down and is reported as an error result; nothing is retried.

    Not safe for concurrent use: callers serialize requests (see
    ``ConnectionPool``).
    """

    def __init__(
        self,
        host: str,
        port: int,
        config: Optional[ClientConfig] = None,
    ):
        self._endpoint = Endpoint(host, port)
        self._config = config or ClientConfig()
        self._client: Optional[httpx.Client] = None

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    def is_connected(self) -> bool:
        """Check whether a connection is currently held open."""
        return self._client is not None

    def _host_header(self) -> str:
        host = self._endpoint.host
        if ":" in host and not host.startswith("["):
            return f"[{host}]"
        return host

    def _connect(self) -> httpx.Client:
        logger.debug("Connecting to %s", self._endpoint)
        transport = httpx.HTTPTransport(
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=1),
            socket_options=[(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)],
            retries=0,
        )
        timeout = httpx.Timeout(
            self._config.timeout / 1000.0,
            connect=self._config.connect_timeout / 1000.0,
        )
        return httpx.Client(
            base_url=self._endpoint.base_url,
            transport=transport,
            timeout=timeout,
            follow_redirects=False,
            trust_env=False,
        )

    def _teardown(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.close()
        except (httpx.HTTPError, OSError) as e:
            logger.debug("Ignoring error while closing %s: %s", self._endpoint, e)

    def perform(
        self,
        method: str,
        target: str,
        body: Optional[bytes] = None,
        depth: int = 0,
    ) -> Result[bytes]:
        """Execute a single request and classify its outcome.

        Args:
            method: One of GET, PUT, DELETE, POST
            target: Request-URI beginning with ``/``
            body: Optional request body, sent verbatim
            depth: Number of redirects already followed

        Returns:
            Result carrying the response body on 200, or the mapped error
        """
        if method not in METHODS:
            raise ValueError(f"unsupported method {method!r}")
        if not target.startswith("/"):
            raise ValueError(f"request target must start with '/', got {target!r}")

        address = self._endpoint.authority
        if depth > self._config.max_redirects:
            return Result.err(NetworkError("Too many redirects", address))

        payload = body or b""
        headers = {
            "Host": self._host_header(),
            "User-Agent": self._config.user_agent,
            "Content-Type": CONTENT_TYPE,
            "Content-Length": str(len(payload)),
            "Connection": "keep-alive",
        }

        try:
            if self._client is None:
                self._client = self._connect()
            response = self._client.request(
                method,
                target,
                content=payload,
                headers=headers,
                extensions={"target": wire_target(target)},
            )
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            logger.debug("%s %s on %s failed: %s", method, target, address, e)
            self._teardown()
            return Result.err(
                from_transport_error(e, address, timeout_ms=self._config.timeout)
            )

        status = response.status_code
        if status == 200:
            return Result.ok(response.content)

        if status == 307:
            return self._follow_redirect(response, method, body, depth)

        return Result.err(from_status(status, address))

    def _follow_redirect(
        self,
        response: httpx.Response,
        method: str,
        body: Optional[bytes],
        depth: int,
    ) -> Result[bytes]:
        location = response.headers.get("location")
        parsed = parse_location(location) if location else None
        if parsed is None:
            return Result.err(
                ServerError(
                    "Invalid Redirect Location", 307, self._endpoint.authority
                )
            )

        host, port, target = parsed
        logger.debug(
            "Following redirect %d from %s to %s:%d%s",
            depth + 1,
            self._endpoint,
            host,
            port,
            target,
        )
        # One-shot engine; the persistent connection stays with this engine.
        with RequestEngine(host, port, self._config) as redirected:
            return redirected.perform(method, target, body, depth + 1)

    def close(self) -> None:
        """Close the connection, if open. The engine stays usable."""
        self._teardown()

    def __enter__(self) -> "RequestEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        self.close()

    def __repr__(self) -> str:
        state = "open" if self._client is not None else "closed"
        return f"RequestEngine({self._endpoint}, {state})"
