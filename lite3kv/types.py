"""Type definitions for lite3kv Python client."""

from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar, Union

from lite3kv.errors import Lite3Error


# Type aliases
Key = Union[bytes, str]
"""Key type - can be bytes or string."""

Value = Union[bytes, bytearray, str]
"""Value type - can be bytes, bytearray, or string."""

NodeId = int
"""Non-zero unsigned 32-bit node identifier."""

DEFAULT_USER_AGENT = "lite3kv-python/0.1.0"

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Value-or-error outcome of a client operation.

    Exactly one of ``value`` and ``error`` is meaningful: a result is ok when
    ``error`` is None. Side-effect-only operations return ``Result[None]``.

    Example:
        >>> res = client.get("user:1")
        >>> if res:
        ...     print(res.value)
        ... else:
        ...     print(res.error.kind)
    """

    value: Optional[T] = None
    error: Optional[Lite3Error] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def err(cls, error: Lite3Error) -> "Result[T]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self.error is None

    def is_err(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        """Return the value, raising the carried error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def __bool__(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        if self.error is not None:
            return f"Result.err({self.error!r})"
        return f"Result.ok({self.value!r})"


@dataclass(frozen=True)
class Endpoint:
    """Network address of one server."""

    host: str
    """DNS name or IPv4/IPv6 literal."""

    port: int
    """TCP port."""

    @property
    def authority(self) -> str:
        """``host:port``, with IPv6 literals bracketed."""
        if ":" in self.host and not self.host.startswith("["):
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @property
    def base_url(self) -> str:
        return f"http://{self.authority}"

    def __str__(self) -> str:
        return self.authority


@dataclass
class Peer:
    """One server entry of the cluster map."""

    id: int = 0
    """Node id; 0 means absent and the peer is skipped."""

    host: str = "127.0.0.1"
    """Host serving the HTTP API."""

    http_port: int = 8080
    """Port serving the HTTP API."""

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(self.host, self.http_port)


@dataclass
class ClusterMap:
    """Topology document served at ``/cluster/map``."""

    peers: List[Peer] = field(default_factory=list)
    """All servers known to the seed."""


@dataclass
class ClientConfig:
    """Configuration shared by KVClient and ClusterClient."""

    timeout: int = 5000
    """Socket read/write timeout in milliseconds."""

    connect_timeout: int = 5000
    """TCP connect timeout in milliseconds."""

    max_redirects: int = 5
    """Maximum depth of 307 redirects followed for one request."""

    max_connections_per_node: int = 1
    """Persistent connections kept per server endpoint."""

    user_agent: str = DEFAULT_USER_AGENT
    """Value of the User-Agent header."""

    watch_cluster: bool = False
    """Refresh the cluster topology periodically after connect()."""

    refresh_interval: float = 30.0
    """Seconds between periodic topology refreshes."""

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be > 0, got {self.connect_timeout}")
        if self.max_redirects < 0:
            raise ValueError(f"max_redirects must be >= 0, got {self.max_redirects}")
        if self.max_connections_per_node <= 0:
            raise ValueError(
                "max_connections_per_node must be > 0, "
                f"got {self.max_connections_per_node}"
            )
        if self.refresh_interval <= 0:
            raise ValueError(f"refresh_interval must be > 0, got {self.refresh_interval}")
