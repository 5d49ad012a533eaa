"""lite3kv Python Client SDK.

A Python client for lite3kv - a key-value store served over HTTP/1.1 and
partitioned across nodes with a consistent-hash ring.

Example:
    >>> from lite3kv import ClusterClient, KVClient
    >>>
    >>> with KVClient("127.0.0.1", 8080) as client:
    ...     # Put a value
    ...     client.put("my-key", b"my-value").unwrap()
    ...
    ...     # Get a value
    ...     result = client.get("my-key")
    ...     print(result.value)  # b"my-value"
    ...
    ...     # Delete a value
    ...     client.delete("my-key")
    >>>
    >>> with ClusterClient("127.0.0.1", 8080) as cluster:
    ...     cluster["user:1"] = {"name": "Alice"}
    ...     print(cluster.node_for_key("user:1"))
"""

__version__ = "0.1.0"

from lite3kv.client import KVClient
from lite3kv.cluster import ClusterClient
from lite3kv.errors import (
    BadRequestError,
    DeadlineExceededError,
    ErrorKind,
    Lite3Error,
    NetworkError,
    NotFoundError,
    RefusedConnectionError,
    SerializationError,
    ServerError,
)
from lite3kv.ring import ConsistentHashRing
from lite3kv.types import (
    ClientConfig,
    ClusterMap,
    Endpoint,
    Peer,
    Result,
)

__all__ = [
    "__version__",
    # Clients
    "KVClient",
    "ClusterClient",
    # Configuration
    "ClientConfig",
    # Results and types
    "Result",
    "Endpoint",
    "Peer",
    "ClusterMap",
    "ConsistentHashRing",
    # Errors
    "ErrorKind",
    "Lite3Error",
    "BadRequestError",
    "NetworkError",
    "RefusedConnectionError",
    "DeadlineExceededError",
    "NotFoundError",
    "ServerError",
    "SerializationError",
]
