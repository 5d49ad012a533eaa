"""Topology-aware lite3kv client."""

from typing import Any, List, Optional, Type, TypeVar

from lite3kv._internal.router import Router
from lite3kv._internal.topology import TopologyManager
from lite3kv.client import KeyValueMapping, validate_key
from lite3kv.types import ClientConfig, Endpoint, Key, Result, Value


T = TypeVar("T")


class ClusterClient(KeyValueMapping):
    """Client for a partitioned lite3kv cluster.

    Discovers the nodes through a seed endpoint and sends each key to the node
    owning it on the consistent-hash ring. Safe to share between threads.

    Example:
        >>> with ClusterClient("127.0.0.1", 8080) as client:
        ...     client.put("user:1", b"hello").unwrap()
        ...     print(client.get("user:1").value)
    """

    def __init__(
        self,
        seed_host: str,
        seed_port: int,
        config: Optional[ClientConfig] = None,
    ):
        """Initialize the cluster client.

        Args:
            seed_host: Host of the node serving the cluster map
            seed_port: HTTP port of that node
            config: Client configuration, shared by all node clients
        """
        self._config = config or ClientConfig()
        self._topology = TopologyManager(
            seed=Endpoint(seed_host, seed_port),
            config=self._config,
        )
        self._router = Router(topology=self._topology)

    @property
    def seed(self) -> Endpoint:
        return self._topology.seed

    def connect(self) -> Result[None]:
        """Fetch the cluster topology from the seed.

        Starts periodic refreshing when ``config.watch_cluster`` is set and
        the initial fetch succeeded.
        """
        res = self._topology.refresh()
        if res.is_ok() and self._config.watch_cluster:
            self._topology.start()
        return res

    def refresh_topology(self) -> Result[None]:
        """Re-fetch the cluster map and rebuild the routing state."""
        return self._topology.refresh()

    def close(self) -> None:
        """Stop refreshing and close all node connections."""
        self._topology.close()

    def __enter__(self) -> "ClusterClient":
        self.connect().unwrap()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        self.close()

    def is_connected(self) -> bool:
        """Check if a topology has been fetched."""
        return self._topology.is_refreshed()

    def node_for_key(self, key: Key) -> Optional[int]:
        """Node id owning a key, or None before any node is known."""
        return self._topology.node_for_key(key)

    def node_ids(self) -> List[int]:
        """Node ids of the current topology, ascending."""
        return self._topology.node_ids()

    def put(self, key: Key, value: Value) -> Result[None]:
        """Store raw bytes on the node owning the key."""
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        return self._router.route_kv_request(key, lambda c: c.put(key, value))

    def get(self, key: Key) -> Result[bytes]:
        """Retrieve the raw bytes stored under a key."""
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        return self._router.route_kv_request(key, lambda c: c.get(key))

    def delete(self, key: Key) -> Result[None]:
        """Delete a key. Deleting a missing key succeeds."""
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        return self._router.route_kv_request(key, lambda c: c.delete(key))

    def patch_int(self, key: Key, field: str, value: int) -> Result[None]:
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        return self._router.route_kv_request(
            key, lambda c: c.patch_int(key, field, value)
        )

    def patch_str(self, key: Key, field: str, value: str) -> Result[None]:
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        return self._router.route_kv_request(
            key, lambda c: c.patch_str(key, field, value)
        )

    def contains(self, key: Key) -> bool:
        """Check whether a GET of the key succeeds."""
        return self.get(key).is_ok()

    def put_object(self, key: Key, obj: Any) -> Result[None]:
        """Store an object encoded as JSON on the node owning the key."""
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        return self._router.route_kv_request(key, lambda c: c.put_object(key, obj))

    def get_as(self, key: Key, cls: Type[T]) -> Result[T]:
        """Retrieve a JSON value and decode it into ``cls``."""
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        return self._router.route_kv_request(key, lambda c: c.get_as(key, cls))

    def __repr__(self) -> str:
        return f"ClusterClient(seed={self.seed}, nodes={self.node_ids()!r})"
