"""Topology manager for tracking the cluster map and per-node clients."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from lite3kv._internal.locks import ReadWriteLock
from lite3kv.client import KVClient
from lite3kv.errors import NetworkError
from lite3kv.ring import ConsistentHashRing
from lite3kv.types import ClientConfig, ClusterMap, Endpoint, Key, Result

logger = logging.getLogger(__name__)

CLUSTER_MAP_PATH = "/cluster/map"

_document_adapter = TypeAdapter(Any)
_cluster_map_adapter = TypeAdapter(ClusterMap)


def parse_cluster_map(body: bytes, address: Optional[str] = None) -> ClusterMap:
    """Parse the ``/cluster/map`` document.

    Unknown fields are ignored. A ``peers`` value that is missing or not a
    list yields no peers.

    Args:
        body: Response body served by the seed
        address: Seed endpoint, reported on errors

    Raises:
        NetworkError: If the body is not JSON or a peer entry is malformed
    """
    try:
        document = _document_adapter.validate_json(body)
        peers = document.get("peers") if isinstance(document, dict) else None
        if not isinstance(peers, list):
            return ClusterMap()
        return _cluster_map_adapter.validate_python({"peers": peers})
    except ValidationError as e:
        raise NetworkError(f"Invalid cluster map: {e}", address) from e


@dataclass(frozen=True)
class RoutingTable:
    """Ring and node clients built together from one cluster map.

    Tables are never mutated after construction; a refresh swaps in a new
    one.
    """

    ring: ConsistentHashRing = field(default_factory=ConsistentHashRing)
    clients: Dict[int, KVClient] = field(default_factory=dict)

    def owner(self, key: Key) -> Optional[int]:
        """Node id owning a key, or None when the ring is empty."""
        if not len(self.ring):
            return None
        return self.ring.get_node(key)

    def select(self, key: Key) -> Optional[KVClient]:
        """Client for the key's owner, falling back to the lowest node id."""
        owner = self.owner(key)
        if owner is not None and owner in self.clients:
            return self.clients[owner]
        if self.clients:
            return self.clients[min(self.clients)]
        return None

    def retire(self) -> None:
        """Drain every client; callers still holding one can finish with it."""
        for client in self.clients.values():
            client.drain()

    def close(self) -> None:
        for client in self.clients.values():
            client.close()


def build_routing_table(cluster_map: ClusterMap, config: ClientConfig) -> RoutingTable:
    """Build a ring and client map from a cluster map.

    Peers with id 0 are skipped.

    Raises:
        ValueError: If a peer id does not fit an unsigned 32-bit integer
    """
    ring = ConsistentHashRing()
    clients: Dict[int, KVClient] = {}

    try:
        for peer in cluster_map.peers:
            if peer.id == 0:
                continue
            ring.add_node(peer.id)
            if peer.id not in clients:
                clients[peer.id] = KVClient(peer.host, peer.http_port, config)
    except ValueError:
        for client in clients.values():
            client.close()
        raise

    return RoutingTable(ring=ring, clients=clients)


class TopologyManager:
    """Manages the routing table and its refreshes from the seed node."""

    def __init__(
        self,
        seed: Endpoint,
        config: Optional[ClientConfig] = None,
    ):
        """Initialize the topology manager.

        Args:
            seed: Endpoint serving the cluster map
            config: Client configuration used for every node client
        """
        self._seed = seed
        self._config = config or ClientConfig()
        self._lock = ReadWriteLock()
        self._table = RoutingTable()
        self._refreshed = False

        # Background refresh
        self._watch_thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def seed(self) -> Endpoint:
        return self._seed

    def refresh(self) -> Result[None]:
        """Fetch the cluster map from the seed and swap in a new routing table.

        On failure the current routing table is kept.
        """
        with self._lock.write_locked():
            res = self._refresh_locked()
            if res.is_err():
                return res
            current = res.value
            previous, self._table = self._table, current
            self._refreshed = True

        previous.retire()
        logger.info(
            "Topology refreshed from %s: %d node(s) %s",
            self._seed,
            len(current.clients),
            sorted(current.clients),
        )
        return Result.ok()

    def _refresh_locked(self) -> Result[RoutingTable]:
        with KVClient(self._seed.host, self._seed.port, self._config) as seed:
            res = seed.raw_get(CLUSTER_MAP_PATH)
        if res.is_err():
            return Result.err(res.error)

        try:
            cluster_map = parse_cluster_map(res.value, str(self._seed))
            table = build_routing_table(cluster_map, self._config)
        except NetworkError as e:
            return Result.err(e)
        except ValueError as e:
            return Result.err(NetworkError(f"Invalid cluster map: {e}", str(self._seed)))

        for node_id, client in sorted(table.clients.items()):
            logger.info("Added node %d (%s)", node_id, client.endpoint)
        return Result.ok(table)

    def select_client(self, key: Key) -> Optional[KVClient]:
        """Pick the node client for a key under the shared lock."""
        with self._lock.read_locked():
            return self._table.select(key)

    def node_for_key(self, key: Key) -> Optional[int]:
        """Node id the ring assigns to a key, or None with no nodes."""
        with self._lock.read_locked():
            return self._table.owner(key)

    def node_ids(self) -> List[int]:
        """All node ids of the current routing table, ascending."""
        with self._lock.read_locked():
            return sorted(self._table.clients)

    def is_refreshed(self) -> bool:
        """Check if at least one refresh has succeeded."""
        return self._refreshed

    def start(self) -> None:
        """Start refreshing the topology every ``refresh_interval`` seconds."""
        if self._watch_thread is not None:
            return

        self._stop.clear()
        self._watch_thread = threading.Thread(
            target=self._watch_loop,
            name=f"lite3kv-topology-{self._seed}",
            daemon=True,
        )
        self._watch_thread.start()

    def stop(self) -> None:
        """Stop the background refresh thread."""
        thread, self._watch_thread = self._watch_thread, None
        if thread is None:
            return

        self._stop.set()
        thread.join()

    def _watch_loop(self) -> None:
        while not self._stop.wait(self._config.refresh_interval):
            res = self.refresh()
            if res.is_err():
                logger.warning(
                    "Topology refresh from %s failed: %s", self._seed, res.error
                )

    def close(self) -> None:
        """Stop refreshing and close every node client."""
        self.stop()
        with self._lock.write_locked():
            previous, self._table = self._table, RoutingTable()
            self._refreshed = False
        previous.close()
