"""Request router for directing operations to the owning cluster node."""

from typing import Callable, TypeVar

from lite3kv._internal.topology import TopologyManager
from lite3kv.client import KVClient
from lite3kv.errors import NetworkError
from lite3kv.types import Key, Result

T = TypeVar("T")


class Router:
    """Routes key operations to the node client chosen by the ring."""

    def __init__(self, topology: TopologyManager):
        """Initialize the router.

        Args:
            topology: Topology manager holding the routing table
        """
        self._topology = topology

    def route_kv_request(
        self,
        key: Key,
        request_fn: Callable[[KVClient], Result[T]],
    ) -> Result[T]:
        """Route a key operation to its node.

        The client is picked under the topology's shared lock; the request
        itself runs without holding it. The node's result is returned
        unchanged: redirects are followed by the node client and errors never
        trigger a refresh.

        Args:
            key: The key being operated on
            request_fn: Operation to run against the selected node client

        Returns:
            The operation's result, or NetworkError when no node is known
        """
        client = self._topology.select_client(key)
        if client is None:
            return Result.err(NetworkError("No nodes available"))
        return request_fn(client)
