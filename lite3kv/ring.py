"""Consistent-hash ring mapping keys to node ids.

Each node occupies exactly one position on the 32-bit ring, equal to
``hash_node_id(id)``. A key belongs to the node at the smallest position
greater than or equal to ``hash32(key)``, wrapping past ``2**32 - 1``.
"""

from bisect import bisect_left, insort
from typing import Dict, List, Tuple, Union

from lite3kv.hash import UINT32_MAX, hash32, hash_node_id, key_to_bytes


class ConsistentHashRing:
    """Sorted ring of ``(position, node_id)`` entries.

    Position collisions are resolved in favour of the lowest node id; which
    node wins a collision is not part of the cluster contract.

    Example:
        >>> ring = ConsistentHashRing([1, 2])
        >>> ring.get_node("user:1") in (1, 2)
        True
    """

    def __init__(self, node_ids=None):
        self._ring: List[Tuple[int, int]] = []
        self._positions: List[int] = []
        self._nodes: Dict[int, int] = {}

        for node_id in node_ids or ():
            self.add_node(node_id)

    def add_node(self, node_id: int) -> None:
        """Place a node on the ring. Adding an existing node is a no-op.

        Raises:
            ValueError: If node_id is 0 or not an unsigned 32-bit integer
        """
        if node_id in self._nodes:
            return
        if not 0 < node_id <= UINT32_MAX:
            raise ValueError(f"node id must be in [1, 2**32), got {node_id}")

        position = hash_node_id(node_id)
        self._nodes[node_id] = position
        insort(self._ring, (position, node_id))
        self._positions = [p for p, _ in self._ring]

    def remove_node(self, node_id: int) -> None:
        """Remove a node from the ring. Removing an absent node is a no-op."""
        position = self._nodes.pop(node_id, None)
        if position is None:
            return

        idx = bisect_left(self._ring, (position, node_id))
        del self._ring[idx]
        self._positions = [p for p, _ in self._ring]

    def get_node(self, key: Union[str, bytes]) -> int:
        """Return the node id owning ``key``.

        Raises:
            LookupError: If the ring is empty
        """
        if not self._ring:
            raise LookupError("Hash ring is empty")

        idx = bisect_left(self._positions, hash32(key_to_bytes(key)))
        if idx == len(self._ring):
            idx = 0
        return self._ring[idx][1]

    def position_of(self, node_id: int) -> int:
        """Ring position of a node that is on the ring."""
        return self._nodes[node_id]

    def nodes(self) -> List[int]:
        """All node ids on the ring, ascending."""
        return sorted(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        return f"ConsistentHashRing(nodes={self.nodes()!r})"
