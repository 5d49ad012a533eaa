"""Basic usage example for lite3kv Python SDK."""

import logging
from dataclasses import dataclass
from typing import List

from lite3kv import ClientConfig, ClusterClient, KVClient, NotFoundError


@dataclass
class UserConfig:
    id: int
    name: str
    roles: List[str]


def single_node() -> None:
    """Demonstrate basic lite3kv operations against one server."""
    config = ClientConfig(
        timeout=5000,  # Request timeout in milliseconds
        max_redirects=5,  # 307 redirects followed per request
    )

    with KVClient("127.0.0.1", 8080, config) as client:
        # Put a value
        print("1. Putting key-value pair...")
        res = client.put("user:1", b'{"v":"Hello"}')
        print(f"   Stored: {res.is_ok()}")

        # Get a value
        print("\n2. Getting value...")
        res = client.get("user:1")
        if res:
            print(f"   Retrieved: {res.value.decode('utf-8')}")
        else:
            print(f"   Failed: {res.error!r}")

        # Patch a field in place
        print("\n3. Patching field 'count'...")
        res = client.patch_int("user:1", "count", 42)
        print(f"   Patched: {res.is_ok()}")

        # Objects are stored as JSON
        print("\n4. Storing an object...")
        client.put_object("user:101", UserConfig(101, "Alice", ["admin", "editor"]))
        user = client.get_as("user:101", UserConfig).unwrap()
        print(f"   Decoded: {user}")

        # Dict-style access raises on failure
        print("\n5. Dict-style access...")
        client["greeting"] = "hi"
        print(f"   greeting = {client['greeting']!r}")

        # Delete a value (deleting twice is fine)
        print("\n6. Deleting key...")
        client.delete("user:1").unwrap()
        client.delete("user:1").unwrap()
        res = client.get("user:1")
        if isinstance(res.error, NotFoundError):
            print("   Key successfully deleted")


def cluster() -> None:
    """Demonstrate topology-aware routing through a seed node."""
    with ClusterClient("127.0.0.1", 8080) as client:
        print(f"\nCluster nodes: {client.node_ids()}")
        for key in ("user:1", "user:2", "user:3"):
            client.put(key, key.encode()).unwrap()
            print(f"   {key} -> node {client.node_for_key(key)}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    single_node()
    cluster()
