"""Hashing utilities for the lite3kv client.

CRITICAL: The ring hash is a cluster-wide contract. The server decides key
ownership with the same function; any deviation here silently routes keys to
the wrong node.

- hash32: XXH32 (seed=0) over raw bytes
- node ids are hashed over their 4-byte little-endian encoding
"""

import struct
from typing import Union

import xxhash

UINT32_MAX = 0xFFFFFFFF


def hash32(data: Union[bytes, bytearray, str]) -> int:
    """Compute the 32-bit ring hash of raw bytes.

    Args:
        data: Bytes to hash (str is UTF-8 encoded first)

    Returns:
        32-bit hash as unsigned integer

    Example:
        >>> hash32(b"")
        46947589
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return xxhash.xxh32_intdigest(bytes(data), seed=0)


def node_id_to_bytes(node_id: int) -> bytes:
    """Encode a node id as the bytes hashed onto the ring.

    Raises:
        ValueError: If node_id does not fit an unsigned 32-bit integer
    """
    if not 0 <= node_id <= UINT32_MAX:
        raise ValueError(f"node id must be an unsigned 32-bit integer, got {node_id}")
    return struct.pack("<I", node_id)


def hash_node_id(node_id: int) -> int:
    """Ring position of a node id."""
    return hash32(node_id_to_bytes(node_id))


def key_to_bytes(key: Union[str, bytes]) -> bytes:
    """Convert a key (string or bytes) to bytes.

    Args:
        key: String or bytes

    Returns:
        UTF-8 encoded bytes
    """
    return key.encode("utf-8") if isinstance(key, str) else bytes(key)


def key_to_path(key: Union[str, bytes]) -> str:
    """Render a key as the path segment placed after ``/kv/``."""
    return key if isinstance(key, str) else bytes(key).decode("utf-8")


def value_to_bytes(value: Union[str, bytes, bytearray, memoryview]) -> bytes:
    """Convert a value (string, bytes, or bytearray) to bytes.

    Args:
        value: String, bytes, or bytearray

    Returns:
        UTF-8 encoded bytes if string, otherwise bytes
    """
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return value
