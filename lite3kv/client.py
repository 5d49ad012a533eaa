"""Single-node lite3kv client implementation."""

from typing import Any, Optional, Type, TypeVar

from lite3kv._internal.connection import ConnectionPool
from lite3kv.errors import BadRequestError, Lite3Error, NotFoundError
from lite3kv.hash import key_to_path, value_to_bytes
from lite3kv.serialization import decode_object, encode_object
from lite3kv.types import ClientConfig, Endpoint, Key, Result, Value


T = TypeVar("T")

KV_PREFIX = "/kv/"

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def validate_key(key: Key) -> Optional[Result[Any]]:
    """Return an error result for an unusable key, None for a valid one."""
    if not isinstance(key, (str, bytes, bytearray)):
        return Result.err(BadRequestError(f"Key must be str or bytes, got {type(key).__name__}"))
    if len(key) == 0:
        return Result.err(BadRequestError("Key cannot be empty"))
    if not isinstance(key, str):
        try:
            bytes(key).decode("utf-8")
        except UnicodeDecodeError:
            return Result.err(BadRequestError("Key must be valid UTF-8"))
    return None


def kv_path(key: Key) -> str:
    return KV_PREFIX + key_to_path(key)


def _unit(res: Result[bytes]) -> Result[None]:
    if res.is_err():
        return Result.err(res.error)
    return Result.ok()


class KeyValueMapping:
    """Dict-style access over the Result-returning operations.

    ``client[key] = value`` stores bytes and strings verbatim and any other
    object as JSON; ``client[key]`` returns the raw bytes. Failures raise the
    carried ``Lite3Error``.
    """

    def __getitem__(self, key: Key) -> bytes:
        return self.get(key).unwrap()

    def __setitem__(self, key: Key, value: Any) -> None:
        if isinstance(value, (bytes, bytearray, memoryview, str)):
            self.put(key, value).unwrap()
        else:
            self.put_object(key, value).unwrap()

    def __delitem__(self, key: Key) -> None:
        self.delete(key).unwrap()

    def __contains__(self, key: object) -> bool:
        return self.contains(key)  # type: ignore[arg-type]


class KVClient(KeyValueMapping):
    """Client for one lite3kv server.

    Requests go over a persistent keep-alive connection that is reopened
    lazily after a failure. Every operation returns a ``Result``.

    Example:
        >>> with KVClient("127.0.0.1", 8080) as client:
        ...     client.put("user:1", b'{"v":"Hello"}').unwrap()
        ...     print(client.get("user:1").value)
    """

    def __init__(
        self,
        host: str,
        port: int,
        config: Optional[ClientConfig] = None,
    ):
        """Initialize the client.

        Args:
            host: Server host name or IP literal
            port: Server HTTP port
            config: Client configuration
        """
        self._config = config or ClientConfig()
        self._pool = ConnectionPool(host, port, self._config)

    @property
    def endpoint(self) -> Endpoint:
        return self._pool.endpoint

    def close(self) -> None:
        """Close the connection to the server."""
        self._pool.close()

    def drain(self) -> None:
        """Stop keeping connections alive without refusing requests.

        Connections in use close when their request completes.
        """
        self._pool.drain()

    def __enter__(self) -> "KVClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        self.close()

    def is_connected(self) -> bool:
        """Check if a connection to the server is open."""
        return not self._pool.is_closed() and self._pool.is_connected()

    def raw_get(self, target: str) -> Result[bytes]:
        """GET an arbitrary request-URI, bypassing the ``/kv/`` prefix.

        Args:
            target: Request-URI beginning with ``/``, e.g. ``/cluster/map``
        """
        return self._pool.perform("GET", target)

    def put(self, key: Key, value: Value) -> Result[None]:
        """Store raw bytes under a key.

        Args:
            key: The key to store
            value: Bytes, bytearray or str (UTF-8 encoded)

        Returns:
            Ok on 200; BadRequestError for an empty key or non-bytes value
        """
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        if not isinstance(value, (bytes, bytearray, memoryview, str)):
            return Result.err(
                BadRequestError(
                    f"Value must be bytes or str, got {type(value).__name__}; "
                    "use put_object() for other types"
                )
            )

        return _unit(self._pool.perform("PUT", kv_path(key), value_to_bytes(value)))

    def get(self, key: Key) -> Result[bytes]:
        """Retrieve the raw bytes stored under a key.

        Returns:
            The value on 200; NotFoundError on 404
        """
        invalid = validate_key(key)
        if invalid is not None:
            return invalid

        return self._pool.perform("GET", kv_path(key))

    def delete(self, key: Key) -> Result[None]:
        """Delete a key. Deleting a missing key succeeds."""
        invalid = validate_key(key)
        if invalid is not None:
            return invalid

        res = self._pool.perform("DELETE", kv_path(key))
        if isinstance(res.error, NotFoundError):
            return Result.ok()
        return _unit(res)

    def patch_int(self, key: Key, field: str, value: int) -> Result[None]:
        """Set an integer field of the stored document in place.

        The query string is not percent-encoded; ``field`` should consist of
        URL-safe characters.
        """
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        if isinstance(value, bool) or not isinstance(value, int):
            return Result.err(BadRequestError(f"value must be an int, got {type(value).__name__}"))
        if not INT64_MIN <= value <= INT64_MAX:
            return Result.err(BadRequestError(f"value {value} does not fit in int64"))

        target = f"{kv_path(key)}?op=set_int&field={field}&val={value}"
        return _unit(self._pool.perform("POST", target))

    def patch_str(self, key: Key, field: str, value: str) -> Result[None]:
        """Set a string field of the stored document in place.

        Neither ``field`` nor ``value`` is percent-encoded.
        """
        invalid = validate_key(key)
        if invalid is not None:
            return invalid

        target = f"{kv_path(key)}?op=set_str&field={field}&val={value}"
        return _unit(self._pool.perform("POST", target))

    def contains(self, key: Key) -> bool:
        """Check whether a GET of the key succeeds."""
        return self.get(key).is_ok()

    def put_object(self, key: Key, obj: Any) -> Result[None]:
        """Store an object encoded as JSON."""
        invalid = validate_key(key)
        if invalid is not None:
            return invalid
        try:
            data = encode_object(obj)
        except Lite3Error as e:
            return Result.err(e)
        return self.put(key, data)

    def get_as(self, key: Key, cls: Type[T]) -> Result[T]:
        """Retrieve a JSON value and decode it into ``cls``."""
        res = self.get(key)
        if res.is_err():
            return Result.err(res.error)
        try:
            return Result.ok(decode_object(res.value, cls))
        except Lite3Error as e:
            return Result.err(e)

    def __repr__(self) -> str:
        return f"KVClient({self.endpoint})"
