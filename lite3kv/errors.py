"""Custom error classes for lite3kv client."""

from enum import Enum
from typing import Optional

import httpx


class ErrorKind(str, Enum):
    """Classification of a failed operation."""

    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"
    UNKNOWN = "UNKNOWN"


class Lite3Error(Exception):
    """Base error class for all lite3kv errors.

    Operations return errors inside a ``Result`` rather than raising them;
    ``Result.unwrap()`` and the mapping surface raise the carried instance.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        address: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.address = address

    @property
    def message(self) -> str:
        return str(self)

    def __repr__(self) -> str:
        if self.code:
            return f"{self.__class__.__name__}(message={str(self)!r}, code={self.code!r})"
        return f"{self.__class__.__name__}(message={str(self)!r})"


class BadRequestError(Lite3Error):
    """Error indicating a caller-side precondition failed before any I/O."""

    kind = ErrorKind.BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message, "BAD_REQUEST")


class NetworkError(Lite3Error):
    """Error indicating an I/O, protocol or redirect failure."""

    kind = ErrorKind.NETWORK_ERROR

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        code: str = "NETWORK_ERROR",
    ):
        super().__init__(message, code, address)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(message={str(self)!r}, "
            f"address={self.address!r})"
        )


class RefusedConnectionError(NetworkError):
    """Error indicating the TCP connect was rejected by the endpoint."""

    kind = ErrorKind.CONNECTION_REFUSED

    def __init__(self, message: str, address: Optional[str] = None):
        super().__init__(message, address, "CONNECTION_REFUSED")


class DeadlineExceededError(NetworkError):
    """Error indicating a socket-level connect, read or write timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str,
        timeout_ms: int = 0,
        address: Optional[str] = None,
    ):
        super().__init__(message, address, "TIMEOUT")
        self.timeout_ms = timeout_ms

    def __repr__(self) -> str:
        return (
            f"DeadlineExceededError(message={str(self)!r}, "
            f"timeout_ms={self.timeout_ms}, address={self.address!r})"
        )


class NotFoundError(Lite3Error):
    """Error indicating the requested key or resource was not found."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Key not found", address: Optional[str] = None):
        super().__init__(message, "NOT_FOUND", address)


class ServerError(Lite3Error):
    """Error indicating an unexpected status or a malformed redirect."""

    kind = ErrorKind.SERVER_ERROR

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        address: Optional[str] = None,
    ):
        super().__init__(message, "SERVER_ERROR", address)
        self.status = status

    def __repr__(self) -> str:
        return (
            f"ServerError(message={str(self)!r}, status={self.status!r}, "
            f"address={self.address!r})"
        )


class SerializationError(Lite3Error):
    """Error indicating an object could not be encoded to or decoded from JSON."""

    kind = ErrorKind.SERIALIZATION_ERROR

    def __init__(self, message: str):
        super().__init__(message, "SERIALIZATION_ERROR")


def from_status(status: int, address: Optional[str] = None) -> Lite3Error:
    """Convert a non-success HTTP status to a lite3kv error.

    Args:
        status: HTTP status code other than 200 and 307
        address: Endpoint that answered

    Returns:
        NotFoundError for 404, ServerError for everything else
    """
    if status == 404:
        return NotFoundError("Key not found", address)
    return ServerError(f"Server error: {status}", status, address)


def _is_refused(error: BaseException) -> bool:
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        if isinstance(current, ConnectionRefusedError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def from_transport_error(
    error: Exception,
    address: Optional[str] = None,
    timeout_ms: int = 0,
) -> NetworkError:
    """Convert an exception raised during an HTTP exchange to a lite3kv error.

    Args:
        error: Exception raised while connecting, sending or receiving
        address: Endpoint of the exchange
        timeout_ms: Configured timeout, reported on DeadlineExceededError

    Returns:
        RefusedConnectionError, DeadlineExceededError or NetworkError
    """
    message = str(error) or error.__class__.__name__

    if isinstance(error, httpx.TimeoutException):
        return DeadlineExceededError(message, timeout_ms, address)

    if isinstance(error, httpx.ConnectError) and _is_refused(error):
        return RefusedConnectionError(message, address)

    if isinstance(error, ConnectionRefusedError):
        return RefusedConnectionError(message, address)

    return NetworkError(message, address)
