"""JSON object layer on top of the byte-oriented key-value operations.

Objects are encoded with pydantic, so anything pydantic can validate works as
a target type: BaseModel subclasses, dataclasses, TypedDicts and plain
containers of JSON primitives.
"""

from functools import lru_cache
from typing import Any, Type, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from lite3kv.errors import SerializationError

T = TypeVar("T")


@lru_cache(maxsize=256)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def encode_object(obj: Any) -> bytes:
    """Encode an object as JSON bytes.

    Raises:
        SerializationError: If the object cannot be represented as JSON
    """
    try:
        return _adapter(type(obj)).dump_json(obj)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise SerializationError(f"Cannot encode {type(obj).__name__}: {e}") from e


def decode_object(data: bytes, cls: Type[T]) -> T:
    """Decode JSON bytes into an instance of ``cls``.

    Raises:
        SerializationError: If the bytes are not valid JSON for ``cls``
    """
    try:
        return _adapter(cls).validate_json(data)
    except (ValidationError, TypeError, ValueError) as e:
        name = getattr(cls, "__name__", repr(cls))
        raise SerializationError(f"Cannot decode {name}: {e}") from e
