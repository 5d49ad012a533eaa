"""Unit tests for the JSON object layer."""

import json
from dataclasses import dataclass
from typing import Dict, List

import pytest
from pydantic import BaseModel
from lite3kv.errors import SerializationError
from lite3kv.serialization import decode_object, encode_object


@dataclass
class UserConfig:
    id: int
    name: str
    roles: List[str]


class Product(BaseModel):
    sku: str
    price: float


class TestEncode:
    def test_dataclass(self):
        data = encode_object(UserConfig(101, "Alice", ["admin"]))
        assert json.loads(data) == {"id": 101, "name": "Alice", "roles": ["admin"]}

    def test_model(self):
        data = encode_object(Product(sku="A-1", price=9.5))
        assert json.loads(data) == {"sku": "A-1", "price": 9.5}

    def test_plain_containers(self):
        assert json.loads(encode_object({"a": [1, 2]})) == {"a": [1, 2]}

    def test_unencodable_object(self):
        with pytest.raises(SerializationError):
            encode_object(object())


class TestDecode:
    def test_dataclass(self):
        user = decode_object(b'{"id":7,"name":"Bob","roles":[]}', UserConfig)
        assert user == UserConfig(7, "Bob", [])

    def test_model(self):
        product = decode_object(b'{"sku":"B-2","price":3}', Product)
        assert product == Product(sku="B-2", price=3.0)

    def test_generic_alias(self):
        assert decode_object(b'{"x":1}', Dict[str, int]) == {"x": 1}

    def test_invalid_json(self):
        with pytest.raises(SerializationError) as exc_info:
            decode_object(b"not json", UserConfig)
        assert "UserConfig" in str(exc_info.value)

    def test_wrong_shape(self):
        with pytest.raises(SerializationError):
            decode_object(b'{"id":"abc"}', UserConfig)
