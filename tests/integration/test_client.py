"""Integration tests for KVClient."""

import json
import socket
import threading
from dataclasses import dataclass
from typing import Dict, List

import pytest

from lite3kv import (
    BadRequestError,
    ClientConfig,
    DeadlineExceededError,
    KVClient,
    NetworkError,
    NotFoundError,
    RefusedConnectionError,
    ServerError,
)
from tests.integration.helpers.mock_server import free_port


@dataclass
class UserConfig:
    id: int
    name: str
    roles: List[str]


@pytest.fixture
def client(mock_server):
    """Create a client for the mock server."""
    with KVClient("127.0.0.1", mock_server.port) as client:
        yield client


def lower_keys(headers: Dict[str, str]) -> Dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


class TestBasicOperations:
    """Test basic KV operations."""

    def test_put_and_get(self, client, mock_server):
        assert client.put("user:1", b'{"v":"Hello"}').is_ok()

        res = client.get("user:1")
        assert res.is_ok()
        assert res.value == b'{"v":"Hello"}'
        assert mock_server.kv.store["user:1"] == b'{"v":"Hello"}'

    def test_binary_round_trip(self, client):
        value = bytes(range(256))
        client.put("bin", value).unwrap()
        assert client.get("bin").unwrap() == value

    def test_string_value_is_utf8(self, client, mock_server):
        client.put("greeting", "héllo").unwrap()
        assert mock_server.kv.store["greeting"] == "héllo".encode("utf-8")

    def test_get_nonexistent_key(self, client):
        res = client.get("missing")
        assert isinstance(res.error, NotFoundError)
        assert res.error.address == client.endpoint.authority

    def test_delete(self, client):
        client.put("k", b"X").unwrap()
        assert client.delete("k").is_ok()
        assert isinstance(client.get("k").error, NotFoundError)
        assert client.delete("k").is_ok()

    def test_contains(self, client):
        client.put("k", b"X").unwrap()
        assert client.contains("k")
        assert not client.contains("other")

    def test_patch_int(self, client, mock_server):
        client.put("user:1", b'{"v":"Hello"}').unwrap()
        assert client.patch_int("user:1", "count", 42).is_ok()

        doc = json.loads(client.get("user:1").unwrap())
        assert doc == {"v": "Hello", "count": 42}
        assert "/kv/user:1?op=set_int&field=count&val=42" in mock_server.kv.paths()

    def test_patch_int_negative(self, client):
        client.put("n", b"{}").unwrap()
        client.patch_int("n", "delta", -(2**63)).unwrap()
        assert json.loads(client.get("n").unwrap()) == {"delta": -(2**63)}

    def test_patch_str(self, client, mock_server):
        client.put("user:2", b"{}").unwrap()
        assert client.patch_str("user:2", "name", "Alice").is_ok()

        assert json.loads(client.get("user:2").unwrap()) == {"name": "Alice"}
        assert "/kv/user:2?op=set_str&field=name&val=Alice" in mock_server.kv.paths()

    def test_patch_missing_key(self, client):
        assert isinstance(client.patch_int("nope", "n", 1).error, NotFoundError)

    def test_dot_segment_keys_are_sent_verbatim(self, client, mock_server):
        keys = [".", "..", "a/../b", "x/./y"]
        client.put("b", b"untouched").unwrap()
        for key in keys:
            client.put(key, key.encode()).unwrap()

        assert mock_server.kv.paths()[1:] == [f"/kv/{key}" for key in keys]
        for key in keys:
            assert client.get(key).unwrap() == key.encode()
        assert client.get("b").unwrap() == b"untouched"


class TestEmptyKey:
    """Empty keys never reach the network."""

    def test_no_request_is_sent(self, client, mock_server):
        assert isinstance(client.get("").error, BadRequestError)
        assert isinstance(client.put("", b"v").error, BadRequestError)
        assert isinstance(client.delete("").error, BadRequestError)

        assert mock_server.kv.request_count() == 0
        assert mock_server.kv.connections == 0
        assert not client.is_connected()


class TestWireFormat:
    """Test request headers and connection reuse."""

    def test_request_headers(self, client, mock_server):
        client.put("k", b"abc").unwrap()

        request = mock_server.kv.requests[0]
        headers = lower_keys(request.headers)
        assert request.method == "PUT"
        assert request.path == "/kv/k"
        assert request.body == b"abc"
        assert headers["host"] == "127.0.0.1"
        assert headers["user-agent"] == "lite3kv-python/0.1.0"
        assert headers["content-type"] == "application/octet-stream"
        assert headers["content-length"] == "3"
        assert headers["connection"].lower() == "keep-alive"

    def test_custom_user_agent(self, mock_server):
        config = ClientConfig(user_agent="inventory/2.1")
        with KVClient("127.0.0.1", mock_server.port, config) as client:
            client.get("k")
        assert lower_keys(mock_server.kv.requests[0].headers)["user-agent"] == "inventory/2.1"

    def test_get_sends_empty_body(self, client, mock_server):
        client.get("k")
        request = mock_server.kv.requests[0]
        assert request.body == b""
        assert lower_keys(request.headers)["content-length"] == "0"

    def test_connection_is_reused(self, client, mock_server):
        for i in range(5):
            client.put(f"k{i}", b"v").unwrap()
        client.get("k0").unwrap()
        client.delete("k0").unwrap()

        assert mock_server.kv.connections == 1
        assert len({r.connection_id for r in mock_server.kv.requests}) == 1
        assert client.is_connected()

    def test_connection_kept_after_error_status(self, client, mock_server):
        client.get("missing")
        client.put("k", b"v").unwrap()
        assert mock_server.kv.connections == 1

    def test_reconnects_after_dropped_connection(self, client, mock_server):
        client.put("k", b"v").unwrap()
        mock_server.kv.drop_next("/kv/k")

        res = client.get("k")
        assert isinstance(res.error, NetworkError)
        assert not client.is_connected()

        assert client.get("k").unwrap() == b"v"
        assert mock_server.kv.connections == 2


class TestTransportErrors:
    """Test mapping of connection failures."""

    def test_connection_refused(self):
        with KVClient("127.0.0.1", free_port()) as client:
            res = client.get("k")
        assert isinstance(res.error, RefusedConnectionError)
        assert res.error.kind.value == "CONNECTION_REFUSED"
        assert not client.is_connected()

    def test_read_timeout(self):
        # Listens but never accepts or answers.
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
            listener.bind(("127.0.0.1", 0))
            listener.listen(8)
            port = listener.getsockname()[1]

            config = ClientConfig(timeout=200)
            with KVClient("127.0.0.1", port, config) as client:
                res = client.get("k")

        assert isinstance(res.error, DeadlineExceededError)
        assert res.error.timeout_ms == 200

    def test_server_error(self, client, mock_server):
        mock_server.kv.fail_with("/kv/k", 500)
        res = client.put("k", b"v")
        assert isinstance(res.error, ServerError)
        assert res.error.status == 500
        assert str(res.error) == "Server error: 500"

    def test_delete_maps_only_not_found_to_success(self, client, mock_server):
        mock_server.kv.fail_with("/kv/k", 503)
        assert isinstance(client.delete("k").error, ServerError)


class TestRedirects:
    """Test 307 handling."""

    def test_redirect_to_other_node(self, client, mock_server, other_server):
        other_server.kv.store["user:9"] = b"from-b"
        mock_server.kv.redirect("/kv/user:9", other_server.url("/kv/user:9"))

        res = client.get("user:9")
        assert res.unwrap() == b"from-b"
        assert other_server.kv.request_count("GET") == 1

    def test_redirect_preserves_method_and_body(self, client, mock_server, other_server):
        mock_server.kv.redirect("/kv/k", other_server.url("/kv/k"))
        client.put("k", b"payload").unwrap()

        assert other_server.kv.store["k"] == b"payload"
        assert "k" not in mock_server.kv.store

    def test_redirect_preserves_query(self, client, mock_server, other_server):
        other_server.kv.store["doc"] = b"{}"
        target = "/kv/doc?op=set_int&field=n&val=7"
        mock_server.kv.redirect("/kv/doc", other_server.url(target))

        client.patch_int("doc", "n", 7).unwrap()
        assert json.loads(other_server.kv.store["doc"]) == {"n": 7}

    def test_persistent_connection_stays_with_origin(self, client, mock_server, other_server):
        other_server.kv.store["r"] = b"1"
        mock_server.kv.redirect("/kv/r", other_server.url("/kv/r"))

        client.get("r").unwrap()
        client.get("r").unwrap()
        assert mock_server.kv.connections == 1
        assert other_server.kv.connections == 2

    def _chain(self, server, hops: int) -> None:
        for i in range(hops):
            server.kv.redirect(f"/kv/r{i}", server.url(f"/kv/r{i + 1}"))
        server.kv.store[f"r{hops}"] = b"end"

    def test_chain_within_limit(self, client, mock_server):
        self._chain(mock_server, 5)
        assert client.get("r0").unwrap() == b"end"
        assert mock_server.kv.request_count() == 6

    def test_chain_too_long(self, client, mock_server):
        self._chain(mock_server, 6)
        res = client.get("r0")
        assert isinstance(res.error, NetworkError)
        assert str(res.error) == "Too many redirects"
        assert mock_server.kv.request_count() == 6

    def test_redirects_disabled(self, mock_server, other_server):
        mock_server.kv.redirect("/kv/k", other_server.url("/kv/k"))
        with KVClient("127.0.0.1", mock_server.port, ClientConfig(max_redirects=0)) as client:
            res = client.get("k")
        assert str(res.error) == "Too many redirects"
        assert other_server.kv.request_count() == 0

    def test_missing_location(self, client, mock_server):
        mock_server.kv.redirect("/kv/k", None)
        res = client.get("k")
        assert isinstance(res.error, ServerError)
        assert str(res.error) == "Invalid Redirect Location"
        assert res.error.status == 307

    @pytest.mark.parametrize(
        "location",
        ["/kv/relative", "https://127.0.0.1:1/kv/k", "http://127.0.0.1/kv/k"],
    )
    def test_invalid_location(self, client, mock_server, location):
        mock_server.kv.redirect("/kv/k", location)
        res = client.get("k")
        assert isinstance(res.error, ServerError)
        assert str(res.error) == "Invalid Redirect Location"

    def test_redirect_target_unreachable(self, client, mock_server):
        mock_server.kv.redirect("/kv/k", f"http://127.0.0.1:{free_port()}/kv/k")
        assert isinstance(client.get("k").error, RefusedConnectionError)


class TestObjects:
    """Test the JSON object layer."""

    def test_put_object_and_get_as(self, client, mock_server):
        user = UserConfig(101, "Alice", ["admin", "editor"])
        client.put_object("user:101", user).unwrap()

        assert json.loads(mock_server.kv.store["user:101"]) == {
            "id": 101,
            "name": "Alice",
            "roles": ["admin", "editor"],
        }
        assert client.get_as("user:101", UserConfig).unwrap() == user

    def test_get_as_missing(self, client):
        assert isinstance(client.get_as("missing", UserConfig).error, NotFoundError)

    def test_get_as_wrong_shape(self, client):
        client.put("user:1", b"not json").unwrap()
        res = client.get_as("user:1", UserConfig)
        assert res.is_err()
        assert res.error.code == "SERIALIZATION_ERROR"


class TestMappingAccess:
    """Test dict-style access."""

    def test_item_round_trip(self, client):
        client["a"] = b"x"
        assert client["a"] == b"x"
        assert "a" in client

        del client["a"]
        assert "a" not in client

    def test_missing_item_raises(self, client):
        with pytest.raises(NotFoundError):
            client["missing"]

    def test_objects_are_stored_as_json(self, client, mock_server):
        client["cfg"] = {"retries": 3}
        assert json.loads(mock_server.kv.store["cfg"]) == {"retries": 3}

    def test_empty_key_raises(self, client):
        with pytest.raises(BadRequestError):
            client[""] = b"x"


class TestConcurrency:
    """Test sharing one client between threads."""

    def test_concurrent_puts(self, mock_server):
        config = ClientConfig(max_connections_per_node=2)
        errors = []

        with KVClient("127.0.0.1", mock_server.port, config) as client:

            def worker(n: int) -> None:
                for i in range(20):
                    res = client.put(f"t{n}-{i}", str(i).encode())
                    if res.is_err():
                        errors.append(res.error)

            threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10)

        assert errors == []
        assert len(mock_server.kv.store) == 80
        assert mock_server.kv.connections <= 2
