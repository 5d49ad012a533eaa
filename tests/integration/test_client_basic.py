"""Basic integration tests for the clients (no mock server required)."""

import pytest

from lite3kv import (
    BadRequestError,
    ClientConfig,
    ClusterClient,
    KVClient,
    NetworkError,
)


class TestClientBasic:
    """Test basic client functionality without a server."""

    def test_client_creation(self):
        client = KVClient("127.0.0.1", 8080)
        assert client is not None
        assert not client.is_connected()
        assert client.endpoint.authority == "127.0.0.1:8080"
        assert repr(client) == "KVClient(127.0.0.1:8080)"

    def test_client_context_manager(self):
        with KVClient("127.0.0.1", 8080, ClientConfig(timeout=100)) as client:
            assert not client.is_connected()
        assert not client.is_connected()

    @pytest.mark.parametrize("key", ["", b""])
    def test_empty_key_is_rejected_locally(self, key):
        client = KVClient("127.0.0.1", 1)
        for res in (
            client.put(key, b"v"),
            client.get(key),
            client.delete(key),
            client.patch_int(key, "n", 1),
            client.patch_str(key, "s", "x"),
            client.put_object(key, {"a": 1}),
            client.get_as(key, dict),
        ):
            assert isinstance(res.error, BadRequestError)
            assert str(res.error) == "Key cannot be empty"
        assert not client.is_connected()

    def test_non_string_key_is_rejected(self):
        res = KVClient("127.0.0.1", 1).get(42)  # type: ignore[arg-type]
        assert isinstance(res.error, BadRequestError)

    def test_non_utf8_key_is_rejected(self):
        res = KVClient("127.0.0.1", 1).get(b"\xff\xfe")
        assert isinstance(res.error, BadRequestError)

    def test_put_rejects_non_bytes_value(self):
        res = KVClient("127.0.0.1", 1).put("k", {"a": 1})  # type: ignore[arg-type]
        assert isinstance(res.error, BadRequestError)
        assert "put_object" in str(res.error)

    @pytest.mark.parametrize("value", [2**63, -(2**63) - 1, True, 1.5])
    def test_patch_int_rejects_invalid_values(self, value):
        res = KVClient("127.0.0.1", 1).patch_int("k", "n", value)
        assert isinstance(res.error, BadRequestError)

    def test_put_object_rejects_unencodable(self):
        res = KVClient("127.0.0.1", 1).put_object("k", object())
        assert res.is_err()
        assert res.error.code == "SERIALIZATION_ERROR"

    def test_closed_client_returns_network_error(self):
        client = KVClient("127.0.0.1", 1)
        client.close()
        res = client.get("k")
        assert isinstance(res.error, NetworkError)
        assert "closed" in str(res.error)


class TestClusterClientBasic:
    """Cluster client behaviour before any topology is known."""

    def test_no_nodes_before_connect(self):
        client = ClusterClient("127.0.0.1", 1)
        assert not client.is_connected()
        assert client.node_ids() == []
        assert client.node_for_key("user:1") is None

        res = client.get("user:1")
        assert isinstance(res.error, NetworkError)
        assert str(res.error) == "No nodes available"
        client.close()

    def test_empty_key_checked_before_routing(self):
        client = ClusterClient("127.0.0.1", 1)
        assert isinstance(client.put("", b"v").error, BadRequestError)
        assert isinstance(client.get(b"").error, BadRequestError)
        client.close()

    def test_connect_to_unreachable_seed(self):
        client = ClusterClient("127.0.0.1", 1, ClientConfig(connect_timeout=500))
        res = client.connect()
        assert isinstance(res.error, NetworkError)
        assert not client.is_connected()
        client.close()

    def test_context_manager_raises_on_failed_connect(self):
        with pytest.raises(NetworkError):
            with ClusterClient("127.0.0.1", 1, ClientConfig(connect_timeout=500)):
                pass

    def test_repr(self):
        assert repr(ClusterClient("127.0.0.1", 9)) == "ClusterClient(seed=127.0.0.1:9, nodes=[])"
