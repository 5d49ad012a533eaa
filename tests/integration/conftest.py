"""Shared fixtures for integration tests."""

import pytest

from tests.integration.helpers.mock_server import MockServer


@pytest.fixture
def mock_server():
    """Create and start a mock server."""
    server = MockServer(port=0)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def other_server():
    """A second mock server, e.g. the target of a redirect."""
    server = MockServer(port=0)
    server.start()
    yield server
    server.stop()
