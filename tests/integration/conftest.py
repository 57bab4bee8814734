"""Pytest configuration for integration tests.

Every integration test runs the real app with its coding-agent subprocess
and its completion provider replaced by scripted fakes.
"""

import pytest


@pytest.fixture(autouse=True)
def mock_backends(stub_backends):
    """Patch the backends before the app's lifespan creates them."""
    yield stub_backends
