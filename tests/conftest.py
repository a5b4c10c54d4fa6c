"""
Pytest fixtures shared by the encryption tests.
"""

import pytest

from sops_helpers import FakeKeyWrapClient


@pytest.fixture
def key_wrap_client():
    """A recording key-wrap client that never leaves the process."""
    return FakeKeyWrapClient()


@pytest.fixture
def sample_document():
    """A document exercising every scalar type, nesting and sequences."""
    return {
        "database": {
            "host": "db.example.com",
            "password": "secret",
            "port": 5432,
            "replicas": ["r1.example.com", "r2.example.com"],
        },
        "api_key": "mykey",
        "debug_unencrypted": True,
        "ratio": 0.25,
        "owner_enc": "team-a",
        "servers": [{"name": "web", "password": "s1"}, {"name": "worker", "password": "s2"}],
        "notes": None,
        "empty": "",
    }
