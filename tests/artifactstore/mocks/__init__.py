"""Mock implementations for testing."""

from tests.artifactstore.mocks.environment import MockEnvironment
from tests.artifactstore.mocks.store import MockStore

__all__ = [
    "MockEnvironment",
    "MockStore",
]
