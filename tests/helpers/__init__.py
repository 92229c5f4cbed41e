"""Test helper utilities."""

from .mock_gcp import (
    InMemoryObjectStore,
    MockBlobIterator,
    create_mock_blob,
)

__all__ = [
    "InMemoryObjectStore",
    "MockBlobIterator",
    "create_mock_blob",
]
