# SPDX-License-Identifier: MIT
"""Content stores persisting the allocation tree.

Exports:
    ContentStore: Interface implemented by every backend.
    LocalContentStore: Filesystem-backed store.
    GitHubContentStore: Store committing to a GitHub branch.
    build_store: Create a store from a tagged backend configuration.
    StorageError: Backend read or write failure.
    ConflictError: Compare-and-swap write rejected.
"""

from .base import ConflictError, ContentStore, StorageError, StoredObject, join_location
from .factory import build_store
from .github import GitHubContentStore
from .local import LocalContentStore

__all__ = [
    "ConflictError",
    "ContentStore",
    "GitHubContentStore",
    "LocalContentStore",
    "StorageError",
    "StoredObject",
    "build_store",
    "join_location",
]
