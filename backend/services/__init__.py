"""Backing logic: content store implementations and filter evaluation."""

from .filter_eval import apply_sort, matches, query
from .firestore_store import FirestoreContentStore
from .memory_store import InMemoryContentStore

__all__ = [
    "FirestoreContentStore",
    "InMemoryContentStore",
    "apply_sort",
    "matches",
    "query",
]
