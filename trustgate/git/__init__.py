"""Repository access for TrustGate."""

from trustgate.git.object_store import GitError, GitObjectStore, KeyBlob, ObjectStore

__all__ = ["GitError", "GitObjectStore", "KeyBlob", "ObjectStore"]
