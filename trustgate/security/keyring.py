"""
Key material loading.

The trusted keys for a commit are whatever blobs sit under the key
directory of one of its parents. Loading them means: confirm the
directory exists in that parent's tree, create a fresh trust store, and
import every blob below the directory. A blob that does not import is
reported and skipped; the remaining keys still count.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from trustgate.git.object_store import ObjectStore
from trustgate.security.trust_store import TrustStore, ephemeral_trust_store
from trustgate.security.verifier import SignatureBackend
from trustgate.utils.logging import get_logger

logger = get_logger("keyring")


@dataclass
class LoadedKeyring:
    """A trust store populated from one key directory snapshot."""

    store: TrustStore
    commit: str
    keydir: str
    imported: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)


class KeyMaterialLoader:
    """Builds per-attempt trust stores from ``<commit>:<keydir>``."""

    def __init__(
        self,
        store: ObjectStore,
        backend: SignatureBackend,
        keydir: str,
        temp_dir: Path | None = None,
    ):
        self.store = store
        self.backend = backend
        self.keydir = keydir
        self.temp_dir = temp_dir

    def has_key_directory(self, commit: str) -> bool:
        return self.store.entry_type(commit, self.keydir) == "tree"

    @contextmanager
    def load(self, commit: str) -> Iterator[LoadedKeyring]:
        """
        Yield a trust store holding the keys recorded in ``commit``.

        Raises:
            NoKeyDirectoryError: if the key directory is not a tree in ``commit``.
            TrustStoreError: if the trust store cannot be created.
        """
        if not self.has_key_directory(commit):
            raise NoKeyDirectoryError(f"no '{self.keydir}' directory in {commit}")

        blobs = self.store.list_blobs(commit, self.keydir)
        with ephemeral_trust_store(label=commit, base_dir=self.temp_dir) as trust_store:
            keyring = LoadedKeyring(store=trust_store, commit=commit, keydir=self.keydir)
            for blob in blobs:
                data = self.store.read_blob(commit, blob.path)
                if self.backend.import_key(trust_store, data):
                    keyring.imported.append(blob.path)
                else:
                    keyring.rejected.append(blob.path)
                    logger.warning("key_import_failed", commit=commit, path=blob.path)

            logger.info(
                "keys_loaded",
                commit=commit,
                keydir=self.keydir,
                imported=len(keyring.imported),
                rejected=len(keyring.rejected),
            )
            yield keyring


class NoKeyDirectoryError(Exception):
    """Raised when a commit has no key directory."""
    pass
