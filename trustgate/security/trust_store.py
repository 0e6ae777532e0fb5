"""
Ephemeral trust stores.

Each verification attempt gets its own private directory that serves as
the signing program's home (keyring, trustdb, agent sockets). Nothing in
it outlives the attempt: the directory is removed when the context
exits, whether the attempt succeeded, failed or raised.
"""

from __future__ import annotations

import itertools
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from trustgate.constants import TRUST_STORE_PREFIX
from trustgate.utils.logging import get_logger

logger = get_logger("trust_store")

_serial = itertools.count(1)


@dataclass(frozen=True)
class TrustStore:
    """An isolated keyring owned by exactly one verification attempt."""

    home: Path
    label: str = ""

    @property
    def exists(self) -> bool:
        return self.home.is_dir()


@contextmanager
def ephemeral_trust_store(label: str = "", base_dir: Path | None = None) -> Iterator[TrustStore]:
    """
    Create a fresh trust store and remove it on exit.

    ``tempfile.mkdtemp`` creates the directory with mode 0700, so only
    this process can write to it.

    Raises:
        TrustStoreError: if the directory cannot be created.
    """
    prefix = f"{TRUST_STORE_PREFIX}{next(_serial)}-"
    try:
        home = Path(tempfile.mkdtemp(prefix=prefix, dir=base_dir))
    except OSError as e:
        raise TrustStoreError(f"cannot create trust store: {e}") from e

    store = TrustStore(home=home, label=label)
    logger.debug("trust_store_created", home=str(home), label=label)
    try:
        yield store
    finally:
        # gpg-agent may still be tearing down its sockets; retry once
        shutil.rmtree(home, ignore_errors=True)
        if home.exists():
            shutil.rmtree(home, ignore_errors=True)
        if home.exists():
            logger.warning("trust_store_not_removed", home=str(home), label=label)
        else:
            logger.debug("trust_store_removed", home=str(home), label=label)


class TrustStoreError(Exception):
    """Raised when an ephemeral trust store cannot be created."""
    pass
