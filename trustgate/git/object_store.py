"""
Object store adapter for TrustGate.

Read-only queries against a git repository, answered by the ``git``
command line. Every call passes ``--git-dir`` explicitly so the adapter
never depends on the process working directory.

The ``ObjectStore`` protocol is what the verification engine consumes;
``GitObjectStore`` is the production implementation.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from trustgate.constants import DEFAULT_GIT_PROGRAM
from trustgate.utils.logging import get_logger

logger = get_logger("object_store")

DEFAULT_TIMEOUT = 60  # seconds


@dataclass(frozen=True)
class KeyBlob:
    """A blob found under a key directory."""

    path: str
    oid: str


class ObjectStore(Protocol):
    """Queries the verification engine needs from the repository."""

    def read_commit(self, commit: str) -> bytes: ...

    def parents(self, commit: str) -> list[str]: ...

    def entry_type(self, commit: str, path: str) -> str | None: ...

    def list_blobs(self, commit: str, path: str) -> list[KeyBlob]: ...

    def read_blob(self, commit: str, path: str) -> bytes: ...

    def rev_list(self, include: str, exclude: list[str]) -> list[str]: ...

    def list_refs(self) -> dict[str, str]: ...

    def get_config(self, key: str) -> str | None: ...


class GitObjectStore:
    """ObjectStore backed by the ``git`` executable."""

    def __init__(
        self,
        git_dir: Path | str,
        git_program: str = DEFAULT_GIT_PROGRAM,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.git_dir = Path(git_dir)
        self.git_program = git_program
        self.timeout = timeout

    def _run(self, *args: str, stdin: bytes | None = None) -> subprocess.CompletedProcess:
        cmd = [self.git_program, f"--git-dir={self.git_dir}", *args]
        logger.debug("git_exec", args=" ".join(args)[:200])
        try:
            return subprocess.run(
                cmd,
                input=stdin,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise GitError(f"git program not found: {self.git_program}") from e
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git {args[0]} timed out after {self.timeout}s") from e

    def _check(self, *args: str, stdin: bytes | None = None) -> bytes:
        result = self._run(*args, stdin=stdin)
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", "replace").strip()
            raise GitError(f"git {' '.join(args)} failed (rc={result.returncode}): {stderr}")
        return result.stdout

    def is_repository(self) -> bool:
        """True if ``git_dir`` is a git repository git can open."""
        try:
            return self._run("rev-parse", "--git-dir").returncode == 0
        except GitError:
            return False

    def resolve(self, rev: str) -> str | None:
        """Resolve a revision name to a commit id, or None."""
        result = self._run("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}")
        if result.returncode != 0:
            return None
        return result.stdout.decode().strip()

    def read_commit(self, commit: str) -> bytes:
        """Raw serialized commit object, exactly as stored."""
        return self._check("cat-file", "commit", commit)

    def parents(self, commit: str) -> list[str]:
        """Parent ids of ``commit`` in the order git records them."""
        out = self._check("rev-list", "--parents", "-n", "1", commit).decode().split()
        return out[1:]

    def entry_type(self, commit: str, path: str) -> str | None:
        """Object type ("tree", "blob", "commit") of ``path`` in ``commit``."""
        out = self._check("ls-tree", "-z", "--full-tree", commit, "--", path.strip("/"))
        for record in out.split(b"\0"):
            if not record:
                continue
            meta, _, name = record.partition(b"\t")
            if name.decode("utf-8", "surrogateescape") == path.strip("/"):
                return meta.split()[1].decode()
        return None

    def list_blobs(self, commit: str, path: str) -> list[KeyBlob]:
        """Every blob below ``path`` in ``commit``, recursively, sorted by path."""
        out = self._check("ls-tree", "-r", "-z", "--full-tree", commit, "--", path.strip("/"))
        blobs = []
        for record in out.split(b"\0"):
            if not record:
                continue
            meta, _, name = record.partition(b"\t")
            _mode, kind, oid = meta.decode().split()
            # Submodule entries ("commit") have no content here
            if kind != "blob":
                continue
            blobs.append(KeyBlob(path=name.decode("utf-8", "surrogateescape"), oid=oid))
        return sorted(blobs, key=lambda b: b.path)

    def read_blob(self, commit: str, path: str) -> bytes:
        """Contents of the blob at ``path`` in ``commit``."""
        return self._check("cat-file", "blob", f"{commit}:{path}")

    def rev_list(self, include: str, exclude: list[str]) -> list[str]:
        """
        Commits reachable from ``include`` but from none of ``exclude``.

        Oldest first, parents before children. Revisions are fed on stdin
        so a repository with many refs cannot overflow the argument list.
        """
        revs = [include] + [f"^{rev}" for rev in exclude]
        stdin = ("\n".join(revs) + "\n").encode()
        out = self._check("rev-list", "--topo-order", "--reverse", "--stdin", stdin=stdin)
        return out.decode().split()

    def list_refs(self) -> dict[str, str]:
        """Map of every ref name to the object id it points at."""
        out = self._check("for-each-ref", "--format=%(objectname) %(refname)")
        refs = {}
        for line in out.decode("utf-8", "surrogateescape").splitlines():
            oid, _, name = line.partition(" ")
            if name:
                refs[name] = oid
        return refs

    def get_config(self, key: str) -> str | None:
        """Value of a git config key, or None when unset."""
        result = self._run("config", "--get", key)
        if result.returncode == 1:
            return None
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", "replace").strip()
            raise GitError(f"git config --get {key} failed (rc={result.returncode}): {stderr}")
        return result.stdout.decode().strip()


class GitError(Exception):
    """Raised when a git query cannot be answered."""
    pass
