"""Shared test fixtures for TrustGate."""

from __future__ import annotations

import hashlib
import shutil
import subprocess
from pathlib import Path

import pytest

from trustgate.config import TrustGateConfig
from trustgate.git.object_store import GitError, KeyBlob
from trustgate.security.orchestrator import RangeOrchestrator

BEGIN = "-----BEGIN FAKE SIGNATURE-----"
END = "-----END FAKE SIGNATURE-----"
SIGNER_NAME = "Fake Signer <signer@example.com>"


def _digest(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def fake_key(keyid: str, *flags: str) -> bytes:
    """Key material understood by FakeBackend."""
    return " ".join(["FAKEKEY", keyid, *flags]).encode() + b"\n"


def fake_signature(payload: bytes, keyid: str) -> bytes:
    return f"{BEGIN}\n{keyid}\n{_digest(payload)}\n{END}\n".encode()


class FakeRepository:
    """In-memory ObjectStore. Commits are ordered by creation, parents first."""

    def __init__(self):
        self.commits: dict[str, dict] = {}
        self.refs: dict[str, str] = {}
        self.config: dict[str, str] = {}
        self.read_log: list[str] = []
        self.rev_list_calls: list[tuple[str, list[str]]] = []
        self.list_refs_calls = 0
        self._clock = 1700000000

    key = staticmethod(fake_key)

    def add_commit(
        self,
        parents: tuple[str, ...] | list[str] = (),
        files: dict[str, bytes] | None = None,
        signer: str | None = None,
        message: str = "change",
        tamper: bool = False,
    ) -> str:
        """Create a commit; when ``files`` is None the first parent's tree is reused."""
        if files is None:
            files = dict(self.commits[parents[0]]["files"]) if parents else {}
        self._clock += 60

        tree = hashlib.sha1(repr(sorted(files.items())).encode()).hexdigest()
        headers = [f"tree {tree}"]
        headers += [f"parent {p}" for p in parents]
        headers += [
            f"author A U Thor <author@example.com> {self._clock} +0000",
            f"committer A U Thor <author@example.com> {self._clock} +0000",
        ]
        unsigned = ("\n".join(headers) + "\n\n" + message + "\n").encode()

        raw = unsigned
        if signer is not None:
            signed_over = unsigned + b"tampered" if tamper else unsigned
            sig_lines = fake_signature(signed_over, signer).decode().rstrip("\n").split("\n")
            gpgsig = "gpgsig " + "\n ".join(sig_lines)
            raw = ("\n".join(headers + [gpgsig]) + "\n\n" + message + "\n").encode()

        oid = hashlib.sha1(raw).hexdigest()
        self.commits[oid] = {
            "parents": list(parents),
            "files": dict(files),
            "raw": raw,
            "unsigned": unsigned,
        }
        return oid

    def _commit(self, commit: str) -> dict:
        try:
            return self.commits[commit]
        except KeyError:
            raise GitError(f"unknown commit {commit}") from None

    def read_commit(self, commit: str) -> bytes:
        self.read_log.append(commit)
        return self._commit(commit)["raw"]

    def parents(self, commit: str) -> list[str]:
        return list(self._commit(commit)["parents"])

    def entry_type(self, commit: str, path: str) -> str | None:
        files = self._commit(commit)["files"]
        if path in files:
            return "blob"
        if any(name.startswith(path + "/") for name in files):
            return "tree"
        return None

    def list_blobs(self, commit: str, path: str) -> list[KeyBlob]:
        files = self._commit(commit)["files"]
        return [
            KeyBlob(path=name, oid=hashlib.sha1(data).hexdigest())
            for name, data in sorted(files.items())
            if name.startswith(path + "/")
        ]

    def read_blob(self, commit: str, path: str) -> bytes:
        return self._commit(commit)["files"][path]

    def _reachable(self, start: str) -> set[str]:
        seen: set[str] = set()
        stack = [start]
        while stack:
            oid = stack.pop()
            if oid in seen:
                continue
            seen.add(oid)
            stack.extend(self._commit(oid)["parents"])
        return seen

    def rev_list(self, include: str, exclude: list[str]) -> list[str]:
        self.rev_list_calls.append((include, list(exclude)))
        wanted = self._reachable(include)
        for rev in exclude:
            wanted -= self._reachable(rev)
        return [oid for oid in self.commits if oid in wanted]

    def list_refs(self) -> dict[str, str]:
        self.list_refs_calls += 1
        return dict(self.refs)

    def get_config(self, key: str) -> str | None:
        return self.config.get(key)


class FakeBackend:
    """
    SignatureBackend that keeps keys as files inside the trust store.

    Verification only sees keys present in the store directory it is
    handed, so cross-store leakage would show up as a wrong verdict.
    """

    def __init__(self):
        self.imports: list[tuple[Path, bytes]] = []
        self.verifications: list[tuple[Path, list[str]]] = []

    def import_key(self, store, data: bytes) -> bool:
        self.imports.append((store.home, data))
        fields = data.split()
        if len(fields) < 2 or fields[0] != b"FAKEKEY":
            return False
        (store.home / f"{fields[1].decode()}.key").write_bytes(data)
        return True

    def verify(self, store, payload: bytes, signature: bytes) -> list[str]:
        present = sorted(p.name for p in store.home.glob("*.key"))
        self.verifications.append((store.home, present))

        lines = signature.decode().split("\n")
        if len(lines) < 4 or lines[0] != BEGIN or lines[3] != END:
            return ["[GNUPG:] NODATA 1"]
        keyid, digest = lines[1], lines[2]

        key_file = store.home / f"{keyid}.key"
        if not key_file.exists():
            return [
                "[GNUPG:] NEWSIG",
                f"[GNUPG:] ERRSIG {keyid} 1 8 00 1700000000 9 -",
                f"[GNUPG:] NO_PUBKEY {keyid}",
            ]
        flags = key_file.read_bytes().split()[2:]
        if digest != _digest(payload):
            return ["[GNUPG:] NEWSIG", f"[GNUPG:] BADSIG {keyid} {SIGNER_NAME}"]
        if b"revoked" in flags:
            return ["[GNUPG:] NEWSIG", f"[GNUPG:] REVKEYSIG {keyid} {SIGNER_NAME}"]
        if b"expired" in flags:
            return ["[GNUPG:] NEWSIG", f"[GNUPG:] EXPKEYSIG {keyid} {SIGNER_NAME}"]
        return [
            "gpg: Signature made Tue Nov 14 22:13:20 2023 UTC",
            "[GNUPG:] NEWSIG",
            f"[GNUPG:] GOODSIG {keyid} {SIGNER_NAME}",
            f"[GNUPG:] VALIDSIG {keyid} 2023-11-14 1700000000 0 4 0 1 8 00 {keyid}",
            "[GNUPG:] TRUST_UNDEFINED 0 pgp",
        ]


@pytest.fixture
def repo():
    return FakeRepository()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def config():
    return TrustGateConfig()


@pytest.fixture
def trust_dir(tmp_path):
    """Parent directory for ephemeral trust stores."""
    d = tmp_path / "keyrings"
    d.mkdir()
    return d


@pytest.fixture
def orchestrator(repo, backend, config, trust_dir):
    return RangeOrchestrator.from_config(config, repo, backend=backend, temp_dir=trust_dir)


@pytest.fixture
def root(repo):
    """A root commit that publishes alice's key."""
    return repo.add_commit(files={"keys/alice.asc": fake_key("alice")}, signer="alice", message="root")


# ──────────────────────── real git ────────────────────────


def _git(cwd: Path, *args: str) -> str:
    cmd = [
        "git",
        "-c", "user.name=Test User",
        "-c", "user.email=test@example.com",
        "-c", "commit.gpgsign=false",
        *args,
    ]
    return subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True).stdout.strip()


@pytest.fixture
def git_repo(tmp_path):
    """
    A small git repository:

        first  — adds keys/alice.asc and keys/team/bob.asc
        second — adds README, child of first
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    work = tmp_path / "work"
    work.mkdir()
    _git(work, "init", "-q")
    _git(work, "symbolic-ref", "HEAD", "refs/heads/main")

    (work / "keys" / "team").mkdir(parents=True)
    (work / "keys" / "alice.asc").write_bytes(fake_key("alice"))
    (work / "keys" / "team" / "bob.asc").write_bytes(fake_key("bob"))
    _git(work, "add", "keys")
    _git(work, "commit", "-q", "-m", "Add keys")
    first = _git(work, "rev-parse", "HEAD")

    (work / "README").write_text("hello\n")
    _git(work, "add", "README")
    _git(work, "commit", "-q", "-m", "Add README")
    second = _git(work, "rev-parse", "HEAD")

    return {"work": work, "git_dir": work / ".git", "first": first, "second": second}
