"""
Push verification, the entry point of the trust-chain engine.

For a ref update ``old -> new`` the orchestrator:

1. Computes the commits the push introduces (reachable from ``new`` and
   not from the exclusion set).
2. Verifies each of them, oldest first: the commit must have parents,
   must carry a signature, and some parent's key directory must verify
   that signature.
3. Stops at the first commit that fails. A push is accepted whole or
   rejected whole.

Exclusion set:
- ``new`` is the zero id: the ref is being deleted, nothing to check.
- ``old`` is the zero id: the ref is being created, so everything
  reachable from any other existing ref is already trusted.
- otherwise: everything reachable from ``old``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from trustgate.config import TrustGateConfig
from trustgate.constants import ZERO_OID
from trustgate.git.object_store import ObjectStore
from trustgate.security.extractor import NoSignatureError, extract_signature, signature_header_for
from trustgate.security.keyring import KeyMaterialLoader
from trustgate.security.status import Verdict
from trustgate.security.verifier import GpgBackend, SignatureBackend
from trustgate.security.walker import ParentAttempt, ParentTrustWalker, WalkResult
from trustgate.utils.logging import get_logger

logger = get_logger("orchestrator")


@dataclass
class PushReport:
    """Outcome of an accepted push."""

    ref_name: str
    old: str
    new: str
    deleted: bool = False
    commits: list[WalkResult] = field(default_factory=list)


class RangeOrchestrator:
    """Verifies every commit a ref update introduces."""

    def __init__(self, store: ObjectStore, walker: ParentTrustWalker):
        self.store = store
        self.walker = walker

    @classmethod
    def from_config(
        cls,
        config: TrustGateConfig,
        store: ObjectStore,
        backend: SignatureBackend | None = None,
        temp_dir: Path | None = None,
    ) -> RangeOrchestrator:
        """Wire the engine together from a configuration value."""
        backend = backend or GpgBackend(program=config.gpg_program)
        loader = KeyMaterialLoader(store, backend, config.keydir, temp_dir=temp_dir)
        return cls(store, ParentTrustWalker(loader, backend))

    def exclusion_set(self, ref_name: str, old: str, known_refs: dict[str, str]) -> list[str]:
        """Revisions whose history is already accepted."""
        if old == ZERO_OID:
            return sorted({oid for name, oid in known_refs.items() if name != ref_name})
        return [old]

    def commit_range(self, ref_name: str, old: str, new: str, known_refs: dict[str, str] | None = None) -> list[str]:
        """Commits introduced by ``old -> new``, parents before children."""
        if new == ZERO_OID:
            return []
        if known_refs is None:
            known_refs = self.store.list_refs() if old == ZERO_OID else {}
        return self.store.rev_list(new, self.exclusion_set(ref_name, old, known_refs))

    def verify_commit(self, commit: str) -> WalkResult:
        """
        Verify one commit against its parents' key directories.

        Raises:
            NoParentsError: ``commit`` is a root commit.
            UnsignedCommitError: ``commit`` is not signed.
            UntrustedCommitError: no parent's keys verify the signature.
        """
        parents = self.store.parents(commit)
        if not parents:
            raise NoParentsError(commit)

        try:
            signed = extract_signature(self.store.read_commit(commit), signature_header_for(commit))
        except NoSignatureError as e:
            raise UnsignedCommitError(commit) from e

        result = self.walker.walk(commit, parents, signed)
        if not result.accepted:
            raise UntrustedCommitError(commit, result.attempts)

        logger.info("commit_verified", commit=commit, trusted_parent=result.trusted_parent)
        return result

    def verify_push(self, ref_name: str, old: str, new: str) -> PushReport:
        """
        Verify a ref update, raising ``PushRejected`` on the first failure.
        """
        logger.info("push_received", ref=ref_name, old=old, new=new)
        report = PushReport(ref_name=ref_name, old=old, new=new)

        if new == ZERO_OID:
            report.deleted = True
            logger.info("ref_deleted", ref=ref_name)
            return report

        # Snapshot once; concurrent pushes must not change the exclusion set
        known_refs = self.store.list_refs() if old == ZERO_OID else {}
        commits = self.commit_range(ref_name, old, new, known_refs)
        logger.info("commit_range", ref=ref_name, count=len(commits))

        for commit in commits:
            report.commits.append(self.verify_commit(commit))

        logger.info("push_accepted", ref=ref_name, commits=len(report.commits))
        return report


class PushRejected(Exception):
    """Raised when a push contains a commit that cannot be trusted."""

    reason = "rejected"
    verdict = Verdict.UNVERIFIED

    def __init__(self, commit: str, message: str = ""):
        self.commit = commit
        super().__init__(message or f"{commit}: {self.reason}")


class NoParentsError(PushRejected):
    """A root commit has no ancestor whose keys could vouch for it."""

    reason = "root commit has no parent key directory to verify against"
    verdict = Verdict.NO_KEY_DIRECTORY


class UnsignedCommitError(PushRejected):
    """The commit carries no signature."""

    reason = "commit is not signed"
    verdict = Verdict.NO_SIGNATURE


class UntrustedCommitError(PushRejected):
    """No parent's key directory verified the commit's signature."""

    reason = "no parent's keys verify the signature"

    def __init__(self, commit: str, attempts: list[ParentAttempt]):
        self.attempts = attempts
        last = attempts[-1] if attempts else None
        detail = ""
        if last is not None:
            self.verdict = last.verdict
            detail = f" (last attempt: parent {last.parent}: {last.verdict.value})"
        super().__init__(commit, f"{commit}: {self.reason}{detail}")
