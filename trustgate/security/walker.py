"""
Parent trust walker.

A commit is trusted if its signature verifies against the key directory
of *any* of its parents. Parents are tried in the order git records
them and the first VERIFIED attempt wins. This lets a merge be accepted
through whichever side already carries the signer's key, and lets key
rotation land in one commit and be used by the next.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from trustgate.security.extractor import SignedPayload
from trustgate.security.keyring import KeyMaterialLoader, NoKeyDirectoryError
from trustgate.security.status import Verdict, interpret
from trustgate.security.verifier import SignatureBackend
from trustgate.utils.logging import get_logger

logger = get_logger("walker")


@dataclass
class ParentAttempt:
    """One try at verifying a commit against one parent's keys."""

    parent: str
    verdict: Verdict
    imported: int = 0
    rejected: int = 0
    missing_key_id: str | None = None


@dataclass
class WalkResult:
    """Every attempt made for one commit, and which parent (if any) vouched for it."""

    commit: str
    attempts: list[ParentAttempt] = field(default_factory=list)
    trusted_parent: str | None = None

    @property
    def accepted(self) -> bool:
        return self.trusted_parent is not None

    @property
    def last_attempt(self) -> ParentAttempt | None:
        return self.attempts[-1] if self.attempts else None


class ParentTrustWalker:
    """Tries each parent's key set until one verifies the commit."""

    def __init__(self, loader: KeyMaterialLoader, backend: SignatureBackend):
        self.loader = loader
        self.backend = backend

    def attempt(self, commit: str, parent: str, signed: SignedPayload) -> ParentAttempt:
        """Verify ``signed`` using only the keys recorded in ``parent``."""
        try:
            with self.loader.load(parent) as keyring:
                lines = self.backend.verify(keyring.store, signed.payload, signed.signature)
                result = interpret(lines)
                return ParentAttempt(
                    parent=parent,
                    verdict=result.verdict,
                    imported=len(keyring.imported),
                    rejected=len(keyring.rejected),
                    missing_key_id=result.missing_key_id,
                )
        except NoKeyDirectoryError:
            return ParentAttempt(parent=parent, verdict=Verdict.NO_KEY_DIRECTORY)

    def walk(self, commit: str, parents: list[str], signed: SignedPayload) -> WalkResult:
        result = WalkResult(commit=commit)
        for parent in parents:
            logger.info("parent_attempt", commit=commit, parent=parent)
            attempt = self.attempt(commit, parent, signed)
            result.attempts.append(attempt)
            logger.info(
                "parent_result",
                commit=commit,
                parent=parent,
                verdict=attempt.verdict.value,
                keys=attempt.imported,
                missing_key=attempt.missing_key_id,
            )
            if attempt.verdict is Verdict.VERIFIED:
                result.trusted_parent = parent
                break
        return result
