"""TrustGate verification engine — extraction, key loading, verification and the parent walk."""

from trustgate.security.extractor import NoSignatureError, SignedPayload, extract_signature, signature_header_for
from trustgate.security.keyring import KeyMaterialLoader, NoKeyDirectoryError
from trustgate.security.orchestrator import (
    NoParentsError,
    PushRejected,
    RangeOrchestrator,
    UnsignedCommitError,
    UntrustedCommitError,
)
from trustgate.security.status import Verdict, interpret
from trustgate.security.trust_store import TrustStore, TrustStoreError, ephemeral_trust_store
from trustgate.security.verifier import GpgBackend, SignatureBackend, VerifierError
from trustgate.security.walker import ParentAttempt, ParentTrustWalker, WalkResult

__all__ = [
    "GpgBackend",
    "KeyMaterialLoader",
    "NoKeyDirectoryError",
    "NoParentsError",
    "NoSignatureError",
    "ParentAttempt",
    "ParentTrustWalker",
    "PushRejected",
    "RangeOrchestrator",
    "SignatureBackend",
    "SignedPayload",
    "TrustStore",
    "TrustStoreError",
    "UnsignedCommitError",
    "UntrustedCommitError",
    "Verdict",
    "VerifierError",
    "WalkResult",
    "ephemeral_trust_store",
    "extract_signature",
    "interpret",
    "signature_header_for",
]
