"""
Signature extraction for raw commit objects.

A signed commit embeds its detached signature as a multi-line header:

    tree 3f2a...
    parent 91bc...
    author ...
    committer ...
    gpgsig -----BEGIN PGP SIGNATURE-----

     iQEzBAABCAAdFiEE...
     -----END PGP SIGNATURE-----

    Commit message

The signer hashed the object *without* that header. Extraction walks the
object line by line as a two-state automaton:

- PAYLOAD: lines are copied to the payload verbatim, including lines that
  start with a space (continuations of other headers such as ``mergetag``).
- IN_SIGNATURE: entered on a signature header line; each following line
  that starts with a single space is a signature continuation, with that
  one space removed. Any other line drops back to PAYLOAD.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from trustgate.constants import SIGNATURE_HEADER_BY_OID_LENGTH, SIGNATURE_HEADERS


class ExtractorState(str, Enum):
    PAYLOAD = "payload"
    IN_SIGNATURE = "in_signature"


@dataclass(frozen=True)
class SignedPayload:
    """The bytes a signer hashed, plus the signature they produced."""

    payload: bytes
    signature: bytes


def _signature_header(line: bytes, headers: tuple[bytes, ...]) -> bytes | None:
    for header in headers:
        if line.startswith(header):
            return line[len(header):]
    return None


def signature_header_for(commit_id: str) -> bytes | None:
    """The signature header git verifies for an object id of this hash."""
    return SIGNATURE_HEADER_BY_OID_LENGTH.get(len(commit_id))


def extract_signature(raw: bytes, header: bytes | None = None) -> SignedPayload:
    """
    Split a raw commit object into its signable payload and signature.

    Only one signature is taken. With ``header`` given, only that header
    is recognised; otherwise the first of ``SIGNATURE_HEADERS`` wins. Any
    other signature header (as written for SHA-1/SHA-256 interop) stays
    in the payload, since the signer hashed it.

    Raises:
        NoSignatureError: if the object carries no signature header.
    """
    headers = (header,) if header else SIGNATURE_HEADERS
    lines = raw.split(b"\n")
    # Whatever follows the final newline (usually nothing) is kept as-is
    complete, trailing = lines[:-1], lines[-1]

    state = ExtractorState.PAYLOAD
    in_headers = True
    found = False
    payload: list[bytes] = []
    signature: list[bytes] = []

    for line in complete:
        if state is ExtractorState.IN_SIGNATURE and line.startswith(b" "):
            signature.append(line[1:])
            continue

        first = _signature_header(line, headers) if in_headers and not found else None
        if first is not None:
            state = ExtractorState.IN_SIGNATURE
            found = True
            signature.append(first)
            continue

        state = ExtractorState.PAYLOAD
        if line == b"":
            # Headers end at the first empty line; the message follows
            in_headers = False
        payload.append(line + b"\n")

    if not found:
        raise NoSignatureError("commit object carries no signature")

    return SignedPayload(
        payload=b"".join(payload) + trailing,
        signature=b"\n".join(signature) + b"\n",
    )


def strip_signature(raw: bytes) -> bytes:
    """The signable payload of ``raw``; raises NoSignatureError if unsigned."""
    return extract_signature(raw).payload


class NoSignatureError(Exception):
    """Raised when a commit has no embedded signature."""
    pass
