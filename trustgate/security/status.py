"""
Classification of the signing program's machine-readable status stream.

``gpg --status-fd`` emits one ``[GNUPG:] KEYWORD args...`` line per event.
The stream is folded through ``transition`` one event at a time:

- GOODSIG moves the running verdict to VERIFIED but does not end the run.
- EXPSIG, EXPKEYSIG, REVKEYSIG, BADSIG and ERRSIG are terminal: the
  first of them fixes the verdict and the rest of the stream is ignored.
- Anything else leaves the state untouched.

A stream that ends without a terminal event is VERIFIED only if the
running verdict is VERIFIED; otherwise it is UNVERIFIED.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum

from trustgate.constants import ERRSIG_NO_PUBLIC_KEY, STATUS_PREFIX


class Verdict(str, Enum):
    """Outcome of one verification attempt."""
    VERIFIED = "verified"
    NO_SIGNATURE = "no_signature"
    NO_KEY_DIRECTORY = "no_key_directory"
    EXPIRED_SIGNATURE = "expired_signature"
    EXPIRED_KEY_SIGNATURE = "expired_key_signature"
    REVOKED_KEY_SIGNATURE = "revoked_key_signature"
    BAD_SIGNATURE = "bad_signature"
    SIGNATURE_ERROR = "signature_error"
    UNVERIFIED = "unverified"


# Status keywords that settle the verdict immediately
TERMINAL_EVENTS: dict[str, Verdict] = {
    "EXPSIG": Verdict.EXPIRED_SIGNATURE,
    "EXPKEYSIG": Verdict.EXPIRED_KEY_SIGNATURE,
    "REVKEYSIG": Verdict.REVOKED_KEY_SIGNATURE,
    "BADSIG": Verdict.BAD_SIGNATURE,
    "ERRSIG": Verdict.SIGNATURE_ERROR,
}


@dataclass(frozen=True)
class StatusEvent:
    """One parsed status line."""
    keyword: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class InterpreterState:
    verdict: Verdict = Verdict.UNVERIFIED
    done: bool = False
    missing_key_id: str | None = None


@dataclass(frozen=True)
class Interpretation:
    """Final classification of a status stream."""
    verdict: Verdict
    missing_key_id: str | None = None


def parse_status_line(line: str) -> StatusEvent | None:
    """Parse one line; None if it is not a status event."""
    if not line.startswith(STATUS_PREFIX):
        return None
    fields = line[len(STATUS_PREFIX):].split()
    if not fields:
        return None
    return StatusEvent(keyword=fields[0], args=tuple(fields[1:]))


def transition(state: InterpreterState, event: StatusEvent) -> InterpreterState:
    """Apply one event to the running state."""
    if state.done:
        return state

    if event.keyword == "GOODSIG":
        return replace(state, verdict=Verdict.VERIFIED)

    terminal = TERMINAL_EVENTS.get(event.keyword)
    if terminal is None:
        return state

    missing = None
    # ERRSIG <keyid> <pkalgo> <hashalgo> <sig_class> <time> <rc> [<fpr>]
    if terminal is Verdict.SIGNATURE_ERROR and len(event.args) >= 6:
        if event.args[5] == ERRSIG_NO_PUBLIC_KEY:
            missing = event.args[0]
    return InterpreterState(verdict=terminal, done=True, missing_key_id=missing)


def finish(state: InterpreterState) -> Interpretation:
    """Close the stream and produce the final verdict."""
    if state.done:
        return Interpretation(state.verdict, state.missing_key_id)
    if state.verdict is Verdict.VERIFIED:
        return Interpretation(Verdict.VERIFIED)
    return Interpretation(Verdict.UNVERIFIED)


def interpret(lines: Iterable[str]) -> Interpretation:
    """Classify a whole status stream."""
    state = InterpreterState()
    for line in lines:
        event = parse_status_line(line.rstrip("\r\n"))
        if event is None:
            continue
        state = transition(state, event)
        if state.done:
            break
    return finish(state)
