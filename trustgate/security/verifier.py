"""
Signature verification backends.

The verification engine talks to the cryptographic primitive through the
``SignatureBackend`` protocol, which has exactly two operations: import
key material into a trust store, and verify a detached signature using
only the keys in that store. ``GpgBackend`` implements it by running
GnuPG (or a compatible program) with the trust store as its home
directory and status output on stdout.
"""

from __future__ import annotations

import subprocess
import tempfile
from typing import Protocol

from trustgate.constants import DEFAULT_GPG_PROGRAM, STATUS_PREFIX
from trustgate.security.trust_store import TrustStore
from trustgate.utils.logging import get_logger

logger = get_logger("verifier")

DEFAULT_TIMEOUT = 30  # seconds
SIGNATURE_PREFIX = "trustgate-sig-"


class SignatureBackend(Protocol):
    """Capability interface over the signing program."""

    def import_key(self, store: TrustStore, data: bytes) -> bool: ...

    def verify(self, store: TrustStore, payload: bytes, signature: bytes) -> list[str]: ...


class GpgBackend:
    """SignatureBackend that shells out to ``gpg``."""

    def __init__(self, program: str = DEFAULT_GPG_PROGRAM, timeout: int = DEFAULT_TIMEOUT):
        self.program = program
        self.timeout = timeout

    def base_command(self, store: TrustStore) -> list[str]:
        """Arguments shared by every invocation against ``store``."""
        return [
            self.program,
            "--homedir", str(store.home),
            "--batch",
            "--no-tty",
            # Trust means "present in this store", not a web-of-trust score
            "--trust-model", "always",
            "--status-fd", "1",
        ]

    def _run(self, cmd: list[str], stdin: bytes) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                cmd,
                input=stdin,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise VerifierError(f"signing program not found: {self.program}") from e
        except subprocess.TimeoutExpired as e:
            raise VerifierError(f"{self.program} timed out after {self.timeout}s") from e

    def import_key(self, store: TrustStore, data: bytes) -> bool:
        """
        Import one key file; False if none of its keys reached the store.

        A file may hold several keys. gpg exits non-zero when any one of
        them fails, so the status stream decides, not the exit code.
        """
        result = self._run(self.base_command(store) + ["--import"], data)
        status = result.stdout.decode("utf-8", "replace").splitlines()
        imported = any(line.startswith(f"{STATUS_PREFIX}IMPORT_OK") for line in status)
        imported = imported or _import_result_count(status) > 0
        if result.returncode != 0 or not imported:
            logger.debug(
                "gpg_import_incomplete" if imported else "gpg_import_rejected",
                rc=result.returncode,
                stderr=result.stderr.decode("utf-8", "replace").strip()[:500],
            )
        return imported

    def verify(self, store: TrustStore, payload: bytes, signature: bytes) -> list[str]:
        """
        Verify ``signature`` over ``payload`` and return the status lines.

        A non-zero exit code is expected for a bad signature and is left
        for the status stream to explain.
        """
        with tempfile.NamedTemporaryFile(prefix=SIGNATURE_PREFIX, suffix=".asc") as sig_file:
            sig_file.write(signature)
            sig_file.flush()
            cmd = self.base_command(store) + ["--verify", sig_file.name, "-"]
            result = self._run(cmd, payload)
        logger.debug(
            "gpg_verify",
            rc=result.returncode,
            stderr=result.stderr.decode("utf-8", "replace").strip()[:500],
        )
        return result.stdout.decode("utf-8", "replace").splitlines()


def _import_result_count(status: list[str]) -> int:
    """Keys imported or already present, from ``IMPORT_RES``; 0 if absent."""
    for line in status:
        if line.startswith(f"{STATUS_PREFIX}IMPORT_RES "):
            fields = line[len(STATUS_PREFIX):].split()[1:]
            # <count> <no_user_id> <imported> <imported_rsa> <unchanged> ...
            try:
                return int(fields[2]) + int(fields[4])
            except (IndexError, ValueError):
                return 0
    return 0


class VerifierError(Exception):
    """Raised when the signing program cannot be run."""
    pass
