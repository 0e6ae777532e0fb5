"""
Health checks for a TrustGate installation.

`trustgate doctor` answers "would the hook work in this repository?":
- git can open the repository
- the configured signing program is on PATH
- the key directory exists at HEAD
- the key directory holds at least one key blob
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from typing import Any

from trustgate.config import TrustGateConfig
from trustgate.git.object_store import GitError, GitObjectStore
from trustgate.utils.logging import get_logger

logger = get_logger("doctor")


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: str  # "pass", "warn", "fail", "skip"
    message: str
    details: str = ""


class TrustGateDoctor:
    """Runs the health checks against one repository."""

    def __init__(self, store: GitObjectStore, config: TrustGateConfig):
        self.store = store
        self.config = config
        self.results: list[CheckResult] = []

    def run_all_checks(self) -> list[CheckResult]:
        """Run all health checks and return results."""
        self.results.clear()

        repo_ok = self._check_repository()
        self._check_signing_program()
        if repo_ok:
            head = self._check_head()
            if head:
                if self._check_key_directory(head):
                    self._check_key_material(head)
        else:
            self._add("HEAD commit", "skip", "Repository not readable")

        return self.results

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the health check results."""
        total = len(self.results)
        passed = sum(1 for r in self.results if r.status == "pass")
        warned = sum(1 for r in self.results if r.status == "warn")
        failed = sum(1 for r in self.results if r.status == "fail")
        skipped = sum(1 for r in self.results if r.status == "skip")

        return {
            "healthy": failed == 0,
            "total": total,
            "passed": passed,
            "warned": warned,
            "failed": failed,
            "skipped": skipped,
        }

    def _add(self, name: str, status: str, message: str, details: str = "") -> None:
        self.results.append(CheckResult(name=name, status=status, message=message, details=details))

    def _check_repository(self) -> bool:
        if self.store.is_repository():
            self._add("Git repository", "pass", str(self.store.git_dir))
            return True
        self._add("Git repository", "fail", f"Not a git repository: {self.store.git_dir}")
        return False

    def _check_signing_program(self) -> None:
        program = self.config.gpg_program
        path = shutil.which(program)
        if path:
            self._add("Signing program", "pass", path)
        else:
            self._add(
                "Signing program",
                "fail",
                f"'{program}' not found on PATH",
                details="Install GnuPG or set hooks.verify.gpgprogram",
            )

    def _check_head(self) -> str | None:
        head = self.store.resolve("HEAD")
        if head is None:
            self._add("HEAD commit", "skip", "Repository has no commits yet")
            return None
        self._add("HEAD commit", "pass", head)
        return head

    def _check_key_directory(self, head: str) -> bool:
        keydir = self.config.keydir
        try:
            kind = self.store.entry_type(head, keydir)
        except GitError as e:
            self._add("Key directory", "fail", str(e))
            return False
        if kind == "tree":
            self._add("Key directory", "pass", f"'{keydir}' present at HEAD")
            return True
        self._add(
            "Key directory",
            "warn",
            f"'{keydir}' is not a directory at HEAD",
            details="Commits whose parents lack it cannot be verified",
        )
        return False

    def _check_key_material(self, head: str) -> None:
        try:
            blobs = self.store.list_blobs(head, self.config.keydir)
        except GitError as e:
            self._add("Key material", "fail", str(e))
            return
        if blobs:
            self._add("Key material", "pass", f"{len(blobs)} key file(s)")
        else:
            self._add("Key material", "warn", "Key directory is empty")
