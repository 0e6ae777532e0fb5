"""
CLI commands for TrustGate — Click-based interface.

Commands:
    trustgate hook REF OLD NEW     — Verify a ref update (git update hook)
    trustgate verify-commit REV    — Verify a single commit against its parents
    trustgate doctor               — Check that the hook can run here

``trustgate-update-hook`` is the ``hook`` command on its own, for
installing as ``hooks/update``. Every command writes to stderr only:
stdout belongs to git's protocol while a hook runs.

Exit codes: 0 accepted, 1 rejected (including usage errors).
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from trustgate.config import load_config
from trustgate.constants import PROJECT_DISPLAY_NAME, PROJECT_NAME, PROJECT_VERSION
from trustgate.git.object_store import GitError, GitObjectStore
from trustgate.security.orchestrator import PushRejected, RangeOrchestrator, UntrustedCommitError
from trustgate.security.trust_store import TrustStoreError
from trustgate.security.verifier import SignatureBackend, VerifierError
from trustgate.utils.logging import get_logger, setup_logging

console = Console(stderr=True)
logger = get_logger("cli")

# Failures that stop verification before a verdict is reached
FATAL_ERRORS = (GitError, TrustStoreError, VerifierError)


def git_dir_option(f):
    return click.option(
        "--git-dir",
        envvar="GIT_DIR",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Repository to inspect (defaults to $GIT_DIR, which git sets for hooks)",
    )(f)


def keydir_option(f):
    return click.option(
        "--keydir",
        default=None,
        help="Key directory inside the repository (overrides hooks.verify.keydir)",
    )(f)


def json_logs_option(f):
    return click.option("--json-logs", is_flag=True, default=False, help="Emit JSON log lines")(f)


def _open_repository(git_dir: Path | None, keydir: str | None, json_logs: bool):
    """Build the object store and configuration, or exit 1."""
    if git_dir is None:
        console.print("[bold red]ERROR:[/] GIT_DIR is not set; run this from a git hook or pass --git-dir.")
        sys.exit(1)

    # Reading git config already logs; keep it off stdout until the real level is known
    setup_logging(json_format=json_logs, cache_loggers=False)

    store = GitObjectStore(git_dir)
    try:
        config = load_config(store, keydir=keydir, log_format="json" if json_logs else None)
    except (GitError, ValueError) as e:
        console.print(f"[bold red]ERROR:[/] invalid configuration: {e}")
        sys.exit(1)

    store.git_program = config.git_program
    setup_logging(level=config.log_level, json_format=config.log_format == "json")
    return store, config


def _print_attempts(error: UntrustedCommitError) -> None:
    table = Table(title=f"Parents tried for {error.commit[:12]}")
    table.add_column("Parent", style="cyan")
    table.add_column("Verdict")
    table.add_column("Keys", justify="right")
    table.add_column("Missing key", style="dim")
    for attempt in error.attempts:
        table.add_row(
            attempt.parent[:12],
            attempt.verdict.value,
            str(attempt.imported),
            attempt.missing_key_id or "",
        )
    console.print(table)


def _report_rejection(error: PushRejected) -> None:
    console.print(f"[bold red]REJECTED:[/] commit {error.commit} could not be verified: {error.reason}")
    if isinstance(error, UntrustedCommitError):
        _print_attempts(error)


def run_hook(
    git_dir: Path | None,
    ref_name: str,
    old_value: str,
    new_value: str,
    keydir: str | None = None,
    json_logs: bool = False,
    backend: SignatureBackend | None = None,
) -> int:
    """Verify one ref update and return the process exit code."""
    store, config = _open_repository(git_dir, keydir, json_logs)
    orchestrator = RangeOrchestrator.from_config(config, store, backend=backend)

    try:
        report = orchestrator.verify_push(ref_name, old_value, new_value)
    except PushRejected as e:
        logger.error("push_rejected", ref=ref_name, commit=e.commit, verdict=e.verdict.value)
        _report_rejection(e)
        return 1
    except FATAL_ERRORS as e:
        logger.error("verification_aborted", ref=ref_name, error=str(e))
        console.print(f"[bold red]ERROR:[/] {e}")
        return 1

    if report.deleted:
        console.print(f"[green]{ref_name}:[/] deletion, nothing to verify")
    else:
        console.print(f"[green]{ref_name}:[/] {len(report.commits)} commit(s) verified")
    return 0


@click.group()
@click.version_option(PROJECT_VERSION, prog_name=PROJECT_DISPLAY_NAME)
def cli() -> None:
    """TrustGate — accept only commits signed by keys the repository trusts."""
    pass


# ──────────────────────── trustgate hook ────────────────────────


@click.command(name="hook")
@git_dir_option
@keydir_option
@json_logs_option
@click.argument("ref_name")
@click.argument("old_value")
@click.argument("new_value")
def hook(
    git_dir: Path | None,
    keydir: str | None,
    json_logs: bool,
    ref_name: str,
    old_value: str,
    new_value: str,
) -> None:
    """Verify every commit a ref update introduces."""
    sys.exit(run_hook(git_dir, ref_name, old_value, new_value, keydir=keydir, json_logs=json_logs))


cli.add_command(hook)


# ──────────────────────── trustgate verify-commit ────────────────────────


@cli.command(name="verify-commit")
@git_dir_option
@keydir_option
@json_logs_option
@click.argument("revision")
def verify_commit(git_dir: Path | None, keydir: str | None, json_logs: bool, revision: str) -> None:
    """Verify a single commit against its parents' keys."""
    store, config = _open_repository(git_dir, keydir, json_logs)

    commit = store.resolve(revision)
    if commit is None:
        console.print(f"[bold red]ERROR:[/] unknown revision '{revision}'")
        sys.exit(1)

    orchestrator = RangeOrchestrator.from_config(config, store)
    try:
        result = orchestrator.verify_commit(commit)
    except PushRejected as e:
        _report_rejection(e)
        sys.exit(1)
    except FATAL_ERRORS as e:
        console.print(f"[bold red]ERROR:[/] {e}")
        sys.exit(1)

    console.print(f"[green]VERIFIED:[/] {commit} (trusted via parent {result.trusted_parent})")


# ──────────────────────── trustgate doctor ────────────────────────


@cli.command()
@git_dir_option
@keydir_option
@click.option("--json", "json_output", is_flag=True, default=False, help="Output as JSON")
def doctor(git_dir: Path | None, keydir: str | None, json_output: bool) -> None:
    """Check that the hook can run in this repository."""
    from trustgate.cli.doctor import TrustGateDoctor

    store, config = _open_repository(git_dir, keydir, json_logs=False)
    doc = TrustGateDoctor(store, config)
    doc.run_all_checks()
    summary = doc.get_summary()

    if json_output:
        output = {
            "summary": summary,
            "results": [
                {"name": r.name, "status": r.status, "message": r.message, "details": r.details}
                for r in doc.results
            ],
        }
        console.print_json(json.dumps(output))
    else:
        table = Table(title=f"{PROJECT_DISPLAY_NAME} Doctor")
        table.add_column("Check", style="cyan")
        table.add_column("Result")
        table.add_column("Details", style="dim")

        status_styles = {
            "pass": "[green]PASS[/]",
            "warn": "[yellow]WARN[/]",
            "fail": "[red]FAIL[/]",
            "skip": "[dim]SKIP[/]",
        }

        for r in doc.results:
            detail = r.message
            if r.details:
                detail += f" | {r.details}"
            table.add_row(r.name, status_styles.get(r.status, r.status), detail)

        console.print(table)

    sys.exit(0 if summary["healthy"] else 1)


# ──────────────────────── entry points ────────────────────────


def _run(command: click.Command, prog_name: str) -> None:
    try:
        code = command.main(prog_name=prog_name, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        console.print("Aborted.")
        sys.exit(1)
    sys.exit(code or 0)


def main() -> None:
    """Entry point for ``trustgate``."""
    _run(cli, PROJECT_NAME)


def update_hook_main() -> None:
    """Entry point for ``trustgate-update-hook`` (install as hooks/update)."""
    _run(hook, f"{PROJECT_NAME}-update-hook")
