"""Configuration for TrustGate — pydantic-settings + git config."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings

from trustgate.constants import (
    CONFIG_KEY_GPG_PROGRAM,
    CONFIG_KEY_GPG_PROGRAM_FALLBACK,
    CONFIG_KEY_KEYDIR,
    DEFAULT_GIT_PROGRAM,
    DEFAULT_GPG_PROGRAM,
    DEFAULT_KEYDIR,
)

if TYPE_CHECKING:
    from trustgate.git.object_store import ObjectStore


class TrustGateConfig(BaseSettings):
    """Settings threaded through every component. Env vars use TRUSTGATE_*."""

    keydir: str = DEFAULT_KEYDIR
    gpg_program: str = DEFAULT_GPG_PROGRAM
    git_program: str = DEFAULT_GIT_PROGRAM
    log_level: str = "INFO"
    log_format: str = "console"

    model_config = {"env_prefix": "TRUSTGATE_", "frozen": True}

    @field_validator("keydir")
    @classmethod
    def validate_keydir(cls, v: str) -> str:
        v = v.strip().strip("/")
        if not v:
            raise ValueError("keydir must name a directory inside the repository")
        if any(part in ("", ".", "..") for part in v.split("/")):
            raise ValueError(f"keydir must not contain empty, '.' or '..' components: '{v}'")
        return v

    @field_validator("gpg_program", "git_program")
    @classmethod
    def validate_program(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("program name must not be empty")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v


def read_git_config(store: ObjectStore) -> dict[str, Any]:
    """Settings present in the repository's git config."""
    values: dict[str, Any] = {}

    keydir = store.get_config(CONFIG_KEY_KEYDIR)
    if keydir:
        values["keydir"] = keydir

    gpg_program = store.get_config(CONFIG_KEY_GPG_PROGRAM) or store.get_config(
        CONFIG_KEY_GPG_PROGRAM_FALLBACK
    )
    if gpg_program:
        values["gpg_program"] = gpg_program

    return values


def load_config(store: ObjectStore | None = None, **overrides: Any) -> TrustGateConfig:
    """
    Load configuration.

    Priority (highest to lowest):
    1. Explicit overrides (CLI options)
    2. git config (hooks.verify.keydir, hooks.verify.gpgprogram, gpg.program)
    3. Environment variables (TRUSTGATE_*)
    4. Defaults
    """
    merged: dict[str, Any] = {}
    if store is not None:
        merged.update(read_git_config(store))
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return TrustGateConfig(**merged)
