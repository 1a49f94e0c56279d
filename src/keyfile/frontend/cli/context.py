"""Small helper to build the runtime settings for the CLI."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from keyfile.security.keystore import DEFAULT_SERVICE

_TRUE = ("1", "true", "yes", "on")


@dataclass
class CliContext:
    """Settings merged from command-line flags and the environment."""

    empty_ok: bool = False
    log_level: int = logging.WARNING
    env_passphrase: Optional[str] = None
    keyring_service: str = DEFAULT_SERVICE
    keyring_account: Optional[str] = None


def _parse_level(value: str) -> int:
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level {value!r}")
    return level


def build_context(
    empty_ok: bool = False,
    verbose: int = 0,
    keyring_account: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CliContext:
    """
    Combine CLI flags with environment variables.

    Environment:

    - ``KEYFILE_PASSPHRASE``: used instead of prompting, for scripted use.
    - ``KEYFILE_EMPTY_OK``: allow an empty passphrase, same as ``--empty-ok``.
    - ``KEYFILE_LOG_LEVEL``: logging level name; ``-v`` flags take precedence.
    - ``KEYFILE_KEYRING_SERVICE``: keyring service name (default "keyfile").
    """
    env = os.environ if environ is None else environ

    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    elif env.get("KEYFILE_LOG_LEVEL"):
        level = _parse_level(env["KEYFILE_LOG_LEVEL"])
    else:
        level = logging.WARNING

    return CliContext(
        empty_ok=empty_ok or env.get("KEYFILE_EMPTY_OK", "").lower() in _TRUE,
        log_level=level,
        env_passphrase=env.get("KEYFILE_PASSPHRASE"),
        keyring_service=env.get("KEYFILE_KEYRING_SERVICE") or DEFAULT_SERVICE,
        keyring_account=keyring_account,
    )
