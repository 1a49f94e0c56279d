"""Passphrase acquisition for the CLI: environment, OS keyring or prompt."""

from __future__ import annotations

import getpass

from keyfile.core.exceptions import PassphraseError
from keyfile.core.loader import PassphraseProvider
from keyfile.security.keystore import keyring_provider

from .context import CliContext


def prompt_passphrase(tag: str = "", confirm: bool = False, empty_ok: bool = False) -> str:
    """Read a passphrase from the terminal, optionally asking twice."""
    try:
        pp = getpass.getpass(f"{tag}Passphrase: ")
    except EOFError as e:
        raise PassphraseError("read passphrase: no input") from e
    if pp == "" and not empty_ok:
        raise PassphraseError("empty passphrase")

    if confirm:
        try:
            cf = getpass.getpass(f"Confirm {tag}passphrase: ")
        except EOFError as e:
            raise PassphraseError("read confirmation: no input") from e
        if cf != pp:
            raise PassphraseError("passphrases do not match")
    return pp


def passphrase_provider(
    ctx: CliContext, tag: str = "", confirm: bool = False, allow_stored: bool = True
) -> PassphraseProvider:
    """
    Pick where the passphrase comes from.

    ``KEYFILE_PASSPHRASE`` wins, then the keyring entry named by
    ``--keyring``, then an interactive prompt. With ``allow_stored=False`` only the
    prompt is used (the new passphrase of a rekey).
    """
    if allow_stored:
        if ctx.env_passphrase is not None:
            pp = ctx.env_passphrase
            if pp == "" and not ctx.empty_ok:
                def empty() -> str:
                    raise PassphraseError("empty passphrase")
                return empty
            return lambda: pp
        if ctx.keyring_account:
            return keyring_provider(ctx.keyring_service, ctx.keyring_account)

    return lambda: prompt_passphrase(tag, confirm=confirm, empty_ok=ctx.empty_ok)
