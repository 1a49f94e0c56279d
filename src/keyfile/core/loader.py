"""
Keyfile load / save helpers

Thin file glue around :class:`keyfile.security.crypto.Keyfile`:
> load_key reads, parses and decrypts a stored keyfile, reporting which stage failed
> save_keyfile replaces a keyfile on disk atomically (temp file in the same directory + rename)
> rekey / write_secret / write_random always build a brand-new container, so each gets a fresh salt

Passphrases come from a zero-argument callable so prompting, confirmation and
keyring lookups stay with the caller.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable

from keyfile.core.exceptions import KeyfileError, LoadKeyError
from keyfile.security.crypto import Keyfile

logger = logging.getLogger(__name__)

PassphraseProvider = Callable[[], str]


def load_key(path: str | Path, get_passphrase: PassphraseProvider) -> bytes:
    """
    Return the secret stored in the keyfile at ``path``.

    The provider is called exactly once, after the file has been read and
    parsed. Any failure is raised as :class:`LoadKeyError` whose ``stage`` is
    one of "read", "parse", "passphrase" or "decrypt".
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise LoadKeyError("read", path, e) from e

    try:
        kf = Keyfile.parse(data)
    except KeyfileError as e:
        raise LoadKeyError("parse", path, e) from e

    try:
        passphrase = get_passphrase()
    except Exception as e:
        raise LoadKeyError("passphrase", path, e) from e

    try:
        key = kf.get(passphrase)
    except KeyfileError as e:
        raise LoadKeyError("decrypt", path, e) from e

    logger.debug("loaded %d-byte key from %s", len(key), path)
    return key


def save_keyfile(path: str | Path, kf: Keyfile, mode: int = 0o600) -> None:
    """Write ``kf`` to ``path``, replacing any existing file atomically."""
    path = Path(path)
    data = kf.encode()

    # temp file must live on the same filesystem for os.replace to be atomic
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.info("wrote keyfile %s (%d bytes)", path, len(data))


def write_secret(path: str | Path, get_passphrase: PassphraseProvider, secret: bytes) -> None:
    """Store ``secret`` in a new keyfile at ``path``."""
    kf = Keyfile()
    kf.set(get_passphrase(), secret)
    try:
        save_keyfile(path, kf)
    finally:
        kf.clear()


def write_random(path: str | Path, get_passphrase: PassphraseProvider, n: int) -> None:
    """Store ``n`` random bytes in a new keyfile at ``path``."""
    kf = Keyfile()
    kf.random(get_passphrase(), n)
    try:
        save_keyfile(path, kf)
    finally:
        kf.clear()


def rekey(
    path: str | Path,
    old_passphrase: PassphraseProvider,
    new_passphrase: PassphraseProvider,
) -> None:
    """
    Re-encrypt the keyfile at ``path`` under a new passphrase.

    The secret is moved into a brand-new container, so the file gets a new
    salt as well as a new nonce.
    """
    key = load_key(path, old_passphrase)
    write_secret(path, new_passphrase, key)
    logger.info("rekeyed %s", path)
