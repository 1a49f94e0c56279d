"""Passphrase key derivation for keyfiles (scrypt)."""
import os
from typing import Dict

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

# Fixed by the wire format; changing any of these needs a new magic tag.
SCRYPT_N = 32768
SCRYPT_R = 8
SCRYPT_P = 1
KEY_BYTES = 32  # AES-256
SALT_BYTES = 16


def generate_salt(length: int = SALT_BYTES) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def derive_key(
    passphrase: str | bytes,
    salt: bytes,
    n: int = SCRYPT_N,
    r: int = SCRYPT_R,
    p: int = SCRYPT_P,
    key_len: int = KEY_BYTES,
) -> bytes:
    """
    Derive a symmetric key from a passphrase using scrypt.
    Returns raw derived key bytes. The same (passphrase, salt) always
    yields the same key.
    """
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")

    kdf = Scrypt(salt=salt, length=key_len, n=n, r=r, p=p)
    return kdf.derive(passphrase)


def kdf_params_to_dict(salt: bytes, n: int = SCRYPT_N, r: int = SCRYPT_R, p: int = SCRYPT_P) -> Dict:
    return {
        "algo": "scrypt",
        "salt": salt.hex(),
        "n": n,
        "r": r,
        "p": p,
    }
