"""Security helpers: KDF, the keyfile container and keystore access.

This package provides:
- scrypt-based passphrase key derivation
- the single-secret AES-GCM keyfile container and its binary packet format
- optional passphrase storage in the OS keyring
"""

from .kdf import generate_salt, derive_key
from .crypto import Keyfile, Packet, MAGIC
from .keystore import (
    save_passphrase,
    load_passphrase,
    delete_passphrase,
    keyring_provider,
)

__all__ = [
    "generate_salt",
    "derive_key",
    "Keyfile",
    "Packet",
    "MAGIC",
    "save_passphrase",
    "load_passphrase",
    "delete_passphrase",
    "keyring_provider",
]
