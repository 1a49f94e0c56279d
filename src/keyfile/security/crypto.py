"""Passphrase-protected single-secret container with a compact binary layout.

Packet layout (binary, big-endian):
- 3 bytes: magic b'KF\\x02'
- 1 byte: salt length (S)
- 1 byte: nonce length (N)
- S bytes: scrypt salt
- N bytes: AES-GCM nonce
- remainder: AES-256-GCM ciphertext with the 16-byte tag appended

The storage key is derived from the passphrase with scrypt (see
:mod:`keyfile.security.kdf`) and never stored. A wrong passphrase shows up as
an authentication failure when the ciphertext is opened.
"""
from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from keyfile.core.exceptions import (
    BadPassphraseError,
    InvalidSizeError,
    MalformedPacketError,
    NoKeyError,
)
from .kdf import SALT_BYTES, derive_key, generate_salt

logger = logging.getLogger(__name__)

MAGIC = b"KF\x02"
NONCE_BYTES = 12
HEADER = struct.Struct(">3sBB")


@dataclass(frozen=True)
class Packet:
    """One stored secret: salt, nonce and sealed bytes. Empty when nothing is stored."""

    salt: bytes = b""
    nonce: bytes = b""
    ciphertext: bytes = b""

    @property
    def is_empty(self) -> bool:
        return not self.salt or not self.nonce


EMPTY = Packet()


class Keyfile:
    """
    A container holding at most one secret encrypted under a passphrase.

    ``Keyfile()`` is empty. :meth:`set` and :meth:`random` populate it,
    :meth:`get` reads it back, :meth:`encode` / :meth:`parse` convert to and
    from the stored byte format.

    The container is replaced wholesale on every write; it never holds the
    plaintext or the derived key. It is not safe for concurrent mutation.
    """

    def __init__(self, packet: Packet = EMPTY):
        self._packet = packet

    def __repr__(self) -> str:
        state = "empty" if self.is_empty else f"{len(self._packet.ciphertext)} sealed bytes"
        return f"<Keyfile {state}>"

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    @property
    def packet(self) -> Packet:
        return self._packet

    @property
    def salt(self) -> bytes:
        return self._packet.salt

    @property
    def nonce(self) -> bytes:
        return self._packet.nonce

    @property
    def ciphertext(self) -> bytes:
        return self._packet.ciphertext

    @property
    def is_empty(self) -> bool:
        return self._packet.is_empty

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, data: bytes) -> "Keyfile":
        """
        Parse a stored packet. Only the structure is checked here; nothing
        is decrypted.

        Raises :class:`MalformedPacketError` on a bad magic tag, a truncated
        header, salt or nonce, or inconsistent salt/nonce lengths.
        """
        data = bytes(data)
        if not data.startswith(MAGIC):
            raise MalformedPacketError("invalid keyfile packet (magic mismatch)")
        if len(data) < HEADER.size:
            raise MalformedPacketError("truncated keyfile header")
        _, slen, nlen = HEADER.unpack_from(data)

        pos = HEADER.size
        if len(data) < pos + slen + nlen:
            raise MalformedPacketError(
                f"truncated keyfile packet: want {slen} salt + {nlen} nonce bytes, "
                f"have {len(data) - pos}"
            )
        salt = data[pos:pos + slen]
        pos += slen
        nonce = data[pos:pos + nlen]
        pos += nlen

        if bool(salt) != bool(nonce):
            raise MalformedPacketError("keyfile packet has a salt without a nonce or vice versa")
        if nonce and len(nonce) != NONCE_BYTES:
            raise MalformedPacketError(f"invalid nonce length {len(nonce)}, want {NONCE_BYTES}")

        return cls(Packet(salt=salt, nonce=nonce, ciphertext=data[pos:]))

    def encode(self) -> bytes:
        """Return the stored byte form of the container."""
        pkt = self._packet
        header = HEADER.pack(MAGIC, len(pkt.salt), len(pkt.nonce))
        return header + pkt.salt + pkt.nonce + pkt.ciphertext

    # ------------------------------------------------------------------
    # Secret access
    # ------------------------------------------------------------------

    def get(self, passphrase: str | bytes) -> bytes:
        """
        Decrypt and return the stored secret.

        Raises :class:`NoKeyError` if nothing was ever stored and
        :class:`BadPassphraseError` if the ciphertext does not authenticate
        under the key derived from ``passphrase``.
        """
        pkt = self._packet
        if pkt.is_empty:
            raise NoKeyError("get: no key present in keyfile")

        key = derive_key(passphrase, pkt.salt)
        try:
            return AESGCM(key).decrypt(pkt.nonce, pkt.ciphertext, None)
        except InvalidTag:
            raise BadPassphraseError("get: invalid passphrase") from None

    def set(self, passphrase: str | bytes, secret: bytes) -> None:
        """
        Encrypt ``secret`` under ``passphrase``, replacing any stored secret.

        An existing salt is kept; a fresh nonce is drawn on every call.
        ``secret`` must be bytes-like.
        """
        secret = memoryview(secret).tobytes()
        salt = self._packet.salt or generate_salt(SALT_BYTES)
        key = derive_key(passphrase, salt)
        nonce = os.urandom(NONCE_BYTES)
        ct = AESGCM(key).encrypt(nonce, secret, None)

        self._packet = Packet(salt=salt, nonce=nonce, ciphertext=ct)
        logger.debug("sealed %d-byte secret into keyfile", len(secret))

    def random(self, passphrase: str | bytes, n: int) -> bytes:
        """Store ``n`` random bytes under ``passphrase`` and return them."""
        if isinstance(n, bool) or not isinstance(n, int):
            raise InvalidSizeError(f"random: size must be an integer, got {n!r}")
        if n <= 0:
            raise InvalidSizeError(f"random: size must be positive, got {n}")

        secret = os.urandom(n)
        self.set(passphrase, secret)
        return secret

    def clear(self) -> None:
        """Drop the stored salt, nonce and ciphertext."""
        self._packet = EMPTY
