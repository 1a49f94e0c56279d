"""Unit tests for the Key Derivation Function (KDF) module."""

import pytest
from keyfile.security.kdf import (
    KEY_BYTES,
    SCRYPT_N,
    SCRYPT_P,
    SCRYPT_R,
    derive_key,
    generate_salt,
    kdf_params_to_dict,
)


def test_generate_salt_defaults():
    """Ensure salt generation returns bytes of the default length (16)."""
    salt = generate_salt()
    assert isinstance(salt, bytes)
    assert len(salt) == 16


def test_generate_salt_custom_length():
    """Ensure salt generation respects the length parameter."""
    salt = generate_salt(length=32)
    assert len(salt) == 32
    assert isinstance(salt, bytes)


def test_generate_salt_is_random():
    assert generate_salt() != generate_salt()


def test_format_constants():
    """The scrypt parameters are part of the stored format."""
    assert (SCRYPT_N, SCRYPT_R, SCRYPT_P, KEY_BYTES) == (32768, 8, 1, 32)


def test_derive_key_with_string_passphrase():
    """Ensure string passphrases are encoded and a 32-byte key comes back."""
    salt = generate_salt()
    key = derive_key("secure_string_passphrase", salt)

    assert isinstance(key, bytes)
    assert len(key) == 32


def test_derive_key_consistency():
    """Same passphrase and salt give the same key, str or bytes."""
    salt = generate_salt()
    key_from_str = derive_key("password123", salt)
    key_from_bytes = derive_key(b"password123", salt)

    assert key_from_str == key_from_bytes
    assert derive_key("password123", salt) == key_from_str


def test_derive_key_depends_on_salt_and_passphrase():
    salt = generate_salt()
    key = derive_key("password123", salt)

    assert derive_key("password124", salt) != key
    assert derive_key("password123", generate_salt()) != key


def test_derive_key_unicode_passphrase():
    salt = b"\x01" * 16
    assert derive_key("pässwörd", salt) == derive_key("pässwörd".encode("utf-8"), salt)


def test_derive_key_custom_params():
    """Ensure custom parameters (cost, length) are respected."""
    salt = generate_salt()
    # Use very low costs for speed in unit tests
    key = derive_key(b"pass", salt, n=16, r=1, p=1, key_len=64)

    assert len(key) == 64


def test_derive_key_rejects_bad_cost():
    """scrypt requires n to be a power of two greater than one."""
    with pytest.raises(ValueError):
        derive_key(b"pass", generate_salt(), n=1000)


def test_kdf_params_to_dict():
    salt = b'\xaa' * 16
    result = kdf_params_to_dict(salt=salt)

    expected = {
        "algo": "scrypt",
        "salt": "aa" * 16,
        "n": 32768,
        "r": 8,
        "p": 1,
    }

    assert result == expected
