"""OS keystore integration using keyring for optional passphrase storage.

Lets a user keep the passphrase of a keyfile under a service/account pair in
the OS keyring instead of typing it each time. This is opt-in convenience;
do not assume keyring provides hardware-backed security on all platforms.
"""
from typing import Callable, Optional

from keyfile.core.exceptions import KeystoreError

try:
    import keyring
    from keyring.errors import PasswordDeleteError
except ImportError:
    keyring = None

DEFAULT_SERVICE = "keyfile"


def _require_keyring():
    if keyring is None:
        raise KeystoreError("keyring package is not available; install keyring to use keystore features")


def save_passphrase(service: str, account: str, passphrase: str) -> None:
    """Persist ``passphrase`` in the OS keystore under (service, account)."""
    _require_keyring()
    keyring.set_password(service, account, passphrase)


# Matched case-insensitively against "<module>.<class>" of the active backend.
_INSECURE_BACKENDS = ("plaintext", "uncrypted", "null", "fail")


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (is_secure, message) for the active keyring backend.

    ``remember`` refuses to store a passphrase when this reports False.
    """
    if keyring is None:
        return False, "keyring package is not installed"

    try:
        backend = keyring.get_keyring()
    except Exception as e:
        return False, f"failed to get keyring backend: {e}"

    cls = backend.__class__
    name = f"{cls.__module__}.{cls.__name__}"
    if any(tok in name.lower() for tok in _INSECURE_BACKENDS):
        return False, f"insecure backend detected: {name}"

    priority = getattr(backend, "priority", None)
    if priority is not None and priority <= 0:
        return False, f"no usable keyring backend (priority={priority}, backend={name})"

    return True, f"using keyring backend {name}"


def load_passphrase(service: str, account: str) -> Optional[str]:
    """Load a stored passphrase from the OS keystore; returns None if absent."""
    _require_keyring()
    return keyring.get_password(service, account)


def delete_passphrase(service: str, account: str) -> None:
    """Remove the passphrase from the OS keystore."""
    _require_keyring()
    try:
        keyring.delete_password(service, account)
    except PasswordDeleteError:
        # nothing stored under this entry
        pass


def keyring_provider(service: str, account: str) -> Callable[[], str]:
    """Return a passphrase provider that reads (service, account) from the keystore."""

    def provide() -> str:
        passphrase = load_passphrase(service, account)
        if passphrase is None:
            raise KeystoreError(f"no passphrase stored in OS keystore for {service}/{account}")
        return passphrase

    return provide
