"""
Exceptions for the keyfile package
Everything raised on purpose derives from KeyfileError so callers have one catch-all
"""


class KeyfileError(Exception):
    # general container for errors
    pass


class MalformedPacketError(KeyfileError):
    # raised when a stored packet fails structural validation (magic, lengths)
    pass


class NoKeyError(KeyfileError):
    # raised when reading a secret from a container that never had one
    pass


class BadPassphraseError(KeyfileError):
    # raised when AEAD authentication fails; wrong passphrase and corrupted
    # ciphertext are reported the same way
    pass


class InvalidSizeError(KeyfileError, ValueError):
    # raised for a non-positive random secret length
    pass


class PassphraseError(KeyfileError):
    # raised when a passphrase cannot be obtained (mismatch, empty, no tty)
    pass


class KeystoreError(KeyfileError):
    # raised when the OS keyring is unavailable or has no entry
    pass


class OfferError(KeyfileError):
    # raised when a key cannot be delivered through a named pipe
    pass


class LoadKeyError(KeyfileError):
    """Raised by load_key; ``stage`` names the step that failed.

    The underlying exception is kept as ``error`` and chained as ``__cause__``.
    """

    STAGES = ("read", "parse", "passphrase", "decrypt")

    def __init__(self, stage: str, path, error: BaseException):
        self.stage = stage
        self.path = str(path)
        self.error = error
        super().__init__(f"load {self.path}: {stage}: {error}")
