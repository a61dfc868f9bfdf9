"""Exceptions raised by the crypto stack.

The three decryption errors are kept apart because callers recover from
them differently:
- InvalidCipherFormatError: the blob is structurally broken, give up.
- UnsupportedRevisionError: the blob was written by a newer app, give up.
- DecryptionFailedError: wrong key or tampered data, another key may work.
"""

from __future__ import annotations


class CryptoError(Exception):
    """Base exception for crypto errors."""


class InvalidCipherFormatError(CryptoError):
    """The blob is not a well-formed envelope of the expected application."""


class UnsupportedRevisionError(CryptoError):
    """The envelope uses a revision newer than this codec understands."""

    def __init__(self, revision: int, newest_supported: int) -> None:
        super().__init__(
            f"Envelope revision {revision} is newer than the supported "
            f"revision {newest_supported}"
        )
        self.revision = revision
        self.newest_supported = newest_supported


class DecryptionFailedError(CryptoError):
    """Authentication failed: wrong key, wrong password or tampered cipher."""


class UnknownAlgorithmError(CryptoError):
    """No algorithm is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown algorithm: {name!r}")
        self.name = name


class WeakPasswordError(CryptoError):
    """The password is too short to be used for encryption."""


class CryptoValidationError(CryptoError):
    """Invalid arguments passed to the crypto API."""
