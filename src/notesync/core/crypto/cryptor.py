"""Encrypt and decrypt messages into self-describing envelopes.

The Cryptor combines the symmetric algorithm registry, the KDF registry and
the envelope codec. It is purely functional apart from the injected random
source, which provides every nonce and salt.
"""

from __future__ import annotations

import gzip
import zlib

from argon2.exceptions import HashingError

from notesync.core.crypto.envelope import (
    NEWEST_SUPPORTED_REVISION,
    CryptoHeader,
    pack,
    unpack,
)
from notesync.core.crypto.errors import (
    CryptoError,
    CryptoValidationError,
    DecryptionFailedError,
    InvalidCipherFormatError,
    WeakPasswordError,
)
from notesync.core.crypto.kdf import (
    CostTier,
    KeyDerivationRegistry,
    default_kdf_registry,
)
from notesync.core.crypto.random import RandomSource
from notesync.core.crypto.symmetric import (
    SymmetricAlgorithmRegistry,
    default_symmetric_registry,
)

MIN_PASSWORD_LENGTH = 5
COMPRESSION_GZIP = "gzip"


def fit_key(key: bytes, size: int) -> bytes:
    """Truncate or zero-pad a raw key to exactly `size` bytes."""
    if len(key) >= size:
        return key[:size]
    return key + bytes(size - len(key))


def _normalize_compression(compression: str | None) -> str | None:
    if not compression:
        return None
    if compression.lower() != COMPRESSION_GZIP:
        raise CryptoValidationError(f"Unsupported compression: {compression!r}")
    return COMPRESSION_GZIP


class Cryptor:
    """Encrypts messages into envelopes tagged with one application name.

    Args:
        package_name: Application tag written into and expected from every envelope.
        random_source: Provider of nonces and salts.
        symmetric_registry: Available symmetric algorithms (defaults to all).
        kdf_registry: Available key derivation functions (defaults to all).
    """

    def __init__(
        self,
        package_name: str,
        random_source: RandomSource,
        symmetric_registry: SymmetricAlgorithmRegistry | None = None,
        kdf_registry: KeyDerivationRegistry | None = None,
    ) -> None:
        self.package_name = package_name
        self.random_source = random_source
        self.symmetric_registry = symmetric_registry or default_symmetric_registry()
        self.kdf_registry = kdf_registry or default_kdf_registry()

    def encrypt(
        self,
        message: bytes,
        password: str,
        cost_tier: CostTier,
        algorithm_name: str,
        kdf_name: str,
        compression: str | None = None,
    ) -> bytes:
        """Encrypt a message with a key derived from a password.

        Raises:
            WeakPasswordError: If the password is shorter than MIN_PASSWORD_LENGTH.
            UnknownAlgorithmError: If the algorithm or KDF is not registered.
            CryptoValidationError: If the compression is not supported.
        """
        if password is None or len(password) < MIN_PASSWORD_LENGTH:
            raise WeakPasswordError(
                f"Password must have at least {MIN_PASSWORD_LENGTH} characters"
            )
        compression = _normalize_compression(compression)
        algorithm = self.symmetric_registry.lookup(algorithm_name)
        kdf = self.kdf_registry.lookup(kdf_name)

        nonce = self.random_source.get_random_bytes(algorithm.expected_nonce_size)
        salt = self.random_source.get_random_bytes(kdf.expected_salt_size)
        cost = kdf.recommended_cost(cost_tier)
        key = kdf.derive_key(password, algorithm.expected_key_size, salt, cost)

        plaintext = gzip.compress(message) if compression else message
        header = CryptoHeader(
            package_name=self.package_name,
            revision=NEWEST_SUPPORTED_REVISION,
            algorithm_name=algorithm.name,
            nonce=nonce,
            kdf_name=kdf.name,
            salt=salt,
            cost=cost,
            compression=compression,
        )
        return pack(header, algorithm.encrypt(plaintext, key, nonce))

    def encrypt_with_key(
        self,
        message: bytes,
        key: bytes,
        algorithm_name: str,
        compression: str | None = None,
    ) -> bytes:
        """Encrypt a message with a raw key, e.g. the key of a safe."""
        if not key:
            raise CryptoValidationError("Key must not be empty")
        compression = _normalize_compression(compression)
        algorithm = self.symmetric_registry.lookup(algorithm_name)
        nonce = self.random_source.get_random_bytes(algorithm.expected_nonce_size)

        plaintext = gzip.compress(message) if compression else message
        header = CryptoHeader(
            package_name=self.package_name,
            revision=NEWEST_SUPPORTED_REVISION,
            algorithm_name=algorithm.name,
            nonce=nonce,
            compression=compression,
        )
        cipher = algorithm.encrypt(plaintext, fit_key(key, algorithm.expected_key_size), nonce)
        return pack(header, cipher)

    def decrypt(self, blob: bytes, password: str) -> bytes:
        """Decrypt an envelope that was encrypted with a password.

        Raises:
            InvalidCipherFormatError: If the blob is not a valid envelope.
            UnsupportedRevisionError: If the blob was written by a newer version.
            UnknownAlgorithmError: If the header names an unregistered algorithm or KDF.
            DecryptionFailedError: If the password is wrong or the blob was tampered with.
        """
        header, cipher = unpack(blob, self.package_name)
        if header.kdf_name is None:
            raise InvalidCipherFormatError("Envelope was not encrypted with a password")
        return self._decrypt(header, cipher, password=password)

    def decrypt_with_key(self, blob: bytes, key: bytes) -> bytes:
        """Decrypt an envelope that was encrypted with a raw key."""
        header, cipher = unpack(blob, self.package_name)
        if header.kdf_name is not None:
            raise InvalidCipherFormatError("Envelope was encrypted with a password")
        return self._decrypt(header, cipher, key=key)

    def _decrypt(
        self,
        header: CryptoHeader,
        cipher: bytes,
        password: str | None = None,
        key: bytes | None = None,
    ) -> bytes:
        # Unknown names are garbage headers, not wrong keys
        algorithm = self.symmetric_registry.lookup(header.algorithm_name)
        kdf = self.kdf_registry.lookup(header.kdf_name or "") if password is not None else None
        try:
            if kdf is not None and password is not None:
                key = kdf.derive_key(
                    password, algorithm.expected_key_size, header.salt or b"", header.cost or ""
                )
            else:
                key = fit_key(key or b"", algorithm.expected_key_size)

            plaintext = algorithm.decrypt(cipher, key, header.nonce)
            if header.compression is not None:
                _normalize_compression(header.compression)
                plaintext = gzip.decompress(plaintext)
            return plaintext
        except DecryptionFailedError:
            raise
        except (CryptoError, HashingError, ValueError, OSError, EOFError, zlib.error) as e:
            raise DecryptionFailedError(f"Could not decrypt envelope: {e}") from e
