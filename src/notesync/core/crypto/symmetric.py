"""Authenticated symmetric ciphers and their registry.

This module provides:
- XChaCha20-Poly1305 (pycryptodome), the default algorithm
- AES-256-GCM and ChaCha20-Poly1305 (cryptography)
- SymmetricAlgorithmRegistry: explicit name -> algorithm lookup table

Every algorithm returns `ciphertext || tag` and raises DecryptionFailedError
when the tag does not verify.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from Crypto.Cipher import ChaCha20_Poly1305 as PyCryptodomeChaCha20Poly1305
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from notesync.core.crypto.errors import (
    CryptoValidationError,
    DecryptionFailedError,
    UnknownAlgorithmError,
)

TAG_SIZE = 16  # Poly1305 and GCM both use 128-bit tags

XCHACHA20_POLY1305 = "xchacha20_poly1305"
AES256_GCM = "aes256_gcm"
CHACHA20_POLY1305 = "chacha20_poly1305"


class SymmetricAlgorithm(Protocol):
    """An AEAD cipher usable inside an envelope."""

    name: str
    expected_key_size: int
    expected_nonce_size: int

    def encrypt(self, plaintext: bytes, key: bytes, nonce: bytes) -> bytes: ...

    def decrypt(self, cipher: bytes, key: bytes, nonce: bytes) -> bytes: ...


def _check_sizes(algorithm: SymmetricAlgorithm, key: bytes, nonce: bytes) -> None:
    if len(key) != algorithm.expected_key_size:
        raise CryptoValidationError(
            f"{algorithm.name} expects a {algorithm.expected_key_size} byte key, got {len(key)}"
        )
    if len(nonce) != algorithm.expected_nonce_size:
        raise CryptoValidationError(
            f"{algorithm.name} expects a {algorithm.expected_nonce_size} byte nonce, got {len(nonce)}"
        )


class XChaCha20Poly1305:
    """XChaCha20-Poly1305 with a 192-bit nonce.

    pycryptodome selects the XChaCha20 variant when given a 24 byte nonce.
    """

    name = XCHACHA20_POLY1305
    expected_key_size = 32
    expected_nonce_size = 24

    def encrypt(self, plaintext: bytes, key: bytes, nonce: bytes) -> bytes:
        _check_sizes(self, key, nonce)
        cipher = PyCryptodomeChaCha20Poly1305.new(key=key, nonce=nonce)
        ciphertext, tag = cipher.encrypt_and_digest(plaintext)
        return ciphertext + tag

    def decrypt(self, cipher: bytes, key: bytes, nonce: bytes) -> bytes:
        _check_sizes(self, key, nonce)
        if len(cipher) < TAG_SIZE:
            raise DecryptionFailedError("Cipher is shorter than the authentication tag")
        ciphertext, tag = cipher[:-TAG_SIZE], cipher[-TAG_SIZE:]
        decryptor = PyCryptodomeChaCha20Poly1305.new(key=key, nonce=nonce)
        try:
            return decryptor.decrypt_and_verify(ciphertext, tag)
        except ValueError as e:
            raise DecryptionFailedError("Authentication tag mismatch") from e


class Aes256Gcm:
    """AES-256 in Galois/Counter mode."""

    name = AES256_GCM
    expected_key_size = 32
    expected_nonce_size = 12  # 96 bits (recommended for AES-GCM)

    def encrypt(self, plaintext: bytes, key: bytes, nonce: bytes) -> bytes:
        _check_sizes(self, key, nonce)
        return AESGCM(key).encrypt(nonce, plaintext, None)

    def decrypt(self, cipher: bytes, key: bytes, nonce: bytes) -> bytes:
        _check_sizes(self, key, nonce)
        try:
            return AESGCM(key).decrypt(nonce, cipher, None)
        except InvalidTag as e:
            raise DecryptionFailedError("Authentication tag mismatch") from e


class ChaCha20Poly1305Ietf:
    """ChaCha20-Poly1305 as specified in RFC 8439."""

    name = CHACHA20_POLY1305
    expected_key_size = 32
    expected_nonce_size = 12

    def encrypt(self, plaintext: bytes, key: bytes, nonce: bytes) -> bytes:
        _check_sizes(self, key, nonce)
        return ChaCha20Poly1305(key).encrypt(nonce, plaintext, None)

    def decrypt(self, cipher: bytes, key: bytes, nonce: bytes) -> bytes:
        _check_sizes(self, key, nonce)
        try:
            return ChaCha20Poly1305(key).decrypt(nonce, cipher, None)
        except InvalidTag as e:
            raise DecryptionFailedError("Authentication tag mismatch") from e


class SymmetricAlgorithmRegistry:
    """Lookup table of symmetric algorithms by name."""

    def __init__(self, algorithms: Iterable[SymmetricAlgorithm]) -> None:
        self._algorithms: dict[str, SymmetricAlgorithm] = {}
        for algorithm in algorithms:
            if algorithm.name in self._algorithms:
                raise CryptoValidationError(f"Duplicate algorithm name: {algorithm.name}")
            self._algorithms[algorithm.name] = algorithm

    def lookup(self, name: str) -> SymmetricAlgorithm:
        """Get the algorithm registered under `name`.

        Raises:
            UnknownAlgorithmError: If no such algorithm is registered.
        """
        try:
            return self._algorithms[name]
        except KeyError:
            raise UnknownAlgorithmError(name) from None

    def names(self) -> list[str]:
        return list(self._algorithms)

    def __contains__(self, name: object) -> bool:
        return name in self._algorithms


def default_symmetric_registry() -> SymmetricAlgorithmRegistry:
    """Build a registry with every supported symmetric algorithm."""
    return SymmetricAlgorithmRegistry(
        [XChaCha20Poly1305(), Aes256Gcm(), ChaCha20Poly1305Ietf()]
    )
