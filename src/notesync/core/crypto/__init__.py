"""Crypto stack - envelope codec, algorithm registries and the Cryptor."""

from notesync.core.crypto.cryptor import (
    COMPRESSION_GZIP,
    MIN_PASSWORD_LENGTH,
    Cryptor,
    fit_key,
)
from notesync.core.crypto.envelope import (
    DELIMITER,
    NEWEST_SUPPORTED_REVISION,
    REVISION_SEPARATOR,
    CryptoHeader,
    has_matching_header,
    pack,
    unpack,
)
from notesync.core.crypto.errors import (
    CryptoError,
    CryptoValidationError,
    DecryptionFailedError,
    InvalidCipherFormatError,
    UnknownAlgorithmError,
    UnsupportedRevisionError,
    WeakPasswordError,
)
from notesync.core.crypto.kdf import (
    ARGON2ID,
    PBKDF2,
    Argon2Cost,
    Argon2id,
    CostTier,
    KeyDerivationFunction,
    KeyDerivationRegistry,
    Pbkdf2,
    default_kdf_registry,
)
from notesync.core.crypto.random import (
    OsRandomSource,
    RandomSource,
    generate_random_base62,
)
from notesync.core.crypto.symmetric import (
    AES256_GCM,
    CHACHA20_POLY1305,
    XCHACHA20_POLY1305,
    Aes256Gcm,
    ChaCha20Poly1305Ietf,
    SymmetricAlgorithm,
    SymmetricAlgorithmRegistry,
    XChaCha20Poly1305,
    default_symmetric_registry,
)

__all__ = [
    # Cryptor
    "COMPRESSION_GZIP",
    "Cryptor",
    "MIN_PASSWORD_LENGTH",
    "fit_key",
    # Envelope
    "CryptoHeader",
    "DELIMITER",
    "NEWEST_SUPPORTED_REVISION",
    "REVISION_SEPARATOR",
    "has_matching_header",
    "pack",
    "unpack",
    # Errors
    "CryptoError",
    "CryptoValidationError",
    "DecryptionFailedError",
    "InvalidCipherFormatError",
    "UnknownAlgorithmError",
    "UnsupportedRevisionError",
    "WeakPasswordError",
    # Key derivation
    "ARGON2ID",
    "Argon2Cost",
    "Argon2id",
    "CostTier",
    "KeyDerivationFunction",
    "KeyDerivationRegistry",
    "PBKDF2",
    "Pbkdf2",
    "default_kdf_registry",
    # Randomness
    "OsRandomSource",
    "RandomSource",
    "generate_random_base62",
    # Symmetric
    "AES256_GCM",
    "Aes256Gcm",
    "CHACHA20_POLY1305",
    "ChaCha20Poly1305Ietf",
    "SymmetricAlgorithm",
    "SymmetricAlgorithmRegistry",
    "XCHACHA20_POLY1305",
    "XChaCha20Poly1305",
    "default_symmetric_registry",
]
