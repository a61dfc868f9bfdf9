"""Tests for the Cryptor."""

from dataclasses import replace

import pytest

from notesync.core.crypto import (
    AES256_GCM,
    ARGON2ID,
    PBKDF2,
    XCHACHA20_POLY1305,
    CostTier,
    Cryptor,
    CryptoValidationError,
    DecryptionFailedError,
    InvalidCipherFormatError,
    UnknownAlgorithmError,
    UnsupportedRevisionError,
    WeakPasswordError,
    fit_key,
    pack,
    unpack,
)

PACKAGE = "NoteSync"
MESSAGE = b'{"notes": ["buy milk"]}'


@pytest.fixture
def cryptor(random_source) -> Cryptor:
    return Cryptor(PACKAGE, random_source)


# =============================================================================
# Password based encryption
# =============================================================================


class TestPasswordEncryption:
    """Tests for encrypt/decrypt with a password."""

    @pytest.mark.parametrize("algorithm", [XCHACHA20_POLY1305, AES256_GCM])
    @pytest.mark.parametrize("kdf", [PBKDF2, ARGON2ID])
    def test_encrypt_decrypt(self, cryptor: Cryptor, algorithm: str, kdf: str) -> None:
        blob = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, algorithm, kdf)
        assert cryptor.decrypt(blob, "secret") == MESSAGE

    def test_header_describes_encryption(self, cryptor: Cryptor) -> None:
        blob = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2, "gzip")
        header, _ = unpack(blob, PACKAGE)
        assert header.revision == 2
        assert header.algorithm_name == XCHACHA20_POLY1305
        assert header.kdf_name == PBKDF2
        assert header.cost == "1500"
        assert header.compression == "gzip"
        assert len(header.nonce) == 24
        assert len(header.salt or b"") == 16

    def test_gzip_compression(self, cryptor: Cryptor) -> None:
        message = b"a" * 10_000
        plain = cryptor.encrypt(message, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        packed = cryptor.encrypt(message, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2, "gzip")
        assert len(packed) < len(plain)
        assert cryptor.decrypt(packed, "secret") == message

    def test_encryptions_use_fresh_nonces(self, cryptor: Cryptor) -> None:
        first = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        second = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        assert first != second

    def test_wrong_password(self, cryptor: Cryptor) -> None:
        blob = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        with pytest.raises(DecryptionFailedError):
            cryptor.decrypt(blob, "secreT")

    def test_tampered_cipher(self, cryptor: Cryptor) -> None:
        blob = bytearray(cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2))
        blob[-1] ^= 0xFF
        with pytest.raises(DecryptionFailedError):
            cryptor.decrypt(bytes(blob), "secret")

    def test_weak_password(self, cryptor: Cryptor) -> None:
        with pytest.raises(WeakPasswordError):
            cryptor.encrypt(MESSAGE, "1234", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)

    def test_unknown_algorithm(self, cryptor: Cryptor) -> None:
        with pytest.raises(UnknownAlgorithmError):
            cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, "rot13", PBKDF2)

    def test_unsupported_compression(self, cryptor: Cryptor) -> None:
        with pytest.raises(CryptoValidationError):
            cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2, "brotli")


# =============================================================================
# Raw key encryption
# =============================================================================


class TestKeyEncryption:
    """Tests for encrypt_with_key/decrypt_with_key."""

    def test_encrypt_decrypt(self, cryptor: Cryptor) -> None:
        key = b"k" * 32
        blob = cryptor.encrypt_with_key(MESSAGE, key, XCHACHA20_POLY1305)
        header, _ = unpack(blob, PACKAGE)
        assert header.kdf_name is None
        assert header.salt is None
        assert cryptor.decrypt_with_key(blob, key) == MESSAGE

    def test_short_keys_are_padded(self, cryptor: Cryptor) -> None:
        blob = cryptor.encrypt_with_key(MESSAGE, b"short", AES256_GCM, "gzip")
        assert cryptor.decrypt_with_key(blob, b"short") == MESSAGE

    def test_empty_key(self, cryptor: Cryptor) -> None:
        with pytest.raises(CryptoValidationError):
            cryptor.encrypt_with_key(MESSAGE, b"", XCHACHA20_POLY1305)

    def test_wrong_key(self, cryptor: Cryptor) -> None:
        blob = cryptor.encrypt_with_key(MESSAGE, b"k" * 32, XCHACHA20_POLY1305)
        with pytest.raises(DecryptionFailedError):
            cryptor.decrypt_with_key(blob, b"j" * 32)

    def test_modes_are_not_interchangeable(self, cryptor: Cryptor) -> None:
        keyed = cryptor.encrypt_with_key(MESSAGE, b"k" * 32, XCHACHA20_POLY1305)
        with pytest.raises(InvalidCipherFormatError):
            cryptor.decrypt(keyed, "secret")
        passworded = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        with pytest.raises(InvalidCipherFormatError):
            cryptor.decrypt_with_key(passworded, b"k" * 32)


class TestFitKey:
    """Tests for fit_key."""

    def test_truncates(self) -> None:
        assert fit_key(b"abcdef", 4) == b"abcd"

    def test_pads_with_zeros(self) -> None:
        assert fit_key(b"ab", 4) == b"ab\x00\x00"


# =============================================================================
# Envelope errors surfacing through decrypt
# =============================================================================


class TestDecryptErrors:
    """Tests that decrypt keeps the failure kinds apart."""

    def test_other_application(self, cryptor: Cryptor, random_source) -> None:
        other = Cryptor("OtherApp", random_source)
        blob = other.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        with pytest.raises(InvalidCipherFormatError):
            cryptor.decrypt(blob, "secret")

    def test_newer_revision(self, cryptor: Cryptor) -> None:
        blob = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        newer = blob.replace(b"NoteSync v=2$", b"NoteSync v=3$", 1)
        with pytest.raises(UnsupportedRevisionError):
            cryptor.decrypt(newer, "secret")

    def test_unknown_algorithm_in_header(self, cryptor: Cryptor) -> None:
        """An unregistered algorithm is reported as such, not as a wrong password."""
        blob = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, AES256_GCM, PBKDF2)
        header, cipher = unpack(blob, PACKAGE)
        header = replace(header, algorithm_name="twofish_gcm")
        with pytest.raises(UnknownAlgorithmError) as exc_info:
            cryptor.decrypt(pack(header, cipher), "secret")
        assert exc_info.value.name == "twofish_gcm"

    def test_unknown_kdf_in_header(self, cryptor: Cryptor) -> None:
        blob = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        header, cipher = unpack(blob, PACKAGE)
        header = replace(header, kdf_name="scrypt")
        with pytest.raises(UnknownAlgorithmError):
            cryptor.decrypt(pack(header, cipher), "secret")

    def test_unknown_algorithm_with_raw_key(self, cryptor: Cryptor) -> None:
        blob = cryptor.encrypt_with_key(MESSAGE, b"k" * 32, XCHACHA20_POLY1305)
        header, cipher = unpack(blob, PACKAGE)
        header = replace(header, algorithm_name="twofish_gcm")
        with pytest.raises(UnknownAlgorithmError):
            cryptor.decrypt_with_key(pack(header, cipher), b"k" * 32)

    def test_reads_revision_1(self, cryptor: Cryptor) -> None:
        blob = cryptor.encrypt(MESSAGE, "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        header, cipher = unpack(blob, PACKAGE)
        header = replace(header, revision=1)
        assert cryptor.decrypt(pack(header, cipher), "secret") == MESSAGE

    def test_corrupt_gzip_payload(self, cryptor: Cryptor) -> None:
        blob = cryptor.encrypt(b"not gzip data", "secret", CostTier.LOW, XCHACHA20_POLY1305, PBKDF2)
        header, cipher = unpack(blob, PACKAGE)
        header = replace(header, compression="gzip")
        with pytest.raises(DecryptionFailedError):
            cryptor.decrypt(pack(header, cipher), "secret")
